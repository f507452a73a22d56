"""Domain layer: entities and link-list logic. No dependencies on outer layers."""

from friendlink.domain.diff import render_diff
from friendlink.domain.entities import (
    STATE_LABELS,
    ApplicationState,
    FriendApplication,
    FriendProfile,
    LinkEntry,
)
from friendlink.domain.linklist import (
    LinkListFormatError,
    PatchResult,
    dump_entry,
    find_entry,
    format_entry,
    normalize_link,
    parse_link_list,
    patch_entry,
    serialize_link_list,
)

__all__ = [
    "STATE_LABELS",
    "ApplicationState",
    "FriendApplication",
    "FriendProfile",
    "LinkEntry",
    "LinkListFormatError",
    "PatchResult",
    "dump_entry",
    "find_entry",
    "format_entry",
    "normalize_link",
    "parse_link_list",
    "patch_entry",
    "render_diff",
    "serialize_link_list",
]
