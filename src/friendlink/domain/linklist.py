"""Link-list document handling: normalize, match, patch and (de)serialize.

The link-list file is a YAML sequence of categories, each holding an
optional ``link_list`` sequence of ``{name, link, avatar, descr}`` mappings.
Matcher and patcher walk it with the same generator so that what a preview
shows is exactly what a patch rewrites.
"""

import copy
import re
from collections.abc import Iterator
from dataclasses import dataclass

import yaml

from friendlink.domain.entities import FriendProfile, LinkEntry

LIST_KEY = "link_list"

_SCHEME_WWW = re.compile(r"^(https?://)?(www\.)?", re.IGNORECASE)
_TOP_LEVEL_ITEM = re.compile(r"\n(?=-)")


class LinkListFormatError(ValueError):
    """The link-list file is not valid YAML or not a sequence of categories."""


@dataclass
class PatchResult:
    document: list
    found: bool


def normalize_link(url: str) -> str:
    """Canonical form used to decide whether two links are the same friend."""
    stripped = _SCHEME_WWW.sub("", url or "", count=1)
    if stripped.endswith("/"):
        stripped = stripped[:-1]
    return stripped


def format_entry(profile: FriendProfile) -> str:
    """Render a profile as a list item under a category's link_list.

    Values go in verbatim; anything that breaks YAML stays broken.
    """
    return (
        f"\n    - name: {profile.name}"
        f"\n      link: {profile.link}"
        f"\n      avatar: {profile.avatar_link}"
        f"\n      descr: {profile.descr}"
    )


def dump_entry(entry: LinkEntry) -> str:
    """Render an entry found in the document as a single YAML list item."""
    body = _dump(entry.to_dict())
    return "- " + body.replace("\n", "\n  ").strip() + "\n"


def parse_link_list(text: str) -> list:
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise LinkListFormatError(f"Link list is not valid YAML: {exc}") from exc
    if document is None:
        return []
    if not isinstance(document, list):
        raise LinkListFormatError(
            f"Link list must be a sequence of categories, got {type(document).__name__}"
        )
    return document


def _iter_entries(document: list) -> Iterator[tuple[int, int, dict]]:
    """Yield (category index, entry index, entry) in document order.

    Categories without a list-valued link_list count as empty.
    """
    for i, category in enumerate(document):
        if not isinstance(category, dict):
            continue
        entries = category.get(LIST_KEY)
        if not isinstance(entries, list):
            continue
        for j, entry in enumerate(entries):
            if isinstance(entry, dict) and entry.get("link"):
                yield i, j, entry


def _matches(entry: dict, normalized_target: str) -> bool:
    return normalize_link(str(entry["link"])) == normalized_target


def find_entry(document: list, normalized_target: str) -> LinkEntry | None:
    """Return the first entry whose normalized link equals the target, or None."""
    for _, _, entry in _iter_entries(document):
        if _matches(entry, normalized_target):
            return LinkEntry.from_mapping(entry)
    return None


def patch_entry(
    document: list, normalized_target: str, profile: FriendProfile
) -> PatchResult:
    """Replace the first matching entry in a deep copy of the document."""
    patched = copy.deepcopy(document)
    for i, j, entry in _iter_entries(patched):
        if _matches(entry, normalized_target):
            patched[i][LIST_KEY][j] = LinkEntry.from_profile(profile).to_dict()
            return PatchResult(document=patched, found=True)
    return PatchResult(document=patched, found=False)


class _LinkListDumper(yaml.SafeDumper):
    # Indent sequences nested under a key, as the hand-written file does.
    def increase_indent(self, flow=False, indentless=False):
        return super().increase_indent(flow, False)


def _dump(data) -> str:
    return yaml.dump(
        data,
        Dumper=_LinkListDumper,
        indent=2,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
        width=4096,
    )


def serialize_link_list(document: list) -> str:
    """Dump the document and put back the blank line between categories."""
    text = _dump(document)
    return _TOP_LEVEL_ITEM.sub("\n\n", text).strip()
