"""Domain entities: FriendApplication, FriendProfile, LinkEntry and ApplicationState."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApplicationState(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    def can_become(self, target: "ApplicationState") -> bool:
        """PENDING may move to either decision; a decision may only be repeated."""
        if self is ApplicationState.PENDING:
            return target is not ApplicationState.PENDING
        if self is ApplicationState.APPROVED:
            return target is ApplicationState.APPROVED
        if self is ApplicationState.REJECTED:
            return target is ApplicationState.REJECTED
        raise AssertionError(f"Unhandled state {self!r}")


# Presentation labels, kept apart from the stored state values.
STATE_LABELS = {
    ApplicationState.PENDING: "Pending review",
    ApplicationState.APPROVED: "Approved",
    ApplicationState.REJECTED: "Rejected",
}


@dataclass(frozen=True)
class FriendProfile:
    """The four fields that end up in the blog's link list."""

    name: str
    link: str
    avatar_link: str
    descr: str


@dataclass(frozen=True)
class LinkEntry:
    """One entry of a category's link_list in the link-list document."""

    name: str | None = None
    link: str | None = None
    avatar: str | None = None
    descr: str | None = None

    @classmethod
    def from_mapping(cls, data: dict) -> "LinkEntry":
        return cls(
            name=_as_text(data.get("name")),
            link=_as_text(data.get("link")),
            avatar=_as_text(data.get("avatar")),
            descr=_as_text(data.get("descr")),
        )

    @classmethod
    def from_profile(cls, profile: FriendProfile) -> "LinkEntry":
        return cls(
            name=profile.name,
            link=profile.link,
            avatar=profile.avatar_link,
            descr=profile.descr,
        )

    def to_dict(self) -> dict:
        """Mapping in file key order; unset keys are left out."""
        out = {}
        for key in ("name", "link", "avatar", "descr"):
            value = getattr(self, key)
            if value is not None:
                out[key] = value
        return out


def _as_text(value) -> str | None:
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True)
class FriendApplication:
    """
    A friend-link application as submitted by a blog owner.
    original_link set means "update my existing entry"; unset means "add me".
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = field(default="")
    link: str = field(default="")
    avatar_link: str = field(default="")
    descr: str = field(default="")
    email: str = field(default="")
    state: ApplicationState = ApplicationState.PENDING
    original_link: str | None = None
    reject_reason: str | None = None
    pr_url: str | None = None
    pr_number: int | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None

    def __post_init__(self):
        for attr in ("name", "link", "avatar_link", "descr", "email"):
            value = getattr(self, attr)
            if not value or not value.strip():
                raise ValueError(f"FriendApplication {attr} must be non-empty.")
        if not isinstance(self.state, ApplicationState):
            object.__setattr__(self, "state", ApplicationState(self.state))

    @property
    def is_update(self) -> bool:
        return bool(self.original_link)

    @property
    def is_published(self) -> bool:
        return bool(self.pr_url)

    @property
    def profile(self) -> FriendProfile:
        return FriendProfile(
            name=self.name,
            link=self.link,
            avatar_link=self.avatar_link,
            descr=self.descr,
        )
