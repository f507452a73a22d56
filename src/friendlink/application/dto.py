"""Data transfer objects passed across the application boundary."""

from dataclasses import dataclass


@dataclass(frozen=True)
class MailMessage:
    to: str
    subject: str
    html: str


@dataclass(frozen=True)
class RemoteFile:
    content: str
    sha: str


@dataclass(frozen=True)
class PullRequest:
    number: int
    url: str


@dataclass(frozen=True)
class ApprovalResult:
    """Outcome of a successful approval. kind is "new" or "update"."""

    pr_url: str
    pr_number: int
    kind: str


@dataclass(frozen=True)
class DiffPreview:
    diff: str
    old_entry: str
    new_entry: str
    kind: str
