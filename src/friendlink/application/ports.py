"""Application ports (interfaces). Implemented by infrastructure adapters."""

from typing import Protocol

from friendlink.application.dto import PullRequest, RemoteFile
from friendlink.domain import FriendApplication


class ApplicationRepository(Protocol):
    """Persists friend-link applications."""

    def add(self, application: FriendApplication) -> str:
        """Store a new application and return its id."""
        ...

    def get_by_id(self, application_id: str) -> FriendApplication | None:
        """Return the application with the given id, or None."""
        ...

    def update(self, application_id: str, **fields) -> bool:
        """Overwrite the given fields. Returns True if updated, False if not found."""
        ...

    def list_all(self) -> list[FriendApplication]:
        """Return all applications, newest first."""
        ...


class Mailer(Protocol):
    """Delivers one HTML mail. Returns False (or raises) on failure."""

    def send(self, to: str, subject: str, html: str) -> bool:
        ...


class LinkHost(Protocol):
    """The repository that holds the blog's link-list file."""

    def get_file(self, path: str) -> RemoteFile:
        ...

    def get_default_branch(self) -> str:
        ...

    def get_branch_head_sha(self, branch: str) -> str:
        ...

    def create_branch(self, name: str, from_sha: str) -> None:
        ...

    def put_file(
        self, path: str, content: str, branch: str, sha: str, message: str
    ) -> None:
        ...

    def create_pull_request(
        self, title: str, head: str, base: str, body: str
    ) -> PullRequest:
        ...

    def add_labels(self, number: int, labels: list[str]) -> None:
        ...
