"""Commit a new version of the link-list file on a fresh branch and open a PR."""

import logging
import re
import time

from friendlink.application.dto import PullRequest, RemoteFile
from friendlink.application.ports import LinkHost
from friendlink.domain import FriendProfile

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def _alnum(value: str) -> str:
    return _NON_ALNUM.sub("", value)


def _millis() -> int:
    return int(time.time() * 1000)


def add_branch_name(profile: FriendProfile, millis: int | None = None) -> str:
    stamp = _millis() if millis is None else millis
    return f"add-friend-{_alnum(profile.name)}-{_alnum(profile.link)}-{stamp}"


def update_branch_name(profile: FriendProfile, millis: int | None = None) -> str:
    stamp = _millis() if millis is None else millis
    return f"update-friend-{_alnum(profile.name)}-{stamp}"


class LinkListPublisher:
    """Reads the link-list file and publishes a replacement as a pull request.

    The steps are independent calls on the host with no rollback: a failure
    partway leaves the branch behind and the error propagates.
    """

    def __init__(self, host: LinkHost, path: str) -> None:
        self._host = host
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    def read(self) -> RemoteFile:
        return self._host.get_file(self._path)

    def publish(
        self,
        source: RemoteFile,
        content: str,
        *,
        branch: str,
        message: str,
        title: str,
        body: str,
        labels: list[str],
    ) -> PullRequest:
        base = self._host.get_default_branch()
        head_sha = self._host.get_branch_head_sha(base)
        self._host.create_branch(branch, head_sha)
        logger.info("Created branch %s from %s@%s", branch, base, head_sha)
        self._host.put_file(self._path, content, branch, source.sha, message)
        pr = self._host.create_pull_request(title, branch, base, body)
        self._host.add_labels(pr.number, labels)
        logger.info("Opened pull request #%s: %s", pr.number, pr.url)
        return pr
