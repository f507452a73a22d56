"""LinkHost on the GitHub REST API (contents, refs, pulls, labels)."""

import base64
import logging
from urllib.parse import quote

import httpx

from friendlink.application.dto import PullRequest, RemoteFile
from friendlink.application.errors import ExternalServiceError
from friendlink.config import DEFAULT_GITHUB_API_URL

logger = logging.getLogger(__name__)


class GitHubLinkHost:
    """One repository on GitHub. Every call is a single request, no retries."""

    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        *,
        base_url: str = DEFAULT_GITHUB_API_URL,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not owner or not repo:
            raise ValueError("GitHub owner and repo are required (GITHUB_REPO=owner/repo)")
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._repo_path = f"/repos/{quote(owner, safe='')}/{quote(repo, safe='')}"
        self._client = httpx.Client(base_url=base_url, headers=headers, transport=transport)

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, url: str, **kwargs) -> dict:
        try:
            r = self._client.request(method, self._repo_path + url, **kwargs)
            r.raise_for_status()
        except httpx.HTTPStatusError as exc:
            resp = exc.response
            raise ExternalServiceError(
                f"GitHub {method} {url} failed with {resp.status_code}: {resp.text[:500]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ExternalServiceError(f"GitHub {method} {url} failed: {exc}") from exc
        try:
            return r.json()
        except ValueError as exc:
            raise ExternalServiceError(f"GitHub {method} {url} returned invalid JSON") from exc

    def _contents_url(self, path: str) -> str:
        return "/contents/" + quote(path.lstrip("/"), safe="/")

    def get_file(self, path: str) -> RemoteFile:
        data = self._request("GET", self._contents_url(path))
        # Files over 1 MB come back with encoding "none" and no content.
        encoding = data.get("encoding")
        if encoding != "base64":
            raise ExternalServiceError(
                f"GitHub returned {path} with encoding {encoding!r}; expected base64 content"
            )
        raw = base64.b64decode(data.get("content") or "")
        return RemoteFile(content=raw.decode("utf-8"), sha=data["sha"])

    def get_default_branch(self) -> str:
        return self._request("GET", "")["default_branch"]

    def get_branch_head_sha(self, branch: str) -> str:
        data = self._request("GET", f"/git/ref/heads/{quote(branch, safe='/')}")
        return data["object"]["sha"]

    def create_branch(self, name: str, from_sha: str) -> None:
        self._request("POST", "/git/refs", json={"ref": f"refs/heads/{name}", "sha": from_sha})

    def put_file(self, path: str, content: str, branch: str, sha: str, message: str) -> None:
        encoded = base64.b64encode(content.encode("utf-8")).decode("ascii")
        self._request(
            "PUT",
            self._contents_url(path),
            json={"message": message, "content": encoded, "branch": branch, "sha": sha},
        )

    def create_pull_request(self, title: str, head: str, base: str, body: str) -> PullRequest:
        data = self._request(
            "POST", "/pulls", json={"title": title, "head": head, "base": base, "body": body}
        )
        return PullRequest(number=data["number"], url=data["html_url"])

    def add_labels(self, number: int, labels: list[str]) -> None:
        self._request("POST", f"/issues/{number}/labels", json={"labels": labels})
        logger.debug("Labelled #%s with %s", number, labels)
