"""Process settings, read once from the environment at startup and injected everywhere."""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from urllib.parse import urlencode

DEFAULT_LINK_FILE_PATH = "source/_data/link.yml"
DEFAULT_GITHUB_API_URL = "https://api.github.com"

_TRUE = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class SmtpSettings:
    host: str = "smtp.example.com"
    port: int = 465
    secure: bool = True
    user: str = ""
    password: str = ""


@dataclass(frozen=True)
class Settings:
    review_password: str
    admin_email: str
    api_domain: str = "http://localhost:8000"
    smtp: SmtpSettings = SmtpSettings()
    github_token: str = ""
    github_owner: str = ""
    github_repo: str = ""
    link_file_path: str = DEFAULT_LINK_FILE_PATH
    github_api_url: str = DEFAULT_GITHUB_API_URL
    neo4j_uri: str = "bolt://localhost:7687"
    neo4j_user: str = "neo4j"
    neo4j_password: str = "password"

    def review_link(self, application_id: str) -> str:
        base = self.api_domain.rstrip("/")
        query = urlencode({"id": application_id, "pwd": self.review_password})
        return f"{base}/api/friend-review?{query}"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from environment variables (os.environ by default)."""
        env = os.environ if environ is None else environ

        def get(key: str, default: str = "") -> str:
            return (env.get(key) or default).strip()

        owner, _, repo = get("GITHUB_REPO").partition("/")
        port_raw = get("SMTP_PORT", "465")
        try:
            port = int(port_raw)
        except ValueError as exc:
            raise ValueError(f"SMTP_PORT must be an integer, got {port_raw!r}") from exc

        return cls(
            review_password=get("PR_PASSWORD"),
            admin_email=get("ADMIN_EMAIL"),
            api_domain=get("API_DOMAIN", "http://localhost:8000"),
            smtp=SmtpSettings(
                host=get("SMTP_HOST", "smtp.example.com"),
                port=port,
                secure=get("SMTP_SECURE", "true").lower() in _TRUE,
                user=get("SMTP_USER"),
                password=get("SMTP_PASS"),
            ),
            github_token=get("GITHUB_TOKEN"),
            github_owner=owner,
            github_repo=repo,
            link_file_path=get("LINK_FILE_PATH", DEFAULT_LINK_FILE_PATH),
            github_api_url=get("GITHUB_API_URL", DEFAULT_GITHUB_API_URL),
            neo4j_uri=get("NEO4J_URI", "bolt://localhost:7687"),
            neo4j_user=get("NEO4J_USER", "neo4j"),
            neo4j_password=get("NEO4J_PASSWORD", "password"),
        )
