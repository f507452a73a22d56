"""
Friendlink core: clean-architecture layout.

- domain: entities (FriendApplication, LinkEntry) and link-list logic
  (normalize, match, patch, serialize, diff). No outer dependencies.
- application: use cases (FriendLinkService), ports (ApplicationRepository,
  Mailer, LinkHost), notifications, DTOs and errors.
- infrastructure: adapters (InMemoryApplicationRepository,
  Neo4jApplicationRepository, SmtpMailer, GitHubLinkHost).
"""

from friendlink.application import (
    ApplicationRepository,
    ApprovalResult,
    AuthorizationError,
    DiffPreview,
    ExternalServiceError,
    FriendLinkError,
    FriendLinkService,
    LinkHost,
    Mailer,
    NotFoundError,
    Notifier,
    StateTransitionError,
    ValidationError,
)
from friendlink.config import Settings, SmtpSettings
from friendlink.domain import ApplicationState, FriendApplication, FriendProfile, LinkEntry
from friendlink.infrastructure import (
    GitHubLinkHost,
    InMemoryApplicationRepository,
    Neo4jApplicationRepository,
    SmtpMailer,
)

__all__ = [
    "ApplicationRepository",
    "ApplicationState",
    "ApprovalResult",
    "AuthorizationError",
    "DiffPreview",
    "ExternalServiceError",
    "FriendApplication",
    "FriendLinkError",
    "FriendLinkService",
    "FriendProfile",
    "GitHubLinkHost",
    "InMemoryApplicationRepository",
    "LinkEntry",
    "LinkHost",
    "Mailer",
    "Neo4jApplicationRepository",
    "NotFoundError",
    "Notifier",
    "Settings",
    "SmtpMailer",
    "SmtpSettings",
    "StateTransitionError",
    "ValidationError",
]
