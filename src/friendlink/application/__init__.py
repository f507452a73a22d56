"""Application layer: use cases, ports, DTOs and errors. Depends only on domain."""

from friendlink.application.dto import (
    ApprovalResult,
    DiffPreview,
    MailMessage,
    PullRequest,
    RemoteFile,
)
from friendlink.application.errors import (
    AuthorizationError,
    ExternalServiceError,
    FriendLinkError,
    NotFoundError,
    StateTransitionError,
    ValidationError,
)
from friendlink.application.friend_service import FriendLinkService
from friendlink.application.notifications import Notifier
from friendlink.application.ports import ApplicationRepository, LinkHost, Mailer

__all__ = [
    "ApplicationRepository",
    "ApprovalResult",
    "AuthorizationError",
    "DiffPreview",
    "ExternalServiceError",
    "FriendLinkError",
    "FriendLinkService",
    "LinkHost",
    "MailMessage",
    "Mailer",
    "NotFoundError",
    "Notifier",
    "PullRequest",
    "RemoteFile",
    "StateTransitionError",
    "ValidationError",
]
