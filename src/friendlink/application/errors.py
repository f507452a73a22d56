"""Errors raised by the application layer. The API maps each to an HTTP status."""


class FriendLinkError(Exception):
    """Base class for expected failures of a friend-link operation."""


class ValidationError(FriendLinkError):
    """Missing or empty input; raised before any side effect."""


class AuthorizationError(FriendLinkError):
    """Review credential mismatch; raised before the record is read."""


class NotFoundError(FriendLinkError):
    """Unknown application id, or the entry to update is gone from the link list."""


class StateTransitionError(FriendLinkError):
    """The requested decision conflicts with the one already taken."""


class ExternalServiceError(FriendLinkError):
    """The store, mail relay or code host failed. The cause is chained."""
