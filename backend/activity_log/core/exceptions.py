"""Error types shared by the services and the API layer."""

from __future__ import annotations


class ActivityLogError(Exception):
    """Base class for errors raised by the activity log services."""


class ValidationError(ActivityLogError):
    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


class NotFoundError(ActivityLogError):
    pass


class PermissionDeniedError(ActivityLogError):
    pass


class StoreUnavailableError(ActivityLogError):
    """The document store could not serve a request."""


class MissingIndexError(ActivityLogError):
    """An ordered query needs an index the container does not define."""


class IdentityProviderError(ActivityLogError):
    """Listing users from the identity provider failed."""
