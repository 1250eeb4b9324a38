"""Error taxonomy shared by the repository, services and HTTP layer."""


class MarketplaceError(Exception):
    """Base class for errors that map to an HTTP response."""

    status_code = 500
    public_message: str | None = None

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def to_public(self) -> str:
        """Message that is safe to show to the client."""
        return self.public_message or self.message or self.__class__.__name__


class ValidationError(MarketplaceError):
    """Malformed or missing input. The message is shown verbatim."""

    status_code = 400


class Unauthorized(MarketplaceError):
    status_code = 401
    public_message = "Unauthorized"


class Forbidden(MarketplaceError):
    status_code = 403
    public_message = "Forbidden"


class NotFound(MarketplaceError):
    status_code = 404


class StorageUnavailable(MarketplaceError):
    """Infrastructure failure. Retryable; internal detail is never exposed."""

    status_code = 500
    public_message = "Service temporarily unavailable, please try again"
    retryable = True
