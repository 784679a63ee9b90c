class PlatformError(Exception):
    """Base class for errors surfaced to the caller as user-facing messages."""

    status_code = 500

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class NotFound(PlatformError):
    status_code = 404


class InvalidCredential(PlatformError):
    status_code = 401


class Unauthorized(PlatformError):
    status_code = 403


class ValidationFailed(PlatformError):
    status_code = 422


class UpstreamFailure(PlatformError):
    status_code = 502
