"""Domain exceptions shared by services and routers.

Each error carries the HTTP status it maps to so routers and the global
exception handler can translate it without a lookup table.
"""


class KarbargError(RuntimeError):
    """Base class for expected, user-facing failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PermissionDeniedError(KarbargError):
    """The caller is authenticated but not allowed to perform the action."""

    status_code = 403


class NotFoundError(KarbargError):
    """A referenced question, answer, user or record is missing or hidden."""

    status_code = 404


class ValidationFailedError(KarbargError):
    """Input is well-formed JSON but violates a business rule."""

    status_code = 400


class ConflictError(KarbargError):
    """The request conflicts with the current state of the resource."""

    status_code = 409


class RateLimitExceededError(KarbargError):
    """A daily posting limit was reached."""

    status_code = 429


class ServiceDisabledError(KarbargError):
    """The feature is switched off in runtime settings."""

    status_code = 503
