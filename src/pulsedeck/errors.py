"""Custom exceptions for the PulseDeck metrics API."""


class PulseDeckError(Exception):
    """Base exception for all PulseDeck errors."""

    status_code = 500
    error_code = "INTERNAL_SERVER_ERROR"


class ValidationError(PulseDeckError):
    """Raised for malformed or inconsistent request input."""

    status_code = 400

    def __init__(self, message: str, error_code: str = "VALIDATION_ERROR"):
        self.error_code = error_code
        super().__init__(message)


class NotFoundError(PulseDeckError):
    """Raised when a workspace does not exist or is not accessible."""

    status_code = 404
    error_code = "WORKSPACE_NOT_FOUND"

    def __init__(self, workspace_id: str):
        self.workspace_id = workspace_id
        super().__init__(f"Workspace not found: {workspace_id}")


class RateLimitExceededError(PulseDeckError):
    """Raised when a caller exhausts its request window."""

    status_code = 429
    error_code = "RATE_LIMIT_EXCEEDED"

    def __init__(self, client_id: str, retry_after: float):
        self.client_id = client_id
        self.retry_after = retry_after
        super().__init__("Too many requests, please try again later")


class DependencyError(PulseDeckError):
    """Raised when the storage layer is unreachable or a query fails.

    The message is logged server-side only; callers receive a generic error.
    """

    status_code = 500
    error_code = "INTERNAL_SERVER_ERROR"
