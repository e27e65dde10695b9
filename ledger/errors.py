__all__ = ["StoreError", "TransportError", "AuthError", "ValidationError"]


class StoreError(Exception):
    """The Transaction Store rejected a request (envelope without success: true)."""

    def __init__(self, message: str = "Request failed", status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TransportError(StoreError):
    """Store unreachable or timed out."""


class AuthError(StoreError):
    """Session token missing, expired or rejected."""


class ValidationError(StoreError):
    """A form failed client-side checks before dispatch."""
