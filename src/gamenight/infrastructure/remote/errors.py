"""Errors raised by the remote data client."""

from typing import Any, Mapping


class RemoteError(Exception):
    """Base class for everything the backend can report."""
    pass


class RemoteDataError(RemoteError):
    """A query or write was rejected.

    Mirrors the error body returned by the query API.

    Attributes:
        code: Backend error code (e.g. '23505' for a unique violation), if any.
        message: Human-readable message.
        details: Extra detail from the backend.
        hint: Suggested fix from the backend.
        status_code: HTTP status, when the error came from an HTTP response.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: str | None = None,
        hint: str | None = None,
        status_code: int | None = None,
    ):
        self.message = message
        self.code = code
        self.details = details
        self.hint = hint
        self.status_code = status_code
        super().__init__(f"[{code}] {message}" if code else message)

    @classmethod
    def from_body(cls, body: Mapping[str, Any], status_code: int | None = None) -> "RemoteDataError":
        return cls(
            message=body.get("message") or body.get("msg") or "Request failed",
            code=body.get("code"),
            details=body.get("details"),
            hint=body.get("hint"),
            status_code=status_code,
        )

    @property
    def kind(self) -> str:
        """Coarse error classification used in logs and state."""
        if self.code == "PGRST116":
            return "not_found"
        if self.code and self.code.startswith("23"):
            return "conflict"
        if self.status_code in (401, 403):
            return "unauthorized"
        if self.status_code is not None and self.status_code >= 500:
            return "server"
        return "request"


class AuthError(RemoteError):
    """Sign-in, sign-out or session refresh failed."""
    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class SubscriptionError(RemoteError):
    """A change-event channel could not be joined."""
    pass
