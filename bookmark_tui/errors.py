"""Exception types raised at the package's seams."""

from __future__ import annotations


class BookmarkTuiError(Exception):
    """Base class for errors raised by bookmark_tui."""


class ConfigError(BookmarkTuiError):
    """Configuration is missing or unusable (e.g. no backend credentials)."""


class BackendError(BookmarkTuiError):
    """A backend request failed (network, server, or malformed response)."""

    def __init__(self, message: str, *, operation: str = "") -> None:
        super().__init__(message)
        self.operation = operation

    def __str__(self) -> str:
        msg = super().__str__()
        return f"{self.operation}: {msg}" if self.operation else msg


class AuthError(BackendError):
    """Sign-in, sign-out, or code exchange failed."""
