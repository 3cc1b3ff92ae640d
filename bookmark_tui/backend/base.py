"""Backend contract used by the state layer.

A backend bundles the three capabilities the app consumes from the hosted
platform: sessions (OAuth sign-in/out and auth-change notifications), the
``bookmarks`` table, and a change feed on that table.  Implementations
raise :class:`~bookmark_tui.errors.BackendError` for every failure so the
callers only ever handle one exception family.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from ..models import Session

# (event, session) -- event is the provider's name, e.g. "SIGNED_IN"
AuthListener = Callable[[str, "Session | None"], None]

# (event_type, payload) -- event_type is "INSERT" | "UPDATE" | "DELETE"
ChangeListener = Callable[[str, dict[str, Any]], None]

Unsubscribe = Callable[[], None]


class Subscription(ABC):
    """Handle for a live change-feed subscription."""

    user_id: str

    @property
    @abstractmethod
    def active(self) -> bool:
        """True until the subscription has been closed."""


class BookmarkBackend(ABC):
    """Sessions, table access, and change feed for the bookmarks table."""

    # False when sign_in completes without a browser redirect
    uses_redirect = True

    # -- sessions -------------------------------------------------------------

    @abstractmethod
    async def get_session(self) -> Session | None:
        """Return the current session, if the backend already has one."""

    @abstractmethod
    def on_auth_change(self, listener: AuthListener) -> Unsubscribe:
        """Register *listener* for sign-in/refresh/sign-out events."""

    @abstractmethod
    async def sign_in(self, provider: str, redirect_to: str) -> str | None:
        """Start an OAuth sign-in and return the URL to open (if any)."""

    @abstractmethod
    async def complete_sign_in(self, code: str) -> None:
        """Exchange the OAuth redirect *code* for a session."""

    @abstractmethod
    async def sign_out(self) -> None:
        """End the current session."""

    # -- table ----------------------------------------------------------------

    @abstractmethod
    async def select_bookmarks(self, user_id: str) -> list[dict[str, Any]]:
        """Rows owned by *user_id*, newest ``created_at`` first."""

    @abstractmethod
    async def insert_bookmark(self, row: dict[str, Any]) -> dict[str, Any]:
        """Insert *row* and return the stored row (with id and created_at)."""

    @abstractmethod
    async def update_bookmark(
        self, bookmark_id: str, user_id: str, fields: dict[str, Any]
    ) -> dict[str, Any] | None:
        """Update the matching row; return it, or None if nothing matched."""

    @abstractmethod
    async def delete_bookmark(self, bookmark_id: str, user_id: str) -> None:
        """Delete the row with *bookmark_id* owned by *user_id*."""

    # -- change feed ----------------------------------------------------------

    @abstractmethod
    async def subscribe(self, user_id: str, listener: ChangeListener) -> Subscription:
        """Open a change feed on rows owned by *user_id*."""

    @abstractmethod
    async def unsubscribe(self, subscription: Subscription) -> None:
        """Close *subscription*.  Closing twice is a no-op."""

    async def close(self) -> None:  # noqa: B027
        """Release client resources (sockets, HTTP pools)."""
