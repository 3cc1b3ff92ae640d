"""Process-local backend for ``--demo`` mode and tests.

Rows live in a shared :class:`MemoryDatabase` so several backend instances
(one per simulated client) see the same table and receive each other's
change events, the way two browser tabs do against the hosted backend.
"""

from __future__ import annotations

import itertools
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from ..errors import AuthError, BackendError
from ..log import logger
from ..models import Session
from .base import (
    AuthListener,
    BookmarkBackend,
    ChangeListener,
    Subscription,
    Unsubscribe,
)

DEMO_SESSION = Session(user_id="demo-user", email="demo@example.com", access_token="demo")


class MemorySubscription(Subscription):
    def __init__(self, user_id: str, listener: ChangeListener) -> None:
        self.user_id = user_id
        self.listener = listener
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def close(self) -> None:
        self._active = False


@dataclass
class MemoryDatabase:
    """The shared table plus the live subscriptions fanned out on writes."""

    rows: list[dict[str, Any]] = field(default_factory=list)
    subscriptions: list[MemorySubscription] = field(default_factory=list)
    # Monotonic clock so rows created in the same instant still order
    _clock: itertools.count = field(default_factory=itertools.count)
    _base: datetime = field(
        default_factory=lambda: datetime(2026, 1, 1, tzinfo=timezone.utc)
    )

    def next_timestamp(self) -> str:
        return (self._base + timedelta(seconds=next(self._clock))).isoformat()

    def active_subscriptions(self, user_id: str | None = None) -> list[MemorySubscription]:
        return [
            s
            for s in self.subscriptions
            if s.active and (user_id is None or s.user_id == user_id)
        ]

    def broadcast(self, event: str, new: dict | None, old: dict | None) -> None:
        owner = (new or old or {}).get("user_id")
        payload = {
            "eventType": event,
            "table": "bookmarks",
            "new": dict(new or {}),
            "old": dict(old or {}),
        }
        for sub in self.active_subscriptions(owner):
            sub.listener(event, payload)


class MemoryBackend(BookmarkBackend):
    """BookmarkBackend over a :class:`MemoryDatabase`.

    ``fail_next`` makes the next call to the named operation raise a
    BackendError, which is how tests exercise failure paths.
    """

    uses_redirect = False

    def __init__(
        self,
        database: MemoryDatabase | None = None,
        *,
        session: Session | None = None,
        sign_in_session: Session = DEMO_SESSION,
    ) -> None:
        self.db = database if database is not None else MemoryDatabase()
        self._session = session
        self._sign_in_session = sign_in_session
        self._auth_listeners: list[AuthListener] = []
        self.fail_next: set[str] = set()
        self.calls: list[str] = []

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_next:
            self.fail_next.discard(operation)
            raise BackendError("simulated failure", operation=operation)

    def _emit_auth(self, event: str) -> None:
        for listener in list(self._auth_listeners):
            listener(event, self._session)

    # -- sessions -------------------------------------------------------------

    async def get_session(self) -> Session | None:
        self._check("get_session")
        return self._session

    def on_auth_change(self, listener: AuthListener) -> Unsubscribe:
        self._auth_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._auth_listeners:
                self._auth_listeners.remove(listener)

        return unsubscribe

    async def sign_in(self, provider: str, redirect_to: str) -> str | None:
        # No browser round trip: signing in completes immediately.
        try:
            self._check("sign_in")
        except BackendError as exc:
            raise AuthError(str(exc.args[0]), operation="sign_in") from exc
        self._session = self._sign_in_session
        self._emit_auth("SIGNED_IN")
        return None

    async def complete_sign_in(self, code: str) -> None:
        self._check("complete_sign_in")
        if not code:
            raise AuthError("missing authorization code", operation="complete_sign_in")
        self._session = self._sign_in_session
        self._emit_auth("SIGNED_IN")

    async def sign_out(self) -> None:
        self._check("sign_out")
        self._session = None
        self._emit_auth("SIGNED_OUT")

    def refresh_token(self, access_token: str) -> None:
        """Simulate a token refresh for the current session."""
        if self._session is None:
            return
        self._session = Session(
            user_id=self._session.user_id,
            email=self._session.email,
            access_token=access_token,
        )
        self._emit_auth("TOKEN_REFRESHED")

    # -- table ----------------------------------------------------------------

    async def select_bookmarks(self, user_id: str) -> list[dict[str, Any]]:
        self._check("select")
        rows = [dict(r) for r in self.db.rows if r["user_id"] == user_id]
        rows.sort(key=lambda r: r["created_at"], reverse=True)
        return rows

    async def insert_bookmark(self, row: dict[str, Any]) -> dict[str, Any]:
        self._check("insert")
        stored = {
            "id": str(uuid.uuid4()),
            "title": row["title"],
            "url": row["url"],
            "user_id": row["user_id"],
            "created_at": self.db.next_timestamp(),
        }
        self.db.rows.append(stored)
        logger.debug("memory backend inserted %s", stored["id"])
        self.db.broadcast("INSERT", stored, None)
        return dict(stored)

    async def update_bookmark(
        self, bookmark_id: str, user_id: str, fields: dict[str, Any]
    ) -> dict[str, Any] | None:
        self._check("update")
        for row in self.db.rows:
            if row["id"] == bookmark_id and row["user_id"] == user_id:
                old = dict(row)
                row.update({k: v for k, v in fields.items() if k in ("title", "url")})
                self.db.broadcast("UPDATE", row, old)
                return dict(row)
        return None

    async def delete_bookmark(self, bookmark_id: str, user_id: str) -> None:
        self._check("delete")
        for row in list(self.db.rows):
            if row["id"] == bookmark_id and row["user_id"] == user_id:
                self.db.rows.remove(row)
                self.db.broadcast("DELETE", None, {"id": row["id"], "user_id": user_id})

    # -- change feed ----------------------------------------------------------

    async def subscribe(self, user_id: str, listener: ChangeListener) -> Subscription:
        self._check("subscribe")
        sub = MemorySubscription(user_id, listener)
        self.db.subscriptions.append(sub)
        return sub

    async def unsubscribe(self, subscription: Subscription) -> None:
        self.calls.append("unsubscribe")
        if isinstance(subscription, MemorySubscription):
            subscription.close()
            if subscription in self.db.subscriptions:
                self.db.subscriptions.remove(subscription)
