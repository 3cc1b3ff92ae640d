"""Sync Subscriber: one live change-feed subscription per signed-in session.

Any change event triggers a full list refresh; the event payload itself is
not applied.  Bursts of events are coalesced so at most one refresh runs
and at most one more is queued behind it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from ..backend.base import BookmarkBackend, Subscription
from ..errors import BackendError
from ..log import logger
from ..models import OpResult, Session

Refresh = Callable[[], Awaitable[Any]]


class SyncSubscriber:
    def __init__(self, backend: BookmarkBackend, refresh: Refresh) -> None:
        self._backend = backend
        self._refresh = refresh
        self._subscription: Subscription | None = None
        self._lock = asyncio.Lock()
        self._refresh_task: asyncio.Task | None = None
        self._refresh_pending = False
        self.events_seen = 0

    @property
    def user_id(self) -> str | None:
        sub = self._subscription
        return sub.user_id if sub is not None and sub.active else None

    @property
    def is_open(self) -> bool:
        return self.user_id is not None

    async def open(self, session: Session) -> OpResult[None]:
        """Subscribe for *session*'s user, closing any other subscription first."""
        async with self._lock:
            if self.user_id == session.user_id:
                return OpResult.success()
            await self._close_locked()
            try:
                self._subscription = await self._backend.subscribe(
                    session.user_id, self._on_change
                )
            except BackendError as exc:
                logger.warning("Live updates unavailable: %s", exc)
                return OpResult.failure(str(exc))
            logger.debug("live feed opened for %s", session.user_id)
            return OpResult.success()

    async def close(self) -> None:
        async with self._lock:
            await self._close_locked()
        task = self._refresh_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._refresh_task = None
        self._refresh_pending = False

    async def _close_locked(self) -> None:
        sub, self._subscription = self._subscription, None
        if sub is not None:
            await self._backend.unsubscribe(sub)
            logger.debug("live feed closed for %s", sub.user_id)

    def _on_change(self, event: str, payload: dict[str, Any]) -> None:
        user_id = self.user_id
        if user_id is None:
            return
        for key in ("new", "old"):
            record = payload.get(key) or {}
            owner = record.get("user_id")
            if owner is not None and owner != user_id:
                logger.debug("ignoring %s event for another user", event)
                return
        self.events_seen += 1
        self.request_refresh()

    def request_refresh(self) -> None:
        """Schedule a refresh, coalescing with one already running."""
        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_pending = True
            return
        self._refresh_task = asyncio.get_running_loop().create_task(self._run_refresh())

    async def _run_refresh(self) -> None:
        while True:
            self._refresh_pending = False
            try:
                await self._refresh()
            except Exception:
                logger.warning("live refresh failed", exc_info=True)
            if not self._refresh_pending or not self.is_open:
                return

    async def wait_idle(self) -> None:
        """Wait for any scheduled refresh to finish or be cancelled by close()."""
        while self._refresh_task is not None and not self._refresh_task.done():
            task = self._refresh_task
            try:
                await asyncio.shield(task)
            except asyncio.CancelledError:
                # Only swallow the refresh being cancelled, not our own cancellation.
                if not task.cancelled():
                    raise
                return
