"""Supabase implementation of the backend contract.

Wraps ``supabase.AsyncClient``: auth for sessions, PostgREST for the
bookmarks table, and realtime ``postgres_changes`` for the change feed.
The client is created with the PKCE flow so a terminal app can finish
OAuth by exchanging the redirect's ``code`` for a session.

Every supabase/postgrest/httpx failure is re-raised as BackendError
(AuthError for auth calls) with the original exception chained.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
from supabase import (
    AsyncClient,
    AuthError as SupabaseAuthError,
    NotConnectedError,
    PostgrestAPIError,
    acreate_client,
)
from supabase.lib.client_options import AsyncClientOptions

from ..config import BackendConfig
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

_REQUEST_ERRORS = (
    PostgrestAPIError,
    SupabaseAuthError,
    NotConnectedError,
    httpx.HTTPError,
    asyncio.TimeoutError,
    OSError,
)

# The only subscribe state that means the channel joined
SUBSCRIBED = "SUBSCRIBED"
SUBSCRIBE_TIMEOUT = 10.0


def to_session(raw: Any) -> Session | None:
    """Convert a supabase auth Session (or None) to our Session."""
    if raw is None or getattr(raw, "user", None) is None:
        return None
    user = raw.user
    return Session(
        user_id=str(user.id),
        email=str(getattr(user, "email", "") or ""),
        access_token=str(getattr(raw, "access_token", "") or ""),
    )


def normalize_change(payload: dict[str, Any]) -> tuple[str, dict[str, Any]]:
    """Flatten a realtime postgres_changes payload.

    Realtime nests the change under ``data`` with ``type``/``record``/
    ``old_record``; the JS client shape uses ``eventType``/``new``/``old``.
    Both are accepted and returned as ``(event_type, {eventType, new, old})``.
    """
    data = payload.get("data", payload) if isinstance(payload, dict) else {}
    event = str(data.get("type") or data.get("eventType") or "").upper()
    new = data.get("record") or data.get("new") or {}
    old = data.get("old_record") or data.get("old") or {}
    return event, {"eventType": event, "table": data.get("table", ""), "new": new, "old": old}


class SupabaseSubscription(Subscription):
    def __init__(self, user_id: str, channel: Any) -> None:
        self.user_id = user_id
        self.channel = channel
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def mark_closed(self) -> None:
        self._active = False


class SupabaseBackend(BookmarkBackend):
    """BookmarkBackend backed by a Supabase project."""

    def __init__(
        self,
        client: AsyncClient,
        config: BackendConfig,
        *,
        subscribe_timeout: float = SUBSCRIBE_TIMEOUT,
    ) -> None:
        self.client = client
        self.config = config
        self.subscribe_timeout = subscribe_timeout

    @classmethod
    async def connect(cls, config: BackendConfig) -> SupabaseBackend:
        """Create the async client for *config* (url + anon key)."""
        try:
            client = await acreate_client(
                config.url,
                config.key,
                options=AsyncClientOptions(flow_type="pkce"),
            )
        except (*_REQUEST_ERRORS, ValueError) as exc:
            raise BackendError(str(exc), operation="connect") from exc
        logger.info("Connected to Supabase at %s", config.url)
        return cls(client, config)

    def _table(self):
        return self.client.table(self.config.table)

    # -- sessions -------------------------------------------------------------

    async def get_session(self) -> Session | None:
        try:
            return to_session(await self.client.auth.get_session())
        except _REQUEST_ERRORS as exc:
            raise AuthError(str(exc), operation="get_session") from exc

    def on_auth_change(self, listener: AuthListener) -> Unsubscribe:
        def _callback(event: Any, raw_session: Any) -> None:
            listener(str(event), to_session(raw_session))

        subscription = self.client.auth.on_auth_state_change(_callback)
        return subscription.unsubscribe

    async def sign_in(self, provider: str, redirect_to: str) -> str | None:
        try:
            response = await self.client.auth.sign_in_with_oauth(
                {"provider": provider, "options": {"redirect_to": redirect_to}}
            )
        except _REQUEST_ERRORS as exc:
            raise AuthError(str(exc), operation="sign_in") from exc
        return getattr(response, "url", None)

    async def complete_sign_in(self, code: str) -> None:
        try:
            await self.client.auth.exchange_code_for_session({"auth_code": code})
        except _REQUEST_ERRORS as exc:
            raise AuthError(str(exc), operation="complete_sign_in") from exc

    async def sign_out(self) -> None:
        try:
            await self.client.auth.sign_out()
        except _REQUEST_ERRORS as exc:
            raise AuthError(str(exc), operation="sign_out") from exc

    # -- table ----------------------------------------------------------------

    async def select_bookmarks(self, user_id: str) -> list[dict[str, Any]]:
        try:
            response = await (
                self._table()
                .select("*")
                .eq("user_id", user_id)
                .order("created_at", desc=True)
                .execute()
            )
        except _REQUEST_ERRORS as exc:
            raise BackendError(str(exc), operation="select") from exc
        return list(response.data or [])

    async def insert_bookmark(self, row: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self._table().insert(row).execute()
        except _REQUEST_ERRORS as exc:
            raise BackendError(str(exc), operation="insert") from exc
        if not response.data:
            raise BackendError("insert returned no row", operation="insert")
        return response.data[0]

    async def update_bookmark(
        self, bookmark_id: str, user_id: str, fields: dict[str, Any]
    ) -> dict[str, Any] | None:
        try:
            response = await (
                self._table()
                .update(fields)
                .eq("id", bookmark_id)
                .eq("user_id", user_id)
                .execute()
            )
        except _REQUEST_ERRORS as exc:
            raise BackendError(str(exc), operation="update") from exc
        return response.data[0] if response.data else None

    async def delete_bookmark(self, bookmark_id: str, user_id: str) -> None:
        try:
            await (
                self._table()
                .delete()
                .eq("id", bookmark_id)
                .eq("user_id", user_id)
                .execute()
            )
        except _REQUEST_ERRORS as exc:
            raise BackendError(str(exc), operation="delete") from exc

    # -- change feed ----------------------------------------------------------

    async def subscribe(self, user_id: str, listener: ChangeListener) -> Subscription:
        """Join a channel filtered to *user_id*'s rows and wait for the server to confirm.

        Realtime reports join failures only through the subscribe state
        callback, so anything but ``SUBSCRIBED`` within the timeout is
        raised as BackendError and the channel is dropped.
        """

        def _callback(payload: dict[str, Any]) -> None:
            event, change = normalize_change(payload)
            listener(event, change)

        joined: asyncio.Future[tuple[str, Any]] = asyncio.get_running_loop().create_future()

        def _on_state(state: Any, error: Exception | None = None) -> None:
            status = str(getattr(state, "value", state))
            if joined.done():
                logger.debug("Realtime channel for %s is now %s", user_id, status)
                return
            joined.set_result((status, error))

        channel = self.client.channel(f"{self.config.table}:{user_id}")
        channel.on_postgres_changes(
            "*",
            schema="public",
            table=self.config.table,
            filter=f"user_id=eq.{user_id}",
            callback=_callback,
        )
        try:
            await channel.subscribe(_on_state)
            status, error = await asyncio.wait_for(joined, self.subscribe_timeout)
        except _REQUEST_ERRORS as exc:
            await self._drop_channel(channel)
            message = str(exc) or "no reply from realtime"
            raise BackendError(message, operation="subscribe") from exc
        if status != SUBSCRIBED:
            await self._drop_channel(channel)
            detail = f" ({error})" if error else ""
            raise BackendError(f"channel {status.lower()}{detail}", operation="subscribe")
        logger.debug("Realtime channel open for %s", user_id)
        return SupabaseSubscription(user_id, channel)

    async def _drop_channel(self, channel: Any) -> None:
        try:
            await self.client.remove_channel(channel)
        except _REQUEST_ERRORS:
            logger.debug("remove_channel failed", exc_info=True)

    async def unsubscribe(self, subscription: Subscription) -> None:
        if not isinstance(subscription, SupabaseSubscription) or not subscription.active:
            return
        subscription.mark_closed()
        # The channel is dead either way; nothing for the caller to retry.
        await self._drop_channel(subscription.channel)

    async def close(self) -> None:
        try:
            await self.client.remove_all_channels()
        except _REQUEST_ERRORS:
            logger.debug("remove_all_channels failed", exc_info=True)
