"""Session Store: the current signed-in identity, kept in sync with the backend."""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum

from ..backend.base import BookmarkBackend, Unsubscribe
from ..errors import BackendError
from ..log import logger
from ..models import OpResult, Session


class SessionState(Enum):
    UNKNOWN = "unknown"  # initial answer not in yet; rendered like signed-out
    SIGNED_OUT = "signed_out"
    SIGNED_IN = "signed_in"


SessionListener = Callable[["Session | None"], None]


class SessionStore:
    """Holds the current Session (or none).

    Populated once by :meth:`initialize` and then replaced on every auth
    event the backend reports.  Sign-in and sign-out never touch the
    session directly; the resulting auth event does.
    """

    def __init__(self, backend: BookmarkBackend) -> None:
        self._backend = backend
        self._session: Session | None = None
        self._state = SessionState.UNKNOWN
        self._listeners: list[SessionListener] = []
        self._unsubscribe: Unsubscribe | None = None
        self._closed = False

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def add_listener(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    async def initialize(self) -> OpResult[Session]:
        """Register for auth events, then ask the backend for a session."""
        if self._unsubscribe is None and not self._closed:
            self._unsubscribe = self._backend.on_auth_change(self.on_auth_change)
        try:
            session = await self._backend.get_session()
        except BackendError as exc:
            logger.warning("Could not read existing session: %s", exc)
            if not self._closed and self._state is SessionState.UNKNOWN:
                self._set(None)
            return OpResult.failure(str(exc))
        # An auth event may have landed while get_session was in flight;
        # it is newer, so it wins.
        if not self._closed and self._state is SessionState.UNKNOWN:
            self._set(session)
        return OpResult.success(self._session)

    def on_auth_change(self, event: str, session: Session | None) -> None:
        """Backend auth listener: last event wins, no debouncing."""
        if self._closed:
            return
        logger.debug("auth event %s (signed in: %s)", event, session is not None)
        self._set(session)

    async def sign_in(self, provider: str, redirect_to: str) -> OpResult[str]:
        """Start OAuth; the value is the URL to open, if the backend has one."""
        try:
            url = await self._backend.sign_in(provider, redirect_to)
        except BackendError as exc:
            logger.warning("Sign-in failed: %s", exc)
            return OpResult.failure(str(exc))
        return OpResult.success(url)

    async def complete_sign_in(self, code: str) -> OpResult[None]:
        try:
            await self._backend.complete_sign_in(code)
        except BackendError as exc:
            logger.warning("Code exchange failed: %s", exc)
            return OpResult.failure(str(exc))
        return OpResult.success()

    async def sign_out(self) -> OpResult[None]:
        try:
            await self._backend.sign_out()
        except BackendError as exc:
            logger.warning("Sign-out failed: %s", exc)
            return OpResult.failure(str(exc))
        return OpResult.success()

    def close(self) -> None:
        """Deregister the auth listener; later events are ignored."""
        self._closed = True
        if self._unsubscribe is not None:
            try:
                self._unsubscribe()
            except Exception:
                logger.debug("auth listener unsubscribe failed", exc_info=True)
            self._unsubscribe = None
        self._listeners.clear()

    def _set(self, session: Session | None) -> None:
        previous = self._session
        self._session = session
        self._state = SessionState.SIGNED_IN if session else SessionState.SIGNED_OUT
        if previous == session and previous is not None:
            return
        for listener in list(self._listeners):
            listener(session)
