"""Explicit state container tying session, list, live feed, and draft together.

The view never mutates state directly: it calls controller methods and
re-renders when a listener is told which part changed.  Session changes
are applied one at a time under a lock, so a sign-out that lands while
a sign-in's initial fetch is in flight can't leave a stale list behind.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from ..backend.base import BookmarkBackend
from ..config import Config
from ..log import logger
from ..models import Bookmark, OpResult, Session
from .bookmark_list import BookmarkList
from .draft import Draft, DraftError, DraftState
from .operations import BookmarkOperations
from .session_store import SessionState, SessionStore
from .sync import SyncSubscriber

# Change kinds passed to listeners
SESSION = "session"
BOOKMARKS = "bookmarks"
DRAFT = "draft"
ERROR = "error"

Listener = Callable[[str, str], None]

# fetch_all failures that aren't worth telling the user about
_QUIET_FAILURES = {"stale", "closed", "not signed in"}


class BookmarkController:
    def __init__(self, backend: BookmarkBackend, config: Config | None = None) -> None:
        config = config or Config()
        self.backend = backend
        self.provider = config.backend.provider
        self.redirect_url = config.backend.redirect_url
        self.live = config.sync.live

        self.session_store = SessionStore(backend)
        self.bookmarks = BookmarkList(backend, retries=config.sync.fetch_retries)
        self.operations = BookmarkOperations(backend, self.bookmarks)
        self.sync = SyncSubscriber(backend, self.refresh)
        self.draft = Draft()

        self._listeners: list[Listener] = []
        self._tasks: set[asyncio.Task] = set()
        self._transition_lock = asyncio.Lock()
        self._stopped = False
        self.session_store.add_listener(self._on_session)

    # -- state ----------------------------------------------------------------

    @property
    def session(self) -> Session | None:
        return self.session_store.session

    @property
    def session_state(self) -> SessionState:
        return self.session_store.state

    @property
    def items(self) -> list[Bookmark]:
        return self.bookmarks.items

    @property
    def stopped(self) -> bool:
        return self._stopped

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _notify(self, kind: str, message: str = "") -> None:
        if self._stopped:
            return
        for listener in list(self._listeners):
            try:
                listener(kind, message)
            except Exception:
                logger.warning("listener failed for %s", kind, exc_info=True)

    # -- lifecycle ------------------------------------------------------------

    async def start(self) -> OpResult[Session]:
        """Load any existing session and, if signed in, the bookmark list."""
        result = await self.session_store.initialize()
        if not result.ok:
            self._notify(ERROR, f"Could not check session: {result.error}")
        await self.settle()
        return result

    async def stop(self) -> None:
        """Tear everything down; safe to call more than once."""
        if self._stopped:
            return
        self._stopped = True
        self.session_store.close()
        for task in list(self._tasks):
            task.cancel()
        for task in list(self._tasks):
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks.clear()
        await self.sync.close()
        self.bookmarks.close()
        self.draft.reset()
        self._listeners.clear()

    async def settle(self) -> None:
        """Wait until pending session transitions and live refreshes finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self.sync.wait_idle()

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # -- session transitions --------------------------------------------------

    def _on_session(self, session: Session | None) -> None:
        if self._stopped:
            return
        self._notify(SESSION)
        self._spawn(self._apply_session())

    async def _apply_session(self) -> None:
        async with self._transition_lock:
            if self._stopped:
                return
            # Apply whatever is current now; earlier queued events are moot.
            session = self.session_store.session
            if session is None:
                await self.sync.close()
                self.bookmarks.clear()
                if self.draft.state is not DraftState.IDLE:
                    self.draft.reset()
                    self._notify(DRAFT)
                self._notify(BOOKMARKS)
                return

            if self.bookmarks.owner != session.user_id:
                self.bookmarks.clear()
                self.draft.reset()
                self._notify(DRAFT)
                await self.refresh()
            if self.live and self.sync.user_id != session.user_id:
                result = await self.sync.open(session)
                if not result.ok:
                    self._notify(ERROR, f"Live updates unavailable: {result.error}")

    async def sign_in(self) -> OpResult[str]:
        result = await self.session_store.sign_in(self.provider, self.redirect_url)
        if not result.ok:
            self._notify(ERROR, f"Sign-in failed: {result.error}")
        return result

    async def complete_sign_in(self, code: str) -> OpResult[None]:
        result = await self.session_store.complete_sign_in(code)
        if not result.ok:
            self._notify(ERROR, f"Sign-in failed: {result.error}")
        return result

    async def sign_out(self) -> OpResult[None]:
        result = await self.session_store.sign_out()
        if not result.ok:
            self._notify(ERROR, f"Sign-out failed: {result.error}")
        return result

    # -- list -----------------------------------------------------------------

    async def refresh(self) -> OpResult[list[Bookmark]]:
        result = await self.operations.read_all(self.session)
        if result.ok or result.error not in _QUIET_FAILURES:
            self._notify(BOOKMARKS)
        if not result.ok and result.error not in _QUIET_FAILURES:
            self._notify(ERROR, f"Could not load bookmarks: {result.error}")
        return result

    # -- draft ----------------------------------------------------------------

    def set_title(self, text: str) -> bool:
        return self._draft_call(self.draft.set_title, text)

    def set_url(self, text: str) -> bool:
        return self._draft_call(self.draft.set_url, text)

    def begin_edit(self, bookmark_id: str) -> bool:
        bookmark = self.bookmarks.get(bookmark_id)
        if bookmark is None:
            return False
        return self._draft_call(self.draft.begin_edit, bookmark)

    def cancel_edit(self) -> bool:
        if not self.draft.is_editing:
            return False
        return self._draft_call(self.draft.cancel)

    def _draft_call(self, method, *args) -> bool:
        try:
            method(*args)
        except DraftError as exc:
            logger.debug("draft transition refused: %s", exc)
            return False
        self._notify(DRAFT)
        return True

    # -- mutations ------------------------------------------------------------

    async def submit(self) -> OpResult[Bookmark]:
        """Create or update from the draft, depending on the edit target."""
        if self.draft.state is DraftState.SUBMITTING:
            return OpResult.failure("already submitting")
        if not self.draft.is_complete:
            return OpResult.failure("title and URL are required")

        session = self.session
        draft = self.draft.begin_submit()
        self._notify(DRAFT)
        if draft.editing_id is not None:
            result = await self.operations.update(
                session, draft.editing_id, draft.title, draft.url
            )
            verb = "update"
        else:
            result = await self.operations.create(session, draft.title, draft.url)
            verb = "add"

        # A sign-out mid-flight already reset the draft.
        if self.draft.state is DraftState.SUBMITTING:
            self.draft.finish_submit(result.ok)
        self._notify(BOOKMARKS)
        self._notify(DRAFT)
        if not result.ok:
            self._notify(ERROR, f"Could not {verb} bookmark: {result.error}")
        return result

    async def delete(self, bookmark_id: str) -> OpResult[None]:
        result = await self.operations.delete(self.session, bookmark_id)
        if result.ok:
            if self.draft.editing_id == bookmark_id and self.draft.state is DraftState.EDITING:
                self.draft.reset()
                self._notify(DRAFT)
            self._notify(BOOKMARKS)
        else:
            self._notify(ERROR, f"Could not delete bookmark: {result.error}")
        return result
