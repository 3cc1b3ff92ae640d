"""Bookmark List Cache: the signed-in user's bookmarks, newest first.

The cache is a disposable projection of the backend table.  ``fetch_all``
replaces it wholesale; the patch helpers let the controller reflect a
confirmed write before the live feed's refresh lands.
"""

from __future__ import annotations

from ..backend.base import BookmarkBackend
from ..errors import BackendError
from ..log import logger
from ..models import Bookmark, OpResult, Session


def _sort_key(bookmark: Bookmark):
    return bookmark.created_at


class BookmarkList:
    """Ordered in-memory list of bookmarks for one session at a time."""

    def __init__(self, backend: BookmarkBackend, *, retries: int = 1) -> None:
        self._backend = backend
        self._retries = max(0, retries)
        self._items: list[Bookmark] = []
        self._owner: str | None = None
        self._fetch_seq = 0
        self._closed = False

    # -- read access ----------------------------------------------------------

    @property
    def items(self) -> list[Bookmark]:
        return list(self._items)

    @property
    def owner(self) -> str | None:
        return self._owner

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))

    def get(self, bookmark_id: str) -> Bookmark | None:
        for bookmark in self._items:
            if bookmark.id == bookmark_id:
                return bookmark
        return None

    # -- fetch ----------------------------------------------------------------

    async def fetch_all(self, session: Session | None) -> OpResult[list[Bookmark]]:
        """Replace the cache with *session*'s rows from the backend.

        A failed read (after retries) empties the cache.  A response is
        applied only if no newer fetch was issued meanwhile, the owner is
        unchanged, and the cache hasn't been closed.
        """
        if session is None:
            return OpResult.failure("not signed in")
        if self._closed:
            return OpResult.failure("closed")

        self._fetch_seq += 1
        seq = self._fetch_seq
        self._owner = session.user_id

        rows = None
        error = ""
        for attempt in range(self._retries + 1):
            try:
                rows = await self._backend.select_bookmarks(session.user_id)
                break
            except BackendError as exc:
                error = str(exc)
                logger.debug("fetch attempt %d failed: %s", attempt + 1, exc)

        if not self._is_current(seq, session):
            logger.debug("discarding stale fetch #%d", seq)
            return OpResult.failure("stale")

        if rows is None:
            logger.warning("Bookmark fetch failed: %s", error)
            self._items = []
            return OpResult.failure(error or "fetch failed")

        self._items = self._parse(rows, session.user_id)
        return OpResult.success(self.items)

    def _is_current(self, seq: int, session: Session) -> bool:
        return (
            not self._closed
            and seq == self._fetch_seq
            and self._owner == session.user_id
        )

    @staticmethod
    def _parse(rows: list[dict], user_id: str) -> list[Bookmark]:
        parsed: list[Bookmark] = []
        for row in rows:
            try:
                bookmark = Bookmark.from_row(row)
            except (KeyError, TypeError, ValueError):
                logger.debug("skipping malformed row %r", row, exc_info=True)
                continue
            # Scope on the client too; server policies are not assumed.
            if bookmark.user_id != user_id:
                logger.warning("dropping row %s owned by another user", bookmark.id)
                continue
            parsed.append(bookmark)
        parsed.sort(key=_sort_key, reverse=True)
        return parsed

    # -- local patches --------------------------------------------------------

    def accepts(self, bookmark: Bookmark) -> bool:
        """True if *bookmark* may be patched into the cache right now."""
        return (
            not self._closed
            and self._owner is not None
            and bookmark.user_id == self._owner
        )

    def upsert(self, bookmark: Bookmark) -> bool:
        """Insert or replace *bookmark*, keeping newest-first order.

        Refused (returns False) once the cache is cleared or closed, or
        when the row belongs to someone other than the current owner.
        """
        if not self.accepts(bookmark):
            logger.debug("not patching %s into the cache", bookmark.id)
            return False
        self._items = [b for b in self._items if b.id != bookmark.id]
        index = 0
        while (
            index < len(self._items)
            and self._items[index].created_at >= bookmark.created_at
        ):
            index += 1
        self._items.insert(index, bookmark)
        return True

    def replace(self, bookmark_id: str, bookmark: Bookmark) -> Bookmark | None:
        """Swap the row with *bookmark_id* in place; return the previous row."""
        if not self.accepts(bookmark):
            return None
        for index, existing in enumerate(self._items):
            if existing.id == bookmark_id:
                self._items[index] = bookmark
                return existing
        return None

    def remove(self, bookmark_id: str) -> Bookmark | None:
        for index, existing in enumerate(self._items):
            if existing.id == bookmark_id:
                return self._items.pop(index)
        return None

    def clear(self) -> None:
        """Empty the cache and invalidate any in-flight fetch."""
        self._items = []
        self._owner = None
        self._fetch_seq += 1

    def close(self) -> None:
        self.clear()
        self._closed = True
