"""CRUD operations against the bookmarks table.

Each operation awaits the backend and returns an OpResult; none raises
for backend failures and none retries.  Successful writes are reflected
in the list cache right away; the change feed's refresh confirms them.
"""

from __future__ import annotations

from ..backend.base import BookmarkBackend
from ..errors import BackendError
from ..log import logger
from ..models import Bookmark, OpResult, Session
from .bookmark_list import BookmarkList


class BookmarkOperations:
    def __init__(self, backend: BookmarkBackend, bookmarks: BookmarkList) -> None:
        self._backend = backend
        self._bookmarks = bookmarks

    async def read_all(self, session: Session | None) -> OpResult[list[Bookmark]]:
        return await self._bookmarks.fetch_all(session)

    async def create(
        self, session: Session | None, title: str, url: str
    ) -> OpResult[Bookmark]:
        title, url = title.strip(), url.strip()
        if session is None:
            return OpResult.failure("not signed in")
        if not title or not url:
            return OpResult.failure("title and URL are required")
        try:
            row = await self._backend.insert_bookmark(
                {"title": title, "url": url, "user_id": session.user_id}
            )
            bookmark = Bookmark.from_row(row)
        except BackendError as exc:
            logger.warning("Create failed: %s", exc)
            return OpResult.failure(str(exc))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Create returned a malformed row: %r", exc)
            return OpResult.failure("malformed response")
        if self._owns(session):
            self._bookmarks.upsert(bookmark)
        logger.info("Created bookmark %s", bookmark.id)
        return OpResult.success(bookmark)

    async def update(
        self, session: Session | None, bookmark_id: str | None, title: str, url: str
    ) -> OpResult[Bookmark]:
        """Patch the cache optimistically, persist, then reconcile or roll back."""
        title, url = title.strip(), url.strip()
        if session is None:
            return OpResult.failure("not signed in")
        if bookmark_id is None:
            return OpResult.failure("no bookmark is being edited")
        if not title or not url:
            return OpResult.failure("title and URL are required")

        previous = self._bookmarks.get(bookmark_id) if self._owns(session) else None
        optimistic = previous.with_fields(title=title, url=url) if previous else None
        if previous is not None and optimistic is not None:
            self._bookmarks.replace(bookmark_id, optimistic)

        error = ""
        row = None
        try:
            row = await self._backend.update_bookmark(
                bookmark_id, session.user_id, {"title": title, "url": url}
            )
            if row is None:
                error = "bookmark not found"
        except BackendError as exc:
            error = str(exc)

        if row is not None:
            try:
                confirmed = Bookmark.from_row(row)
            except (KeyError, TypeError, ValueError):
                logger.warning("Update of %s returned a malformed row", bookmark_id)
                confirmed = optimistic
            logger.info("Updated bookmark %s", bookmark_id)
            if confirmed is None:
                # Written, but there is nothing to patch with; the feed refresh fills it in.
                return OpResult.success(
                    Bookmark(bookmark_id, title, url, session.user_id)
                )
            # The session may have ended while the write was in flight.
            if self._owns(session):
                if self._bookmarks.replace(bookmark_id, confirmed) is None:
                    self._bookmarks.upsert(confirmed)
            return OpResult.success(confirmed)

        logger.warning("Update of %s failed: %s", bookmark_id, error)
        # Roll back only if nothing (e.g. a refresh) has replaced our patch.
        if previous is not None and self._bookmarks.get(bookmark_id) == optimistic:
            self._bookmarks.replace(bookmark_id, previous)
        return OpResult.failure(error or "update failed")

    async def delete(self, session: Session | None, bookmark_id: str) -> OpResult[None]:
        if session is None:
            return OpResult.failure("not signed in")
        try:
            await self._backend.delete_bookmark(bookmark_id, session.user_id)
        except BackendError as exc:
            logger.warning("Delete of %s failed: %s", bookmark_id, exc)
            return OpResult.failure(str(exc))
        self._bookmarks.remove(bookmark_id)
        logger.info("Deleted bookmark %s", bookmark_id)
        return OpResult.success()

    def _owns(self, session: Session) -> bool:
        """True while the cache still belongs to *session*'s user."""
        return self._bookmarks.owner == session.user_id
