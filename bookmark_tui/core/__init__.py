"""State layer: session, bookmark list, live feed, draft, and CRUD operations."""

from .bookmark_list import BookmarkList
from .controller import BOOKMARKS, DRAFT, ERROR, SESSION, BookmarkController
from .draft import Draft, DraftError, DraftState
from .operations import BookmarkOperations
from .session_store import SessionState, SessionStore
from .sync import SyncSubscriber

__all__ = [
    "BOOKMARKS",
    "BookmarkController",
    "BookmarkList",
    "BookmarkOperations",
    "DRAFT",
    "Draft",
    "DraftError",
    "DraftState",
    "ERROR",
    "SESSION",
    "SessionState",
    "SessionStore",
    "SyncSubscriber",
]
