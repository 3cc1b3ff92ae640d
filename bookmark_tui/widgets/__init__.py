"""Widget classes for the Bookmark TUI screens."""

from .bars import StatusBar
from .bookmark_list import BookmarkListView, BookmarkRow
from .form import BookmarkForm
from .screens import BookmarksScreen, ConfirmDeleteScreen, LoginScreen

__all__ = [
    "BookmarkForm",
    "BookmarkListView",
    "BookmarkRow",
    "BookmarksScreen",
    "ConfirmDeleteScreen",
    "LoginScreen",
    "StatusBar",
]
