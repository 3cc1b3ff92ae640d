"""Bookmark list widgets: one row per bookmark with Edit / Delete buttons."""

from __future__ import annotations

from rich.markup import escape
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.message import Message
from textual.widgets import Button, Static

from ..models import Bookmark


class BookmarkRow(Horizontal, can_focus=True):
    """A bookmark: title (and URL) on the left, action buttons on the right."""

    BINDINGS = [
        Binding("enter", "open", "Open", show=False),
        Binding("e", "edit", "Edit", show=False),
        Binding("delete", "delete", "Delete", show=False),
    ]

    class Action(Message):
        """Base for row requests; ``bookmark`` is the row's record."""

        def __init__(self, bookmark: Bookmark) -> None:
            self.bookmark = bookmark
            super().__init__()

    class OpenRequested(Action):
        pass

    class EditRequested(Action):
        pass

    class DeleteRequested(Action):
        pass

    def __init__(self, bookmark: Bookmark, *, show_url: bool = True) -> None:
        super().__init__(classes="bookmark-row")
        self.bookmark = bookmark
        self.show_url = show_url

    def compose(self) -> ComposeResult:
        with Vertical(classes="bookmark-text"):
            yield Static(escape(self.bookmark.title), classes="bookmark-title")
            if self.show_url:
                yield Static(escape(self.bookmark.url), classes="bookmark-url")
        with Horizontal(classes="bookmark-actions"):
            yield Button("Edit", classes="edit-button", variant="warning")
            yield Button("Delete", classes="delete-button", variant="error")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        if event.button.has_class("edit-button"):
            self.post_message(self.EditRequested(self.bookmark))
        elif event.button.has_class("delete-button"):
            self.post_message(self.DeleteRequested(self.bookmark))

    def on_click(self, event) -> None:
        if event.chain == 2:
            self.post_message(self.OpenRequested(self.bookmark))

    def action_open(self) -> None:
        self.post_message(self.OpenRequested(self.bookmark))

    def action_edit(self) -> None:
        self.post_message(self.EditRequested(self.bookmark))

    def action_delete(self) -> None:
        self.post_message(self.DeleteRequested(self.bookmark))


class BookmarkListView(VerticalScroll):
    """Scrollable list of BookmarkRow widgets, rebuilt wholesale on refresh."""

    EMPTY_TEXT = "No bookmarks yet. Add one above."

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._shown: list[Bookmark] = []
        self._show_urls = True

    @property
    def bookmarks(self) -> list[Bookmark]:
        return list(self._shown)

    async def show(self, bookmarks: list[Bookmark], *, show_urls: bool = True) -> None:
        if bookmarks == self._shown and show_urls == self._show_urls and self.children:
            return
        self._shown = list(bookmarks)
        self._show_urls = show_urls
        focused_id = self._focused_bookmark_id()
        await self.remove_children()
        if not bookmarks:
            await self.mount(Static(self.EMPTY_TEXT, classes="bookmark-empty"))
            return
        rows = [BookmarkRow(b, show_url=show_urls) for b in bookmarks]
        await self.mount_all(rows)
        if focused_id is not None:
            for row in rows:
                if row.bookmark.id == focused_id:
                    self.call_after_refresh(row.focus)
                    break

    def _focused_bookmark_id(self) -> str | None:
        focused = self.screen.focused if self.is_attached else None
        while focused is not None and focused is not self:
            if isinstance(focused, BookmarkRow):
                return focused.bookmark.id
            focused = focused.parent
        return None

    def highlighted(self) -> Bookmark | None:
        """The bookmark whose row (or one of its buttons) has focus."""
        bookmark_id = self._focused_bookmark_id()
        if bookmark_id is None:
            return None
        for bookmark in self._shown:
            if bookmark.id == bookmark_id:
                return bookmark
        return None
