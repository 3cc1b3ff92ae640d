"""Screens for Bookmark TUI: the login gate, the bookmark manager, and a delete prompt."""

from __future__ import annotations

from rich.markup import escape
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Center, Horizontal, Vertical
from textual.message import Message
from textual.screen import ModalScreen, Screen
from textual.widgets import Button, Footer, Static

from ..models import Bookmark
from .bars import StatusBar
from .bookmark_list import BookmarkListView
from .form import BookmarkForm


class LoginScreen(Screen):
    """Shown whenever there is no session (including before the first answer)."""

    class LoginRequested(Message):
        pass

    def __init__(self, provider: str = "google", *, checking: bool = False) -> None:
        super().__init__()
        self.provider = provider
        self._checking = checking

    def compose(self) -> ComposeResult:
        with Center(id="login-center"):
            with Vertical(id="login-box"):
                yield Static("My Bookmarks", id="login-title")
                yield Button(
                    f"Login with {self.provider.title()}",
                    id="login-button",
                    variant="primary",
                )
                yield Static("", id="login-status")
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#login-button", Button).disabled = self._checking
        if self._checking:
            self.set_status("Checking session…")

    def on_screen_resume(self) -> None:
        _request_render(self)

    def set_checking(self, checking: bool) -> None:
        """While the initial session answer is pending, sign-in is disabled."""
        was_checking, self._checking = self._checking, checking
        self.query_one("#login-button", Button).disabled = checking
        if checking:
            self.set_status("Checking session…")
        elif was_checking:
            self.set_status("")

    def set_status(self, text: str) -> None:
        self.query_one("#login-status", Static).update(escape(text))

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "login-button":
            event.stop()
            self.post_message(self.LoginRequested())


class BookmarksScreen(Screen):
    """Form, list, and logout for a signed-in user."""

    class LogoutRequested(Message):
        pass

    def __init__(self, user_label: str = "") -> None:
        super().__init__()
        self.user_label = user_label

    def compose(self) -> ComposeResult:
        with Vertical(id="bookmarks-main"):
            yield Static(
                f"My Bookmarks  [dim]{escape(self.user_label)}[/]", id="bookmarks-title"
            )
            yield BookmarkForm(id="bookmark-form")
            yield BookmarkListView(id="bookmark-list")
            with Horizontal(id="bookmarks-footer"):
                yield Button("Logout", id="logout-button")
            yield StatusBar(id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#title-input").focus()

    def on_screen_resume(self) -> None:
        _request_render(self)

    @property
    def form(self) -> BookmarkForm:
        return self.query_one("#bookmark-form", BookmarkForm)

    @property
    def list_view(self) -> BookmarkListView:
        return self.query_one("#bookmark-list", BookmarkListView)

    async def show_bookmarks(
        self, bookmarks: list[Bookmark], *, show_urls: bool, live: bool
    ) -> None:
        await self.list_view.show(bookmarks, show_urls=show_urls)
        self.query_one("#status-bar", StatusBar).update_status(
            user=self.user_label, count=len(bookmarks), live=live
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "logout-button":
            event.stop()
            self.post_message(self.LogoutRequested())


class ConfirmDeleteScreen(ModalScreen[bool]):
    """Yes/No prompt before deleting a bookmark."""

    BINDINGS = [
        Binding("escape", "cancel", show=False),
        Binding("y", "confirm", show=False),
        Binding("n", "cancel", show=False),
    ]

    def __init__(self, bookmark: Bookmark) -> None:
        super().__init__()
        self.bookmark = bookmark

    def compose(self) -> ComposeResult:
        with Vertical(id="confirm-modal"):
            yield Static(f"Delete “{escape(self.bookmark.title)}”?")
            with Horizontal(id="confirm-buttons"):
                yield Button("Delete", id="confirm-yes", variant="error")
                yield Button("Cancel", id="confirm-no")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        self.dismiss(event.button.id == "confirm-yes")

    def action_confirm(self) -> None:
        self.dismiss(True)

    def action_cancel(self) -> None:
        self.dismiss(False)


def _request_render(screen: Screen) -> None:
    app = screen.app
    if hasattr(app, "request_render"):
        app.request_render()
