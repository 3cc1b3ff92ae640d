"""Main Bookmark TUI application."""

from __future__ import annotations

from textual import work
from textual.app import App
from textual.binding import Binding
from textual.css.query import NoMatches
from textual.screen import ModalScreen

from .auth_callback import AuthCallbackServer
from .backend import BookmarkBackend, create_backend
from .config import Config, save_theme
from .core import ERROR, BookmarkController, DraftState, SessionState
from .errors import BookmarkTuiError
from .log import logger
from .platform import copy_to_clipboard, open_in_browser
from .theme import TEXTUAL_THEMES, textual_theme_name
from .widgets import (
    BookmarkForm,
    BookmarkRow,
    BookmarksScreen,
    ConfirmDeleteScreen,
    LoginScreen,
)


class BookmarkApp(App):
    """Bookmark TUI - personal bookmarks synced through Supabase."""

    CSS_PATH = "styles.tcss"
    TITLE = "Bookmark TUI"

    BINDINGS = [
        Binding("ctrl+r", "refresh_list", "Refresh", show=True),
        Binding("ctrl+y", "copy_url", "Copy URL", show=True),
        Binding("escape", "cancel_edit", "Cancel edit", show=False),
        Binding("ctrl+t", "toggle_theme", "Theme", show=True),
        Binding("ctrl+q", "quit", "Quit", show=True),
    ]

    def __init__(
        self,
        config: Config | None = None,
        *,
        backend: BookmarkBackend | None = None,
        demo: bool = False,
    ) -> None:
        super().__init__()
        self.config = config or Config()
        self.demo = demo
        self.backend = backend
        self.controller: BookmarkController | None = None
        self._auth_server: AuthCallbackServer | None = None
        self._render_pending = False
        self._shut_down = False

    # ── Startup ─────────────────────────────────────────────────

    async def on_mount(self) -> None:
        for theme in TEXTUAL_THEMES.values():
            self.register_theme(theme)
        self.theme = textual_theme_name(self.config.display.theme)
        await self.push_screen(LoginScreen(self.config.backend.provider, checking=True))
        self._startup_worker()

    @work(exclusive=True, group="startup")
    async def _startup_worker(self) -> None:
        """Connect, then load the session (and list) without blocking the UI."""
        if self.backend is None:
            try:
                self.backend = await create_backend(self.config, demo=self.demo)
            except BookmarkTuiError as exc:
                logger.warning("Backend unavailable: %s", exc)
                self._login_status(f"Cannot reach backend: {exc}")
                self.notify(str(exc), title="Backend unavailable", severity="error")
                return
        self.controller = BookmarkController(self.backend, self.config)
        self.controller.add_listener(self._on_controller_event)
        await self.controller.start()
        self.request_render()

    def _login_status(self, text: str) -> None:
        if isinstance(self.screen, LoginScreen):
            try:
                self.screen.set_status(text)
            except NoMatches:
                pass

    # ── Rendering ───────────────────────────────────────────────

    def _on_controller_event(self, kind: str, message: str) -> None:
        if kind == ERROR:
            self.notify(message, severity="error", timeout=6)
            return
        self.request_render()

    def request_render(self) -> None:
        """Coalesce controller events into one render per message-loop pass."""
        if self._render_pending:
            return
        self._render_pending = True
        self.call_later(self._render_state)

    async def _render_state(self) -> None:
        self._render_pending = False
        controller = self.controller
        if controller is None or controller.stopped:
            return
        session = controller.session

        if session is None:
            if not isinstance(self.screen, LoginScreen):
                await self._pop_modals()
                await self.switch_screen(LoginScreen(self.config.backend.provider))
                return  # the new screen requests a render on resume
            try:
                self.screen.set_checking(controller.session_state is SessionState.UNKNOWN)
            except NoMatches:
                pass
            return

        if self._auth_server is not None:
            self.run_worker(self._stop_auth_server(), group="auth-stop")

        screen = self.screen
        if isinstance(screen, ModalScreen):
            return  # re-rendered when the modal closes
        if not isinstance(screen, BookmarksScreen) or screen.user_label != session.display_name:
            await self.switch_screen(BookmarksScreen(session.display_name))
            return  # the new screen requests a render on resume

        draft = controller.draft
        try:
            screen.form.show_draft(
                draft.title,
                draft.url,
                editing=draft.is_editing,
                submitting=draft.state is DraftState.SUBMITTING,
            )
            await screen.show_bookmarks(
                controller.items,
                show_urls=self.config.display.show_urls,
                live=controller.sync.is_open,
            )
        except NoMatches:
            # Screen not composed yet; its on_mount will ask again.
            logger.debug("render skipped: screen not ready")

    async def _pop_modals(self) -> None:
        while isinstance(self.screen, ModalScreen):
            await self.pop_screen()

    # ── Login gate ──────────────────────────────────────────────

    def on_login_screen_login_requested(self, event: LoginScreen.LoginRequested) -> None:
        self._sign_in_worker()

    @work(exclusive=True, group="auth")
    async def _sign_in_worker(self) -> None:
        controller = self.controller
        if controller is None or self.backend is None:
            return
        await self._stop_auth_server()
        port = self.config.backend.redirect_port
        if self.backend.uses_redirect:
            server = AuthCallbackServer(port, controller.complete_sign_in)
            try:
                await server.start()
            except OSError as exc:
                self.notify(
                    f"Cannot listen for the sign-in redirect on port {port}: {exc}",
                    severity="error",
                )
                return
            self._auth_server = server

        self._login_status("Starting sign-in…")
        result = await controller.sign_in()
        if not result.ok or not result.value:
            if not result.ok:
                self._login_status("")
            await self._stop_auth_server()
            return
        url = result.value
        if open_in_browser(url):
            self._login_status("Finish signing in in your browser…")
        else:
            self._login_status(f"Open this URL to sign in:\n{url}")

    async def _stop_auth_server(self) -> None:
        server, self._auth_server = self._auth_server, None
        if server is not None:
            await server.stop()

    def on_bookmarks_screen_logout_requested(
        self, event: BookmarksScreen.LogoutRequested
    ) -> None:
        self._sign_out_worker()

    @work(exclusive=True, group="auth")
    async def _sign_out_worker(self) -> None:
        if self.controller is not None:
            await self.controller.sign_out()

    # ── Form ────────────────────────────────────────────────────

    def on_bookmark_form_field_changed(self, event: BookmarkForm.FieldChanged) -> None:
        controller = self.controller
        if controller is None:
            return
        if event.field == "title":
            if event.value != controller.draft.title:
                controller.set_title(event.value)
        elif event.value != controller.draft.url:
            controller.set_url(event.value)

    def on_bookmark_form_submitted(self, event: BookmarkForm.Submitted) -> None:
        controller = self.controller
        if controller is None:
            return
        if not controller.draft.is_complete:
            self.notify("Title and URL are both required.", severity="warning")
            return
        self._submit_worker()

    @work(group="ops")
    async def _submit_worker(self) -> None:
        if self.controller is not None:
            await self.controller.submit()

    def on_bookmark_form_cancelled(self, event: BookmarkForm.Cancelled) -> None:
        self.action_cancel_edit()

    # ── Rows ────────────────────────────────────────────────────

    def on_bookmark_row_edit_requested(self, event: BookmarkRow.EditRequested) -> None:
        if self.controller is not None and self.controller.begin_edit(event.bookmark.id):
            try:
                self.screen.query_one("#title-input").focus()
            except NoMatches:
                pass

    def on_bookmark_row_delete_requested(
        self, event: BookmarkRow.DeleteRequested
    ) -> None:
        bookmark = event.bookmark
        if not self.config.display.confirm_delete:
            self._delete_worker(bookmark.id)
            return

        def _confirmed(ok: bool | None) -> None:
            if ok:
                self._delete_worker(bookmark.id)

        self.push_screen(ConfirmDeleteScreen(bookmark), _confirmed)

    @work(group="ops")
    async def _delete_worker(self, bookmark_id: str) -> None:
        if self.controller is not None:
            await self.controller.delete(bookmark_id)

    def on_bookmark_row_open_requested(self, event: BookmarkRow.OpenRequested) -> None:
        if not open_in_browser(event.bookmark.url):
            self.notify(f"Could not open {event.bookmark.url}", severity="warning")

    # ── Actions ─────────────────────────────────────────────────

    def action_refresh_list(self) -> None:
        if self.controller is not None and self.controller.session is not None:
            self._refresh_worker()

    @work(exclusive=True, group="refresh")
    async def _refresh_worker(self) -> None:
        if self.controller is not None:
            await self.controller.refresh()

    def action_cancel_edit(self) -> None:
        if self.controller is not None:
            self.controller.cancel_edit()

    def action_copy_url(self) -> None:
        screen = self.screen
        if not isinstance(screen, BookmarksScreen):
            return
        bookmark = screen.list_view.highlighted()
        if bookmark is None:
            self.notify("Select a bookmark first.", severity="warning")
            return
        if copy_to_clipboard(bookmark.url):
            self.notify(f"Copied {bookmark.url}")
        else:
            self.notify("Clipboard not available.", severity="warning")

    def action_toggle_theme(self) -> None:
        new = "light" if self.config.display.theme == "dark" else "dark"
        self.config.display.theme = new
        self.theme = textual_theme_name(new)
        try:
            save_theme(new, self.config.path)
        except OSError:
            logger.debug("could not persist theme", exc_info=True)

    async def action_quit(self) -> None:
        await self.shutdown()
        self.exit()

    async def shutdown(self) -> None:
        """Close the live feed, auth listener, redirect receiver, and client."""
        if self._shut_down:
            return
        self._shut_down = True
        await self._stop_auth_server()
        if self.controller is not None:
            await self.controller.stop()
        if self.backend is not None:
            try:
                await self.backend.close()
            except BookmarkTuiError:
                logger.debug("backend close failed", exc_info=True)


def run_app(config: Config, *, demo: bool = False) -> None:
    """Run the TUI until the user quits."""
    BookmarkApp(config, demo=demo).run()
