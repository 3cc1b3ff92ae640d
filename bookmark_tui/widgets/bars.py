"""Status bar shown under the bookmark list."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.widgets import Static


class StatusBar(Horizontal):
    """Signed-in user, bookmark count, and live-feed state."""

    def compose(self) -> ComposeResult:
        yield Static("", id="status-user")
        yield Static("", id="status-count")
        yield Static("", id="status-sync")

    def update_status(self, *, user: str, count: int, live: bool) -> None:
        self.query_one("#status-user", Static).update(user)
        noun = "bookmark" if count == 1 else "bookmarks"
        self.query_one("#status-count", Static).update(f"{count} {noun}")
        self.query_one("#status-sync", Static).update(
            "[green]● live[/]" if live else "[dim]○ not live[/]"
        )
