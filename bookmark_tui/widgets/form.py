"""Title/URL form with a single Add/Update submit button."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.message import Message
from textual.widgets import Button, Input


class BookmarkForm(Vertical):
    """Inputs mirror the controller's Draft; edits are forwarded as messages."""

    class FieldChanged(Message):
        def __init__(self, field: str, value: str) -> None:
            self.field = field
            self.value = value
            super().__init__()

    class Submitted(Message):
        """Add/Update pressed (or Enter in either input)."""

    class Cancelled(Message):
        """Cancel pressed while editing."""

    def compose(self) -> ComposeResult:
        with Horizontal(id="form-fields"):
            yield Input(placeholder="Title", id="title-input")
            yield Input(placeholder="URL", id="url-input")
        with Horizontal(id="form-buttons"):
            yield Button("Add Bookmark", id="submit-button", variant="primary")
            yield Button("Cancel", id="cancel-button")

    def on_mount(self) -> None:
        self.query_one("#cancel-button").display = False

    def show_draft(
        self, title: str, url: str, *, editing: bool, submitting: bool
    ) -> None:
        """Sync the widgets to the draft without echoing change messages."""
        for input_id, value in (("#title-input", title), ("#url-input", url)):
            widget = self.query_one(input_id, Input)
            if widget.value != value:
                with widget.prevent(Input.Changed):
                    widget.value = value
            widget.disabled = submitting
        button = self.query_one("#submit-button", Button)
        button.label = "Update Bookmark" if editing else "Add Bookmark"
        button.variant = "success" if editing else "primary"
        button.disabled = submitting
        self.query_one("#cancel-button").display = editing

    def on_input_changed(self, event: Input.Changed) -> None:
        event.stop()
        field = "title" if event.input.id == "title-input" else "url"
        self.post_message(self.FieldChanged(field, event.value))

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        if event.input.id == "title-input":
            self.query_one("#url-input", Input).focus()
            return
        self.post_message(self.Submitted())

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        if event.button.id == "submit-button":
            self.post_message(self.Submitted())
        elif event.button.id == "cancel-button":
            self.post_message(self.Cancelled())
