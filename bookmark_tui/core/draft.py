"""Form State: the title/URL being composed and the bookmark being edited."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..models import Bookmark


class DraftState(Enum):
    IDLE = "idle"
    COMPOSING = "composing"
    EDITING = "editing"
    SUBMITTING = "submitting"


class DraftError(RuntimeError):
    """An illegal Draft transition (e.g. submitting twice)."""


@dataclass(frozen=True)
class DraftSnapshot:
    title: str
    url: str
    editing_id: str | None


class Draft:
    """Transitions:

        IDLE -> COMPOSING            field edit
        IDLE/COMPOSING -> EDITING    begin_edit
        COMPOSING/EDITING -> SUBMITTING
        SUBMITTING -> IDLE           finish_submit(ok=True)
        SUBMITTING -> previous       finish_submit(ok=False), text kept
        EDITING -> IDLE              cancel
    """

    def __init__(self) -> None:
        self.title = ""
        self.url = ""
        self.editing_id: str | None = None
        self.state = DraftState.IDLE
        self._before_submit = DraftState.IDLE

    @property
    def is_editing(self) -> bool:
        return self.editing_id is not None

    @property
    def is_complete(self) -> bool:
        """Both fields present (the only validation performed)."""
        return bool(self.title.strip()) and bool(self.url.strip())

    def snapshot(self) -> DraftSnapshot:
        return DraftSnapshot(self.title.strip(), self.url.strip(), self.editing_id)

    def set_title(self, text: str) -> None:
        self._edit_field("title", text)

    def set_url(self, text: str) -> None:
        self._edit_field("url", text)

    def _edit_field(self, name: str, text: str) -> None:
        if self.state is DraftState.SUBMITTING:
            raise DraftError("cannot edit while submitting")
        setattr(self, name, text)
        if self.state is DraftState.IDLE:
            self.state = DraftState.COMPOSING

    def begin_edit(self, bookmark: Bookmark) -> None:
        if self.state is DraftState.SUBMITTING:
            raise DraftError("cannot start editing while submitting")
        self.title = bookmark.title
        self.url = bookmark.url
        self.editing_id = bookmark.id
        self.state = DraftState.EDITING

    def cancel(self) -> None:
        if self.state is DraftState.SUBMITTING:
            raise DraftError("cannot cancel while submitting")
        self.reset()

    def begin_submit(self) -> DraftSnapshot:
        if self.state is DraftState.SUBMITTING:
            raise DraftError("already submitting")
        self._before_submit = self.state
        self.state = DraftState.SUBMITTING
        return self.snapshot()

    def finish_submit(self, ok: bool) -> None:
        if self.state is not DraftState.SUBMITTING:
            raise DraftError("not submitting")
        if ok:
            self.reset()
        else:
            self.state = self._before_submit

    def reset(self) -> None:
        self.title = ""
        self.url = ""
        self.editing_id = None
        self.state = DraftState.IDLE
