"""Data models shared by the backend, the state layer, and the widgets."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

T = TypeVar("T")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class Session:
    """Identity of the signed-in user.

    ``user_id`` is the opaque id issued by the identity provider.  The
    access token is kept only so a refreshed session compares unequal to
    the one it replaces.
    """

    user_id: str
    email: str = ""
    access_token: str = field(default="", repr=False)

    @property
    def display_name(self) -> str:
        return self.email or self.user_id[:8]


@dataclass(frozen=True)
class Bookmark:
    """A single row of the ``bookmarks`` table."""

    id: str
    title: str
    url: str
    user_id: str
    created_at: datetime = _EPOCH

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Bookmark:
        """Build a Bookmark from a backend row dict.

        Raises KeyError/ValueError for rows missing ``id`` or with an
        unparseable timestamp; callers treat that as a malformed response.
        """
        return cls(
            id=str(row["id"]),
            title=str(row.get("title") or ""),
            url=str(row.get("url") or ""),
            user_id=str(row.get("user_id") or ""),
            created_at=parse_timestamp(row.get("created_at")),
        )

    def with_fields(self, *, title: str, url: str) -> Bookmark:
        """Return a copy with a new title/url (the only mutable fields)."""
        return replace(self, title=title, url=url)


def parse_timestamp(value: Any) -> datetime:
    """Parse a backend ``created_at`` value into an aware datetime.

    Accepts datetimes, ISO-8601 strings (``Z`` or offset suffix, any
    fractional precision), and None (the epoch, so such rows sort last).
    """
    if value is None or value == "":
        return _EPOCH
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    text = str(value).strip().replace("Z", "+00:00")
    # fromisoformat on older interpreters rejects more than 6 fractional digits
    if "." in text:
        head, _, rest = text.partition(".")
        digits = ""
        while rest and rest[0].isdigit():
            digits, rest = digits + rest[0], rest[1:]
        text = f"{head}.{digits[:6].ljust(6, '0')}{rest}"
    parsed = datetime.fromisoformat(text)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class OpResult(Generic[T]):
    """Outcome of a backend operation: success flag plus payload or error."""

    ok: bool
    value: T | None = None
    error: str = ""

    @classmethod
    def success(cls, value: T | None = None) -> OpResult[T]:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> OpResult[T]:
        return cls(ok=False, error=error)

    def __bool__(self) -> bool:
        return self.ok
