"""Shared test fixtures for bookmark-tui test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from bookmark_tui.backend import MemoryBackend, MemoryDatabase
from bookmark_tui.config import Config
from bookmark_tui.models import Session

U1 = Session(user_id="u1", email="u1@example.com", access_token="t1")
U2 = Session(user_id="u2", email="u2@example.com", access_token="t2")


# -- Backends -----------------------------------------------------------------


@pytest.fixture
def db() -> MemoryDatabase:
    """A fresh shared table."""
    return MemoryDatabase()


@pytest.fixture
def backend(db: MemoryDatabase) -> MemoryBackend:
    """A memory backend already signed in as u1."""
    return MemoryBackend(db, session=U1, sign_in_session=U1)


@pytest.fixture
def signed_out_backend(db: MemoryDatabase) -> MemoryBackend:
    """A memory backend with no session; sign-in yields u1."""
    return MemoryBackend(db, session=None, sign_in_session=U1)


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Default configuration pointing at a throwaway file."""
    return Config(path=tmp_path / "config.yaml")


# -- Row helpers --------------------------------------------------------------


def make_row(
    bookmark_id: str,
    *,
    title: str = "Title",
    url: str = "https://example.com",
    user_id: str = "u1",
    created_at: str = "2026-01-01T00:00:00+00:00",
) -> dict:
    return {
        "id": bookmark_id,
        "title": title,
        "url": url,
        "user_id": user_id,
        "created_at": created_at,
    }
