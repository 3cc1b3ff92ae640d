"""Backends implementing sessions, the bookmarks table, and its change feed."""

from .base import BookmarkBackend, Subscription
from .memory import DEMO_SESSION, MemoryBackend, MemoryDatabase

__all__ = [
    "BookmarkBackend",
    "DEMO_SESSION",
    "MemoryBackend",
    "MemoryDatabase",
    "Subscription",
    "create_backend",
]


async def create_backend(config, *, demo: bool = False) -> BookmarkBackend:
    """Build the backend for *config*: in-memory for demo, Supabase otherwise.

    The supabase import is deferred so ``--demo`` and ``--doctor`` work
    without a configured project.
    """
    if demo:
        return MemoryBackend(session=DEMO_SESSION)
    from .supabase_backend import SupabaseBackend

    return await SupabaseBackend.connect(config.backend)
