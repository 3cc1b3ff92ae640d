"""Bookmark TUI - a terminal bookmark manager backed by Supabase."""

__version__ = "0.1.0"
