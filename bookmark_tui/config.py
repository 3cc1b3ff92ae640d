"""Configuration for Bookmark TUI.

Loads settings from ~/.bookmark-tui/config.yaml.
Falls back to sensible defaults if the file doesn't exist or is invalid.
Creates a default file on first run so users can discover and edit it.
Backend credentials may also come from the environment, which wins over
the file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .errors import ConfigError
from .log import logger
from .platform import app_file

CONFIG_PATH = app_file("config.yaml")

ENV_CONFIG_PATH = "BOOKMARK_TUI_CONFIG"
ENV_URL = "SUPABASE_URL"
ENV_KEYS = ("SUPABASE_ANON_KEY", "SUPABASE_KEY")

THEMES = ("dark", "light")

_DEFAULT_YAML = """\
# Bookmark TUI configuration
# Delete this file to reset to defaults.

backend:
  url: ""                         # Supabase project URL (or $SUPABASE_URL)
  key: ""                         # public anon key (or $SUPABASE_ANON_KEY)
  provider: google                # OAuth identity provider
  table: bookmarks                # table holding bookmark rows
  redirect_port: 54321            # local port receiving the OAuth redirect

display:
  theme: dark                     # dark | light
  show_urls: true                 # show the URL under each title
  confirm_delete: false           # ask before deleting a bookmark

sync:
  live: true                      # refresh on realtime change events
  fetch_retries: 1                # extra attempts for a failed list fetch
"""


@dataclass
class BackendConfig:
    """Connection settings for the hosted backend."""

    url: str = ""
    key: str = ""
    provider: str = "google"
    table: str = "bookmarks"
    redirect_port: int = 54321

    @property
    def redirect_url(self) -> str:
        return f"http://127.0.0.1:{self.redirect_port}/auth/callback"


@dataclass
class DisplayConfig:
    """Display settings for the bookmark list."""

    theme: str = "dark"
    show_urls: bool = True
    confirm_delete: bool = False


@dataclass
class SyncConfig:
    """Live-feed and refresh settings."""

    live: bool = True
    fetch_retries: int = 1


@dataclass
class Config:
    """Top-level configuration."""

    backend: BackendConfig = field(default_factory=BackendConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    path: Path | None = None

    def validate(self, *, demo: bool = False) -> None:
        """Raise ConfigError if the backend cannot be reached with these settings."""
        if demo:
            return
        missing = []
        if not self.backend.url:
            missing.append(f"backend.url (or ${ENV_URL})")
        if not self.backend.key:
            missing.append(f"backend.key (or ${ENV_KEYS[0]})")
        if missing:
            where = self.path or CONFIG_PATH
            raise ConfigError(
                "Missing backend settings: " + ", ".join(missing) + f"\n  Edit {where}"
            )


def _as_bool(value: object, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
    return default


def _as_int(value: object, default: int, *, minimum: int = 0) -> int:
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return number if number >= minimum else default


def _apply_file(cfg: Config, data: dict) -> None:
    bdata = data.get("backend")
    if isinstance(bdata, dict):
        for key in ("url", "key", "provider", "table"):
            if bdata.get(key):
                setattr(cfg.backend, key, str(bdata[key]).strip())
        if "redirect_port" in bdata:
            port = _as_int(bdata["redirect_port"], cfg.backend.redirect_port, minimum=1)
            cfg.backend.redirect_port = port if port <= 65535 else 54321

    ddata = data.get("display")
    if isinstance(ddata, dict):
        if str(ddata.get("theme", "")).lower() in THEMES:
            cfg.display.theme = str(ddata["theme"]).lower()
        if "show_urls" in ddata:
            cfg.display.show_urls = _as_bool(ddata["show_urls"], True)
        if "confirm_delete" in ddata:
            cfg.display.confirm_delete = _as_bool(ddata["confirm_delete"], False)

    sdata = data.get("sync")
    if isinstance(sdata, dict):
        if "live" in sdata:
            cfg.sync.live = _as_bool(sdata["live"], True)
        if "fetch_retries" in sdata:
            cfg.sync.fetch_retries = _as_int(sdata["fetch_retries"], 1)


def _apply_env(cfg: Config, environ: dict[str, str]) -> None:
    if environ.get(ENV_URL):
        cfg.backend.url = environ[ENV_URL].strip()
    for name in ENV_KEYS:
        if environ.get(name):
            cfg.backend.key = environ[name].strip()
            break


def resolve_config_path(path: Path | None = None) -> Path:
    """Explicit path > $BOOKMARK_TUI_CONFIG > ~/.bookmark-tui/config.yaml."""
    if path is not None:
        return path
    env_path = os.environ.get(ENV_CONFIG_PATH)
    if env_path:
        return Path(env_path).expanduser()
    return CONFIG_PATH


def load_config(
    path: Path | None = None, environ: dict[str, str] | None = None
) -> Config:
    """Load configuration from YAML, then overlay environment credentials.

    Falls back to defaults if the file doesn't exist or is invalid.
    Creates a default config file on first run.
    """
    path = resolve_config_path(path)
    cfg = Config(path=path)

    if path.exists():
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
            if isinstance(data, dict):
                _apply_file(cfg, data)
        except (OSError, yaml.YAMLError):
            logger.warning("Ignoring unreadable config file %s", path, exc_info=True)
    else:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(_DEFAULT_YAML, encoding="utf-8")
        except OSError:
            logger.debug("Could not write default config to %s", path, exc_info=True)

    _apply_env(cfg, dict(os.environ) if environ is None else environ)
    return cfg


def save_theme(theme: str, path: Path | None = None) -> None:
    """Persist the display theme, preserving the rest of the file."""
    if theme not in THEMES:
        raise ValueError(f"Unknown theme: {theme}")
    path = resolve_config_path(path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) if path.exists() else {}
    except (OSError, yaml.YAMLError):
        data = {}
    if not isinstance(data, dict):
        data = {}
    display = data.get("display")
    if not isinstance(display, dict):
        display = {}
        data["display"] = display
    display["theme"] = theme
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
