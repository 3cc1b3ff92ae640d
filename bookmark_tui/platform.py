"""Cross-platform abstractions for Bookmark TUI.

Detects the runtime platform once at import time and provides
platform-appropriate paths, browser launching, and clipboard access.
Every other module imports from here instead of doing its own platform
detection.

Supported platforms:
  - linux   (native Linux)
  - wsl     (Windows Subsystem for Linux)
  - macos   (macOS / Darwin)
  - windows (native Windows / PowerShell)
"""

from __future__ import annotations

import base64
import platform
import shutil
import subprocess
import sys
import webbrowser
from pathlib import Path

from .log import logger

# ---------------------------------------------------------------------------
# Platform detection (runs once at import time)
# ---------------------------------------------------------------------------

_system = platform.system()  # "Linux", "Darwin", "Windows"

try:
    _uname_release = platform.uname().release.lower()
except OSError:
    _uname_release = ""

IS_WINDOWS = _system == "Windows"
IS_MACOS = _system == "Darwin"
IS_LINUX = _system == "Linux"
IS_WSL = IS_LINUX and "microsoft" in _uname_release

if IS_WINDOWS:
    PLATFORM = "windows"
elif IS_WSL:
    PLATFORM = "wsl"
elif IS_MACOS:
    PLATFORM = "macos"
else:
    PLATFORM = "linux"

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------


def app_home() -> Path:
    """Return ``~/.bookmark-tui``, the config and log directory."""
    return Path.home() / ".bookmark-tui"


def app_file(name: str) -> Path:
    """Return ``~/.bookmark-tui/<name>``."""
    return app_home() / name


# ---------------------------------------------------------------------------
# Browser
# ---------------------------------------------------------------------------


def open_in_browser(url: str) -> bool:
    """Open *url* in the user's browser.

    WSL has no default browser of its own, so ``wslview`` (wslu) is tried
    first there before falling back to :mod:`webbrowser`.
    """
    if IS_WSL and shutil.which("wslview"):
        try:
            subprocess.Popen(
                ["wslview", url],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
            return True
        except OSError:
            logger.debug("wslview failed for %s", url, exc_info=True)
    try:
        return webbrowser.open(url, new=2)
    except webbrowser.Error:
        logger.debug("webbrowser.open failed for %s", url, exc_info=True)
        return False


# ---------------------------------------------------------------------------
# Clipboard
# ---------------------------------------------------------------------------


def copy_to_clipboard(text: str) -> bool:
    """Copy *text* to the system clipboard using the best available method.

    Tries in order:
    1. OSC 52 terminal escape (works over SSH, in modern terminals)
    2. Platform-native clipboard tool
    """
    out = sys.__stdout__
    if out is not None:
        try:
            encoded = base64.b64encode(text.encode()).decode()
            out.write(f"\033]52;c;{encoded}\a")
            out.flush()
            return True
        except OSError:
            logger.debug("OSC 52 clipboard write failed", exc_info=True)

    if IS_WSL or IS_WINDOWS:
        return _clip_exe(text, utf16=IS_WSL)
    if IS_MACOS:
        return _run_clip(["pbcopy"], text)
    for cmd in (
        ["wl-copy"],
        ["xclip", "-selection", "clipboard"],
        ["xsel", "--clipboard", "--input"],
    ):
        if _run_clip(cmd, text):
            return True
    return False


def _clip_exe(text: str, *, utf16: bool) -> bool:
    """clip.exe; WSL needs UTF-16LE, native Windows takes UTF-8."""
    if not shutil.which("clip.exe"):
        return False
    try:
        proc = subprocess.Popen(
            ["clip.exe"],
            stdin=subprocess.PIPE,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        proc.communicate(text.encode("utf-16-le" if utf16 else "utf-8"))
        return proc.returncode == 0
    except (subprocess.SubprocessError, OSError):
        logger.debug("clip.exe clipboard copy failed", exc_info=True)
        return False


def _run_clip(cmd: list[str], text: str) -> bool:
    if not shutil.which(cmd[0]):
        return False
    try:
        subprocess.run(cmd, input=text.encode(), check=True, timeout=2)
        return True
    except (subprocess.SubprocessError, OSError):
        logger.debug("Clipboard via %s failed", cmd[0], exc_info=True)
        return False


# ---------------------------------------------------------------------------
# Path display helpers
# ---------------------------------------------------------------------------


def abbreviate_home(path_str: str) -> str:
    """Replace the user's home directory prefix with ``~``."""
    home = str(Path.home())
    if path_str.startswith(home):
        return "~" + path_str[len(home) :]
    return path_str
