"""Entry point for the Bookmark TUI CLI."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from . import __version__
from .config import ENV_KEYS, ENV_URL, Config, load_config
from .errors import BookmarkTuiError, ConfigError
from .log import logger, setup_logging
from .platform import PLATFORM, abbreviate_home

# ---------------------------------------------------------------------------
# Environment health checks
# ---------------------------------------------------------------------------


async def _check_backend(config: Config) -> str:
    """Connect and ask for a session; return a one-line verdict."""
    from .backend import create_backend

    backend = await create_backend(config)
    try:
        session = await backend.get_session()
    finally:
        await backend.close()
    return f"reachable (signed in as {session.display_name})" if session else "reachable"


def _run_doctor(config: Config) -> None:
    """Print a configuration and connectivity report and exit."""
    print("Bookmark TUI -- Environment Doctor\n")

    print(f"  Python:   {sys.executable} ({sys.version.split()[0]})")
    print(f"  Platform: {PLATFORM}")
    print(f"  Config:   {abbreviate_home(str(config.path))}")
    print()

    url_ok = bool(config.backend.url)
    key_ok = bool(config.backend.key)
    print(f"  [{'ok' if url_ok else '!!'}] {'backend.url':20s}  {config.backend.url or f'not set (${ENV_URL})'}")
    print(f"  [{'ok' if key_ok else '!!'}] {'backend.key':20s}  {'set' if key_ok else f'not set (${ENV_KEYS[0]})'}")
    print(f"  [--] {'provider':20s}  {config.backend.provider}")
    print(f"  [--] {'redirect':20s}  {config.backend.redirect_url}")

    all_ok = url_ok and key_ok
    print()
    if all_ok:
        try:
            verdict = asyncio.run(_check_backend(config))
            print(f"  [ok] {'backend':20s}  {verdict}")
        except BookmarkTuiError as exc:
            print(f"  [!!] {'backend':20s}  {exc}")
            all_ok = False

    print()
    if all_ok:
        print("  All checks passed.")
    else:
        print("  Some checks failed.  Set the Supabase project URL and anon key")
        print(f"  in {abbreviate_home(str(config.path))} or via ${ENV_URL} / ${ENV_KEYS[0]}.")
        print("  Or try the app without a backend:  bookmark-tui --demo")

    sys.exit(0 if all_ok else 1)


def main() -> None:
    """Run Bookmark TUI."""
    parser = argparse.ArgumentParser(description="Bookmark TUI")
    parser.add_argument(
        "--version",
        "-V",
        action="version",
        version=f"bookmark-tui {__version__}",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        help="Config file (default: ~/.bookmark-tui/config.yaml)",
    )
    parser.add_argument(
        "--provider",
        type=str,
        help="OAuth provider to sign in with (default from config: google)",
    )
    parser.add_argument(
        "--demo",
        action="store_true",
        help="Use a local in-memory backend instead of Supabase",
    )
    parser.add_argument(
        "--doctor",
        action="store_true",
        help="Check configuration and backend connectivity, then exit",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Write debug-level logs",
    )

    args = parser.parse_args()

    log_path = setup_logging(debug=args.debug)
    config = load_config(args.config)
    if args.provider:
        config.backend.provider = args.provider

    if args.doctor:
        _run_doctor(config)
        return

    try:
        config.validate(demo=args.demo)
    except ConfigError as exc:
        print(f"{exc}\n\nRun 'bookmark-tui --doctor' for details, or try --demo.", file=sys.stderr)
        sys.exit(2)

    logger.info("Starting bookmark-tui %s (demo=%s)", __version__, args.demo)
    try:
        from bookmark_tui.app import run_app

        run_app(config, demo=args.demo)
    except (KeyboardInterrupt, SystemExit):
        pass
    except Exception:
        logger.debug("Fatal error in bookmark-tui", exc_info=True)
        import traceback

        traceback.print_exc()
        if log_path is not None:
            print(f"Log: {log_path}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
