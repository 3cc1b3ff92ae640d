"""Tests for the __main__ entry point."""

from __future__ import annotations

import sys
from unittest.mock import patch

import pytest

from bookmark_tui import __version__
from bookmark_tui.__main__ import main


@pytest.fixture(autouse=True)
def _isolated(monkeypatch):
    """No real credentials and no log file in the user's home."""
    for name in ("SUPABASE_URL", "SUPABASE_ANON_KEY", "SUPABASE_KEY", "BOOKMARK_TUI_CONFIG"):
        monkeypatch.delenv(name, raising=False)
    with patch("bookmark_tui.__main__.setup_logging", return_value=None):
        yield


def _run(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["bookmark-tui", *args])
    main()


class TestVersion:
    def test_prints_version(self, monkeypatch, capsys):
        with pytest.raises(SystemExit) as exc_info:
            _run(monkeypatch, "--version")
        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out


class TestMissingCredentials:
    def test_exits_with_hint(self, monkeypatch, capsys, tmp_path):
        with patch("bookmark_tui.app.run_app") as run_app:
            with pytest.raises(SystemExit) as exc_info:
                _run(monkeypatch, "--config", str(tmp_path / "config.yaml"))
        assert exc_info.value.code == 2
        run_app.assert_not_called()
        err = capsys.readouterr().err
        assert "backend.url" in err
        assert "--doctor" in err

    def test_demo_needs_no_credentials(self, monkeypatch, tmp_path):
        with patch("bookmark_tui.app.run_app") as run_app:
            _run(monkeypatch, "--demo", "--config", str(tmp_path / "config.yaml"))
        run_app.assert_called_once()
        assert run_app.call_args.kwargs["demo"] is True

    def test_provider_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SUPABASE_URL", "https://p.supabase.co")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
        with patch("bookmark_tui.app.run_app") as run_app:
            _run(
                monkeypatch,
                "--provider",
                "github",
                "--config",
                str(tmp_path / "config.yaml"),
            )
        config = run_app.call_args.args[0]
        assert config.backend.provider == "github"
        assert config.backend.url == "https://p.supabase.co"


class TestDoctor:
    def test_reports_missing_settings(self, monkeypatch, capsys, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            _run(monkeypatch, "--doctor", "--config", str(tmp_path / "config.yaml"))
        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        assert "[!!] backend.url" in out
        assert "Some checks failed" in out

    def test_checks_backend_when_configured(self, monkeypatch, capsys, tmp_path):
        monkeypatch.setenv("SUPABASE_URL", "https://p.supabase.co")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")

        async def fake_check(config):
            return "reachable"

        with patch("bookmark_tui.__main__._check_backend", fake_check):
            with pytest.raises(SystemExit) as exc_info:
                _run(monkeypatch, "--doctor", "--config", str(tmp_path / "config.yaml"))
        assert exc_info.value.code == 0
        out = capsys.readouterr().out
        assert "[ok] backend " in out
        assert "All checks passed" in out
