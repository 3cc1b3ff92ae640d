"""Tests for BookmarkController: session transitions, live sync, and the form."""

from __future__ import annotations

import asyncio

import pytest

from bookmark_tui.backend import MemoryBackend
from bookmark_tui.config import Config
from bookmark_tui.core import (
    BOOKMARKS,
    DRAFT,
    ERROR,
    BookmarkController,
    DraftState,
    SessionState,
)

from conftest import U1, U2, make_row


class EventLog:
    def __init__(self):
        self.events: list[tuple[str, str]] = []

    def __call__(self, kind, message):
        self.events.append((kind, message))

    def kinds(self):
        return [k for k, _ in self.events]

    def errors(self):
        return [m for k, m in self.events if k == ERROR]


class GatedWrites(MemoryBackend):
    """Commits inserts and updates at once but holds the response back.

    Operations named in ``hold`` wait for ``release`` before returning, so a
    test can change the session while the write is still in flight.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.hold: set[str] = set()
        self.in_flight = asyncio.Event()
        self.release = asyncio.Event()

    async def _respond(self, operation, row):
        if operation in self.hold:
            self.in_flight.set()
            await self.release.wait()
        return row

    async def insert_bookmark(self, row):
        return await self._respond("insert", await super().insert_bookmark(row))

    async def update_bookmark(self, bookmark_id, user_id, fields):
        row = await super().update_bookmark(bookmark_id, user_id, fields)
        return await self._respond("update", row)


async def _started(backend, config=None):
    controller = BookmarkController(backend, config)
    log = EventLog()
    controller.add_listener(log)
    await controller.start()
    return controller, log


async def _add(controller, title, url):
    controller.set_title(title)
    controller.set_url(url)
    result = await controller.submit()
    await controller.settle()
    return result


# -- startup ------------------------------------------------------------------


class TestStart:
    @pytest.mark.asyncio
    async def test_existing_session_loads_list_and_feed(self, backend, db):
        db.rows.append(make_row("a"))
        controller, _ = await _started(backend)
        assert controller.session == U1
        assert [b.id for b in controller.items] == ["a"]
        assert controller.sync.is_open
        await controller.stop()

    @pytest.mark.asyncio
    async def test_no_session_stays_signed_out(self, signed_out_backend):
        controller, _ = await _started(signed_out_backend)
        assert controller.session is None
        assert controller.session_state is SessionState.SIGNED_OUT
        assert controller.items == []
        assert "select" not in signed_out_backend.calls
        await controller.stop()

    @pytest.mark.asyncio
    async def test_session_check_failure_reported(self, backend):
        backend.fail_next.add("get_session")
        controller, log = await _started(backend)
        assert controller.session is None
        assert any("Could not check session" in m for m in log.errors())
        await controller.stop()

    @pytest.mark.asyncio
    async def test_live_disabled(self, backend):
        config = Config()
        config.sync.live = False
        controller, _ = await _started(backend, config)
        assert not controller.sync.is_open
        assert "subscribe" not in backend.calls
        await controller.stop()

    @pytest.mark.asyncio
    async def test_fetch_failure_empty_list_and_notice(self, backend, db):
        db.rows.append(make_row("a"))
        config = Config()
        config.sync.fetch_retries = 0
        backend.fail_next.add("select")
        controller, log = await _started(backend, config)
        assert controller.items == []
        assert any("Could not load bookmarks" in m for m in log.errors())
        await controller.stop()


# -- CRUD through the draft ---------------------------------------------------


class TestCrud:
    @pytest.mark.asyncio
    async def test_create_then_delete(self, backend):
        controller, _ = await _started(backend)
        result = await _add(controller, "Docs", "https://x")
        assert result.ok
        assert [(b.title, b.url, b.user_id) for b in controller.items] == [
            ("Docs", "https://x", "u1")
        ]
        assert (await controller.delete(result.value.id)).ok
        await controller.settle()
        assert controller.items == []
        await controller.stop()

    @pytest.mark.asyncio
    async def test_new_bookmark_goes_first(self, backend):
        controller, _ = await _started(backend)
        await _add(controller, "older", "https://1")
        await _add(controller, "newer", "https://2")
        assert [b.title for b in controller.items] == ["newer", "older"]
        await controller.stop()

    @pytest.mark.asyncio
    async def test_success_clears_draft(self, backend):
        controller, _ = await _started(backend)
        await _add(controller, "Docs", "https://x")
        assert controller.draft.state is DraftState.IDLE
        assert (controller.draft.title, controller.draft.url) == ("", "")
        await controller.stop()

    @pytest.mark.asyncio
    async def test_empty_submit_makes_no_call(self, backend, db):
        db.rows.append(make_row("a"))
        controller, _ = await _started(backend)
        calls_before = list(backend.calls)
        controller.set_title("Docs")
        result = await controller.submit()
        assert not result.ok
        assert backend.calls == calls_before
        assert [b.id for b in controller.items] == ["a"]
        assert controller.draft.title == "Docs"
        await controller.stop()

    @pytest.mark.asyncio
    async def test_failed_create_keeps_draft_and_reports(self, backend):
        controller, log = await _started(backend)
        backend.fail_next.add("insert")
        result = await _add(controller, "Docs", "https://x")
        assert not result.ok
        assert controller.draft.state is DraftState.COMPOSING
        assert (controller.draft.title, controller.draft.url) == ("Docs", "https://x")
        assert any("Could not add bookmark" in m for m in log.errors())
        assert controller.items == []
        await controller.stop()

    @pytest.mark.asyncio
    async def test_edit_flow(self, backend):
        controller, _ = await _started(backend)
        created = (await _add(controller, "Docs", "https://x")).value
        assert controller.begin_edit(created.id)
        assert controller.draft.is_editing
        assert controller.draft.title == "Docs"
        controller.set_title("Docs v2")
        result = await controller.submit()
        await controller.settle()
        assert result.ok
        assert not controller.draft.is_editing
        assert [(b.id, b.title) for b in controller.items] == [(created.id, "Docs v2")]
        await controller.stop()

    @pytest.mark.asyncio
    async def test_failed_update_rolls_back_and_stays_editing(self, backend):
        controller, log = await _started(backend)
        created = (await _add(controller, "Docs", "https://x")).value
        controller.begin_edit(created.id)
        controller.set_title("Broken")
        backend.fail_next.add("update")
        result = await controller.submit()
        await controller.settle()
        assert not result.ok
        assert controller.items[0].title == "Docs"
        assert controller.draft.state is DraftState.EDITING
        assert controller.draft.title == "Broken"
        assert any("Could not update bookmark" in m for m in log.errors())
        await controller.stop()

    @pytest.mark.asyncio
    async def test_cancel_edit(self, backend):
        controller, _ = await _started(backend)
        created = (await _add(controller, "Docs", "https://x")).value
        controller.begin_edit(created.id)
        assert controller.cancel_edit()
        assert controller.draft.state is DraftState.IDLE
        assert not controller.cancel_edit()
        await controller.stop()

    @pytest.mark.asyncio
    async def test_begin_edit_unknown_id(self, backend):
        controller, _ = await _started(backend)
        assert not controller.begin_edit("missing")
        await controller.stop()

    @pytest.mark.asyncio
    async def test_deleting_edit_target_resets_draft(self, backend):
        controller, _ = await _started(backend)
        created = (await _add(controller, "Docs", "https://x")).value
        controller.begin_edit(created.id)
        await controller.delete(created.id)
        assert controller.draft.state is DraftState.IDLE
        await controller.stop()

    @pytest.mark.asyncio
    async def test_failed_delete_reports(self, backend):
        controller, log = await _started(backend)
        created = (await _add(controller, "Docs", "https://x")).value
        backend.fail_next.add("delete")
        assert not (await controller.delete(created.id)).ok
        assert len(controller.items) == 1
        assert any("Could not delete bookmark" in m for m in log.errors())
        await controller.stop()

    @pytest.mark.asyncio
    async def test_listeners_told_what_changed(self, backend):
        controller, log = await _started(backend)
        log.events.clear()
        controller.set_title("x")
        assert log.kinds() == [DRAFT]
        controller.set_url("y")
        await controller.submit()
        assert BOOKMARKS in log.kinds()
        await controller.stop()


# -- live sync ----------------------------------------------------------------


class TestLiveSync:
    @pytest.mark.asyncio
    async def test_second_instance_sees_insert(self, db):
        a_backend = MemoryBackend(db, session=U1)
        b_backend = MemoryBackend(db, session=U1)
        a, _ = await _started(a_backend)
        b, b_log = await _started(b_backend)
        assert b.items == []

        await _add(a, "Docs", "https://x")
        await b.settle()
        assert [bm.title for bm in b.items] == ["Docs"]
        assert BOOKMARKS in b_log.kinds()

        await a.delete(a.items[0].id)
        await b.settle()
        assert b.items == []
        await a.stop()
        await b.stop()

    @pytest.mark.asyncio
    async def test_other_users_changes_invisible(self, db):
        mine = MemoryBackend(db, session=U1)
        theirs = MemoryBackend(db, session=U2)
        me, _ = await _started(mine)
        other, _ = await _started(theirs)
        await _add(other, "Secret", "https://s")
        await me.settle()
        assert me.items == []
        assert me.sync.events_seen == 0
        await me.stop()
        await other.stop()

    @pytest.mark.asyncio
    async def test_one_event_one_refresh(self, db, backend):
        controller, _ = await _started(backend)
        other = MemoryBackend(db, session=U1)
        selects_before = backend.calls.count("select")
        await other.insert_bookmark({"title": "t", "url": "u", "user_id": "u1"})
        await controller.settle()
        assert backend.calls.count("select") == selects_before + 1
        await controller.stop()

    @pytest.mark.asyncio
    async def test_single_subscription_across_token_refreshes(self, backend, db):
        controller, _ = await _started(backend)
        selects_before = backend.calls.count("select")
        for n in range(3):
            backend.refresh_token(f"t{n}")
            await controller.settle()
        assert len(db.active_subscriptions("u1")) == 1
        assert backend.calls.count("subscribe") == 1
        assert backend.calls.count("select") == selects_before
        await controller.stop()

    @pytest.mark.asyncio
    async def test_subscribe_failure_reported(self, backend):
        backend.fail_next.add("subscribe")
        controller, log = await _started(backend)
        assert not controller.sync.is_open
        assert any("Live updates unavailable" in m for m in log.errors())
        await controller.stop()


# -- sign in / sign out -------------------------------------------------------


class TestSessionTransitions:
    @pytest.mark.asyncio
    async def test_sign_in_loads_list(self, signed_out_backend, db):
        db.rows.append(make_row("a"))
        controller, _ = await _started(signed_out_backend)
        result = await controller.sign_in()
        await controller.settle()
        assert result.ok
        assert controller.session == U1
        assert [b.id for b in controller.items] == ["a"]
        assert controller.sync.is_open
        await controller.stop()

    @pytest.mark.asyncio
    async def test_sign_out_clears_everything(self, backend, db):
        controller, _ = await _started(backend)
        await _add(controller, "Docs", "https://x")
        controller.set_title("half typed")
        await controller.sign_out()
        await controller.settle()
        assert controller.session is None
        assert controller.items == []
        assert not controller.sync.is_open
        assert db.active_subscriptions() == []
        assert controller.draft.state is DraftState.IDLE
        await controller.stop()

    @pytest.mark.asyncio
    async def test_sign_out_failure_reported(self, backend):
        controller, log = await _started(backend)
        backend.fail_next.add("sign_out")
        await controller.sign_out()
        await controller.settle()
        assert controller.session == U1
        assert any("Sign-out failed" in m for m in log.errors())
        await controller.stop()

    @pytest.mark.asyncio
    async def test_sign_in_failure_reported(self, signed_out_backend):
        controller, log = await _started(signed_out_backend)
        signed_out_backend.fail_next.add("sign_in")
        assert not (await controller.sign_in()).ok
        assert any("Sign-in failed" in m for m in log.errors())
        await controller.stop()

    @pytest.mark.asyncio
    async def test_switching_user_rescopes(self, db):
        db.rows.extend([make_row("mine"), make_row("theirs", user_id="u2")])
        backend = MemoryBackend(db, session=U1, sign_in_session=U2)
        controller, _ = await _started(backend)
        assert [b.id for b in controller.items] == ["mine"]
        await backend.sign_in("google", "")
        await controller.settle()
        assert [b.id for b in controller.items] == ["theirs"]
        assert [s.user_id for s in db.active_subscriptions()] == ["u2"]
        await controller.stop()

    @pytest.mark.asyncio
    async def test_sign_out_during_initial_fetch(self, db):
        gate = asyncio.Event()

        class SlowBackend(MemoryBackend):
            async def select_bookmarks(self, user_id):
                await gate.wait()
                return await super().select_bookmarks(user_id)

        db.rows.append(make_row("a"))
        backend = SlowBackend(db, session=None, sign_in_session=U1)
        controller, _ = await _started(backend)
        await controller.sign_in()
        await asyncio.sleep(0)
        await controller.sign_out()
        gate.set()
        await controller.settle()
        assert controller.session is None
        assert controller.items == []
        assert db.active_subscriptions() == []
        await controller.stop()

    @pytest.mark.asyncio
    async def test_create_landing_after_sign_out_discarded(self, db):
        backend = GatedWrites(db, session=U1, sign_in_session=U1)
        controller, _ = await _started(backend)
        backend.hold.add("insert")
        controller.set_title("Docs")
        controller.set_url("https://x")
        pending = asyncio.ensure_future(controller.submit())
        await backend.in_flight.wait()
        await controller.sign_out()
        await controller.settle()
        backend.release.set()
        assert (await pending).ok
        await controller.settle()
        assert controller.session is None
        assert controller.items == []
        assert controller.draft.state is DraftState.IDLE
        await controller.stop()

    @pytest.mark.asyncio
    async def test_update_landing_after_sign_out_discarded(self, db):
        backend = GatedWrites(db, session=U1, sign_in_session=U1)
        controller, _ = await _started(backend)
        created = (await _add(controller, "Docs", "https://x")).value
        controller.begin_edit(created.id)
        controller.set_title("Docs v2")
        backend.hold.add("update")
        pending = asyncio.ensure_future(controller.submit())
        await backend.in_flight.wait()
        await controller.sign_out()
        await controller.settle()
        backend.release.set()
        assert (await pending).ok
        await controller.settle()
        assert controller.items == []
        assert controller.draft.state is DraftState.IDLE
        await controller.stop()
# -----------------------------------------------------------------


class TestStop:
    @pytest.mark.asyncio
    async def test_stop_releases_subscription_and_listener(self, backend, db):
        controller, log = await _started(backend)
        await controller.stop()
        assert controller.stopped
        assert db.active_subscriptions() == []
        log.events.clear()
        await backend.sign_out()
        assert log.events == []

    @pytest.mark.asyncio
    async def test_stop_twice(self, backend):
        controller, _ = await _started(backend)
        await controller.stop()
        await controller.stop()
        assert backend.calls.count("unsubscribe") == 1

    @pytest.mark.asyncio
    async def test_create_landing_after_stop_discarded(self, db):
        backend = GatedWrites(db, session=U1, sign_in_session=U1)
        controller, log = await _started(backend)
        backend.hold.add("insert")
        controller.set_title("Docs")
        controller.set_url("https://x")
        pending = asyncio.ensure_future(controller.submit())
        await backend.in_flight.wait()
        await controller.stop()
        log.events.clear()
        backend.release.set()
        await pending
        assert controller.items == []
        assert log.events == []
