"""Tests for the polling sync controller."""

import logging
from collections.abc import Iterator
from typing import Any

import pytest
from PySide6.QtTest import QTest

from battlemap_sync.maps.models import Battlemap, Token
from battlemap_sync.maps.session import BattlemapSession
from battlemap_sync.sync.controller import SyncController, compute_token_hash, merge_tokens
from battlemap_sync.sync.transport import BattlemapTransport
from battlemap_sync.sync.wire import battlemap_from_wire, battlemap_to_wire
from battlemap_sync.view.viewport import Size, ViewportState


class FakeTransport(BattlemapTransport):
    """Records requests; tests answer them by calling the stored callbacks."""

    def __init__(self) -> None:
        self.fetches: list[tuple[Any, Any]] = []
        self.stores: list[tuple[dict[str, Any], Any, Any]] = []

    def fetch_battlemap(self, on_success, on_error) -> None:
        self.fetches.append((on_success, on_error))

    def store_battlemap(self, payload, on_success, on_error) -> None:
        self.stores.append((payload, on_success, on_error))


def server_payload(**overrides: Any) -> dict[str, Any]:
    battlemap = Battlemap(
        grid_size=12,
        canvas_width=600,
        canvas_height=600,
        tokens=[Token(id=5, x=75.0, y=75.0, name="Server")],
        fog_revealed_areas={(3, 3)},
    )
    payload = battlemap_to_wire(battlemap)
    payload.update(overrides)
    return payload


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def session(qapp) -> BattlemapSession:
    return BattlemapSession(Battlemap(grid_size=10, canvas_width=500, canvas_height=500))


@pytest.fixture
def controller(session, transport) -> Iterator[SyncController]:
    controller = SyncController(session, transport, debounce_ms=50, poll_interval_ms=60000)
    yield controller
    controller.stop()


class TestTokenHash:
    """Test the token fingerprint."""

    def test_format(self) -> None:
        """Test field order and two-decimal coordinates."""
        assert compute_token_hash([Token(id=1, x=10.001, y=5)]) == "1:10.00:5.00:false::::"

    def test_order_independent(self) -> None:
        """Test token order does not matter."""
        a = Token(id=1, x=1, y=1, is_gm_only=True, color="#fff")
        b = Token(id=2, x=2, y=2, avatar_url="x.png")
        assert compute_token_hash([a, b]) == compute_token_hash([b, a])

    def test_sub_precision_moves_ignored(self) -> None:
        """Test differences below 0.005 px produce the same hash."""
        assert compute_token_hash([Token(id=1, x=10.001, y=0)]) == compute_token_hash(
            [Token(id=1, x=10.004, y=0)]
        )

    def test_appearance_changes_hash(self) -> None:
        """Test appearance fields are part of the hash."""
        assert compute_token_hash([Token(id=1, x=0, y=0)]) != compute_token_hash(
            [Token(id=1, x=0, y=0, border_color="#000000")]
        )


class TestMergeTokens:
    """Test field-level merge of server tokens."""

    def test_keeps_local_avatar_and_character(self) -> None:
        """Test missing server fields inherit local values."""
        local = [Token(id=1, x=0, y=0, avatar_url="a.png", character_id=9)]
        incoming = [Token(id=1, x=50, y=50)]
        merged = merge_tokens(local, incoming)
        assert merged[0].avatar_url == "a.png"
        assert merged[0].character_id == 9
        assert (merged[0].x, merged[0].y) == (50, 50)

    def test_server_values_win(self) -> None:
        """Test server values are kept when present."""
        local = [Token(id=1, x=0, y=0, avatar_url="old.png")]
        merged = merge_tokens(local, [Token(id=1, x=0, y=0, avatar_url="new.png")])
        assert merged[0].avatar_url == "new.png"

    def test_server_list_defines_membership(self) -> None:
        """Test tokens missing on the server are dropped."""
        local = [Token(id=1, x=0, y=0), Token(id=2, x=0, y=0)]
        assert [t.id for t in merge_tokens(local, [Token(id=2, x=0, y=0)])] == [2]


class TestSavePath:
    """Test debounced saving."""

    def test_edit_schedules_save(self, controller, session, transport) -> None:
        """Test a local edit arms the debounce timer without saving."""
        session.place_token(10, 10)
        assert controller.save_pending
        assert transport.stores == []

    def test_flush_sends_local_state(self, controller, session, transport) -> None:
        """Test flushing PUTs the wire form of the local state."""
        session.place_token(10, 10)
        controller.flush_save()

        assert controller.is_saving
        assert not controller.save_pending
        payload = transport.stores[0][0]
        assert payload["gridSize"] == 10
        assert payload["tokens"][0]["tid"] == 1

    def test_debounce_coalesces_edits(self, controller, session, transport) -> None:
        """Test a burst of edits produces a single save."""
        session.place_token(10, 10)
        session.place_token(60, 10)
        session.place_token(110, 10)
        QTest.qWait(300)
        assert len(transport.stores) == 1
        assert len(transport.stores[0][0]["tokens"]) == 3

    def test_success_clears_saving_and_records_hash(self, controller, session, transport) -> None:
        """Test a successful save records the saved token hash."""
        saved: list[int] = []
        controller.saved.connect(lambda: saved.append(1))
        session.place_token(10, 10)
        controller.flush_save()
        payload, on_success, _ = transport.stores[0]

        on_success(payload)

        assert not controller.is_saving
        assert controller.last_token_hash == compute_token_hash(session.tokens)
        assert saved == [1]

    def test_echoed_state_does_not_replace_tokens(self, controller, session, transport) -> None:
        """Test the server echo of our own save is not re-applied."""
        session.place_token(10, 10)
        controller.flush_save()
        tokens_before = session.battlemap.tokens
        payload, on_success, _ = transport.stores[0]

        on_success(payload)

        assert session.battlemap.tokens is tokens_before

    def test_failure_keeps_local_state_and_retries(self, controller, session, transport) -> None:
        """Test a failed save keeps edits and re-arms the save timer."""
        failures: list[str] = []
        controller.saveFailed.connect(failures.append)
        session.place_token(10, 10)
        controller.flush_save()
        _, _, on_error = transport.stores[0]

        on_error("connection refused")

        assert not controller.is_saving
        assert controller.save_pending
        assert failures == ["connection refused"]
        assert len(session.tokens) == 1

    def test_one_save_in_flight(self, controller, session, transport) -> None:
        """Test a second save waits for the first to finish."""
        session.place_token(10, 10)
        controller.flush_save()
        session.place_token(60, 10)
        controller.flush_save()

        assert len(transport.stores) == 1
        assert controller.save_pending


class TestPollPath:
    """Test polling and applying server state."""

    def test_poll_applies_server_state(self, controller, session, transport) -> None:
        """Test a poll result replaces tokens, fog and grid settings."""
        applied: list[int] = []
        controller.battlemapApplied.connect(lambda: applied.append(1))

        controller.poll_now()
        on_success, _ = transport.fetches[0]
        on_success(server_payload())

        assert session.battlemap.grid_size == 12
        assert session.battlemap.canvas_width == 600
        assert [t.name for t in session.tokens] == ["Server"]
        assert session.fog.revealed == {(3, 3)}
        assert applied == [1]

    def test_poll_skipped_while_saving(self, controller, session, transport) -> None:
        """Test no request is made while a save is in flight."""
        session.place_token(10, 10)
        controller.flush_save()
        controller.poll_now()
        assert transport.fetches == []

    def test_poll_result_dropped_while_saving(self, controller, session, transport) -> None:
        """Test a poll answered during a save is discarded."""
        session.viewport.restore(ViewportState(zoom_level=1.7, pan_x=12.25, pan_y=-3.5))
        viewport_before = session.viewport.state

        controller.poll_now()
        session.place_token(10, 10)
        controller.flush_save()
        on_success, _ = transport.fetches[0]

        on_success(server_payload())

        assert [t.id for t in session.tokens] == [1]
        assert session.battlemap.grid_size == 10
        assert session.viewport.state == viewport_before

    def test_pending_edits_keep_local_tokens(self, controller, session, transport) -> None:
        """Test tokens, fog and grid are not replaced while edits await saving."""
        session.place_token(10, 10)
        controller.poll_now()
        on_success, _ = transport.fetches[0]

        on_success(server_payload())

        assert [t.id for t in session.tokens] == [1]
        assert session.fog.revealed == set()
        assert session.battlemap.grid_size == 10
        assert session.battlemap.canvas_width == 500

    def test_pending_grid_edit_survives_poll(self, controller, session, transport) -> None:
        """Test a grid size edit in the debounce window is saved, not reverted."""
        session.set_grid_size(20)
        controller.poll_now()
        transport.fetches[0][0](server_payload(gridSize=10))

        assert session.battlemap.grid_size == 20
        controller.flush_save()
        assert transport.stores[0][0]["gridSize"] == 20

    def test_viewport_never_changes(self, controller, session) -> None:
        """Test applying server state leaves zoom and pan bit-for-bit equal."""
        session.viewport.restore(ViewportState(zoom_level=2.3, pan_x=-41.125, pan_y=17.0))
        before = session.viewport.state

        controller.apply_battlemap_data(battlemap_from_wire(server_payload(gridSize=3)))

        assert session.viewport.state == before

    def test_viewport_restored_after_mutation(
        self, controller, session, monkeypatch, caplog
    ) -> None:
        """Test an accidental viewport change is logged and undone."""
        before = session.viewport.state

        def mutating_merge(local, incoming):
            session.viewport.set_zoom(3.0)
            return list(incoming)

        monkeypatch.setattr("battlemap_sync.sync.controller.merge_tokens", mutating_merge)
        with caplog.at_level(logging.ERROR):
            controller.apply_battlemap_data(battlemap_from_wire(server_payload()))

        assert session.viewport.state == before
        assert "Viewport changed" in caplog.text

    def test_unchanged_tokens_not_replaced(self, controller, session, transport) -> None:
        """Test identical token data is skipped on the next poll."""
        controller.poll_now()
        transport.fetches[0][0](server_payload())
        tokens_after_first = session.battlemap.tokens

        controller.poll_now()
        transport.fetches[1][0](server_payload())

        assert session.battlemap.tokens is tokens_after_first

    def test_merge_keeps_avatar(self, controller, session, transport) -> None:
        """Test a server token without avatar keeps the local one."""
        controller.poll_now()
        transport.fetches[0][0](server_payload())
        session.tokens[0].avatar_url = "local.png"

        moved = server_payload()
        moved["tokens"][0]["x"] = 125.0
        controller.poll_now()
        transport.fetches[1][0](moved)

        assert session.tokens[0].x == 125.0
        assert session.tokens[0].avatar_url == "local.png"

    def test_poll_error(self, controller, session, transport) -> None:
        """Test transport errors are reported and state is untouched."""
        failures: list[str] = []
        controller.pollFailed.connect(failures.append)
        controller.poll_now()
        transport.fetches[0][1]("timeout")
        assert failures == ["timeout"]
        assert session.battlemap.grid_size == 10

    def test_malformed_poll_result(self, controller, session, transport) -> None:
        """Test malformed bodies are reported as poll failures."""
        failures: list[str] = []
        controller.pollFailed.connect(failures.append)
        controller.poll_now()
        transport.fetches[0][0]({"tokens": [{"x": 1}]})
        assert len(failures) == 1
        assert session.tokens == []


class TestLifecycle:
    """Test start and stop."""

    def test_start_loads_and_centers(self, controller, session, transport) -> None:
        """Test the initial load applies data and centers the view."""
        controller.viewport_size = Size(800, 700)
        controller.start()
        assert controller.polling

        transport.fetches[0][0](server_payload())

        assert session.viewport.initialized
        assert (session.viewport.pan_x, session.viewport.pan_y) == (100.0, 50.0)

    def test_stop(self, controller, session) -> None:
        """Test stopping halts both timers."""
        controller.start()
        session.place_token(10, 10)
        controller.stop()
        assert not controller.polling
        assert not controller.save_pending
