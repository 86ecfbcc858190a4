"""Tests for the in-memory message bus and channel naming."""

from __future__ import annotations

from typing import Any

import pytest

from rpg_combat.core.exceptions import RealtimeError
from rpg_combat.realtime.bus import InMemoryBus, activity_channel, combat_channel


class TestInMemoryBus:
    """Tests for publish/subscribe delivery."""

    def test_delivers_to_subscribers(self) -> None:
        """Test every subscriber of the channel/event receives the payload."""
        bus = InMemoryBus()
        first: list[dict[str, Any]] = []
        second: list[dict[str, Any]] = []
        bus.subscribe("game:1:combat", "ping", first.append)
        bus.subscribe("game:1:combat", "ping", second.append)

        bus.publish("game:1:combat", "ping", {"n": 1})

        assert first == [{"n": 1}]
        assert second == [{"n": 1}]

    def test_scoped_by_channel_and_event(self) -> None:
        """Test other channels and events are not delivered."""
        bus = InMemoryBus()
        received: list[dict[str, Any]] = []
        bus.subscribe("game:1:combat", "ping", received.append)

        bus.publish("game:2:combat", "ping", {"n": 1})
        bus.publish("game:1:combat", "pong", {"n": 2})

        assert received == []

    def test_handlers_get_own_copy(self) -> None:
        """Test a handler mutating its payload does not affect others."""
        bus = InMemoryBus()
        received: list[dict[str, Any]] = []

        def mutate(payload: dict[str, Any]) -> None:
            payload["n"] = 99

        bus.subscribe("c", "e", mutate)
        bus.subscribe("c", "e", received.append)
        original = {"n": 1}

        bus.publish("c", "e", original)

        assert received == [{"n": 1}]
        assert original == {"n": 1}

    def test_unsubscribe(self) -> None:
        """Test an unsubscribed handler receives nothing more."""
        bus = InMemoryBus()
        received: list[dict[str, Any]] = []
        unsubscribe = bus.subscribe("c", "e", received.append)

        unsubscribe()
        unsubscribe()
        bus.publish("c", "e", {"n": 1})

        assert received == []
        assert bus.subscriber_count("c", "e") == 0

    def test_failing_handler_isolated(self) -> None:
        """Test one failing handler does not stop delivery to the rest."""
        bus = InMemoryBus()
        received: list[dict[str, Any]] = []

        def broken(_: dict[str, Any]) -> None:
            raise RuntimeError("boom")

        bus.subscribe("c", "e", broken)
        bus.subscribe("c", "e", received.append)

        bus.publish("c", "e", {"n": 1})

        assert received == [{"n": 1}]

    def test_non_json_payload_rejected(self) -> None:
        """Test payloads must be JSON serializable."""
        bus = InMemoryBus()

        with pytest.raises(RealtimeError):
            bus.publish("c", "e", {"n": object()})

        assert list(bus.history) == []

    def test_history_records_publishes(self) -> None:
        """Test published messages are kept in order."""
        bus = InMemoryBus()

        bus.publish("c", "a", {"n": 1})
        bus.publish("c", "b", {"n": 2})

        assert list(bus.history) == [("c", "a", {"n": 1}), ("c", "b", {"n": 2})]

    def test_history_keeps_most_recent(self) -> None:
        """Test history drops the oldest messages past its limit."""
        bus = InMemoryBus(history_limit=2)

        for n in range(5):
            bus.publish("c", "e", {"n": n})

        assert [payload["n"] for _, _, payload in bus.history] == [3, 4]


class TestChannels:
    """Tests for per-game channel names."""

    def test_default_names(self, settings: Any) -> None:
        """Test default channel templates."""
        assert combat_channel("g1", settings) == "game:g1:combat"
        assert activity_channel("g1", settings) == "game:g1:chat"

    def test_custom_template(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the combat template can be configured."""
        monkeypatch.setenv("RPG_COMBAT_REALTIME_CHANNEL_TEMPLATE", "tables/{game_id}")

        assert combat_channel("g1") == "tables/g1"
