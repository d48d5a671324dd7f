"""Tests for the per-widget refresher and the registry.

Covers:
1. Refresh applies results and stamps them
2. Stamp discipline: superseded responses are dropped
3. Fetch failures keep the previous result and mark it stale
4. Pushed live states and needs_refresh
5. Registry lookups and status rows
"""

from __future__ import annotations

import asyncio
from datetime import datetime

import pytest

from foundry_history.errors import HistoryFetchError
from foundry_history.schemas.widget import WidgetConfig
from foundry_history.services.refresher import WidgetRefresher
from foundry_history.services.registry import WidgetRegistry
from shared.schemas import EntityHistory
from tests.helpers import T0, at, rec


def _run(coro):  # noqa: ANN001, ANN202
    return asyncio.run(coro)


class FakeSource:
    """In-memory history source.

    ``gates`` maps a window end to an event the fetch waits on, which lets a
    test finish fetches in any order.
    """

    def __init__(self, records=(), state: str | None = "on") -> None:  # noqa: ANN001
        self.records = tuple(records)
        self.state = state
        self.fail = False
        self.gates: dict[datetime, asyncio.Event] = {}
        self.history_calls: list[tuple[list[str], datetime, datetime]] = []

    async def fetch_history(self, entity_ids, start, end):  # noqa: ANN001, ANN201
        self.history_calls.append((list(entity_ids), start, end))
        gate = self.gates.get(end)
        if gate is not None:
            await gate.wait()
        if self.fail:
            raise HistoryFetchError("host unreachable")
        return {e: EntityHistory(entity_id=e, records=self.records) for e in entity_ids}

    async def fetch_state(self, entity_id):  # noqa: ANN001, ANN201
        return self.state


def _config(**overrides) -> WidgetConfig:  # noqa: ANN003
    data = {
        "id": "router",
        "entity": "binary_sensor.router",
        "bucket_count": 4,
        "hours_to_show": 1,
    }
    data.update(overrides)
    return WidgetConfig(**data)


# =============================================================================
# 1. Refresh
# =============================================================================


def test_refresh_applies_result() -> None:
    source = FakeSource(records=[rec(0, "on")])
    refresher = WidgetRefresher(_config(), source)

    assert refresher.stale
    assert _run(refresher.refresh(at(60))) is True

    result = refresher.result
    assert result is not None
    assert result.generated_at == at(60)
    assert result.window.start == T0
    assert result.window.end == at(60)
    assert result.status_text == "Up"
    assert refresher.last_updated == at(60)
    assert not refresher.stale
    assert not refresher.refreshing


def test_refresh_requests_all_chart_series() -> None:
    source = FakeSource(state="20")
    config = _config(mode="numeric", entities=["sensor.b"])
    refresher = WidgetRefresher(config, source)
    _run(refresher.refresh(at(60)))
    assert source.history_calls[0][0] == ["binary_sensor.router", "sensor.b"]
    assert len(refresher.result.series) == 2


def test_refresh_uses_clock_by_default() -> None:
    refresher = WidgetRefresher(_config(), FakeSource(), clock=lambda: at(90))
    _run(refresher.refresh())
    assert refresher.last_updated == at(90)


# =============================================================================
# 2. Stamp discipline
# =============================================================================


def test_older_response_is_dropped() -> None:
    """A slow timer refresh finishing after a newer refresh must not win."""

    async def scenario() -> WidgetRefresher:
        source = FakeSource()
        refresher = WidgetRefresher(_config(), source)
        source.gates[at(60)] = asyncio.Event()

        slow = asyncio.create_task(refresher.refresh(at(60)))
        await asyncio.sleep(0)
        assert refresher.refreshing

        assert await refresher.refresh(at(61)) is True
        source.gates[at(60)].set()
        assert await slow is False
        return refresher

    refresher = _run(scenario())
    assert refresher.last_updated == at(61)
    assert refresher.result.generated_at == at(61)


def test_newer_response_replaces_older() -> None:
    source = FakeSource()
    refresher = WidgetRefresher(_config(), source)
    _run(refresher.refresh(at(60)))
    _run(refresher.refresh(at(70)))
    assert refresher.result.generated_at == at(70)


# =============================================================================
# 3. Failures
# =============================================================================


def test_failed_fetch_keeps_previous_result() -> None:
    source = FakeSource()
    refresher = WidgetRefresher(_config(), source)
    _run(refresher.refresh(at(60)))
    previous = refresher.result

    source.fail = True
    assert _run(refresher.refresh(at(70))) is False
    assert refresher.result is previous
    assert refresher.stale
    assert refresher.last_error == "host unreachable"
    assert refresher.last_updated == at(60)

    source.fail = False
    _run(refresher.refresh(at(80)))
    assert not refresher.stale
    assert refresher.last_error is None


def test_failure_before_first_result() -> None:
    source = FakeSource()
    source.fail = True
    refresher = WidgetRefresher(_config(), source)
    assert _run(refresher.refresh(at(60))) is False
    assert refresher.result is None
    assert refresher.stale


def test_state_fetch_failure_stops_refresh() -> None:
    """A failing live-state request fails the refresh without fetching the rest."""

    class BrokenStateSource(FakeSource):
        def __init__(self) -> None:
            super().__init__(state="20")
            self.state_calls: list[str] = []

        async def fetch_state(self, entity_id):  # noqa: ANN001, ANN201
            self.state_calls.append(entity_id)
            if entity_id == "sensor.a":
                raise HistoryFetchError("state unavailable")
            return self.state

    source = BrokenStateSource()
    config = _config(mode="numeric", entity="sensor.a", entities=["sensor.b", "sensor.c"])
    refresher = WidgetRefresher(config, source)

    assert _run(refresher.refresh(at(60))) is False
    assert source.state_calls == ["sensor.a"]
    assert refresher.last_error == "state unavailable"
    assert refresher.result is None
    assert not refresher.refreshing


# =============================================================================
# 4. Live states
# =============================================================================


def test_needs_refresh_after_interval() -> None:
    refresher = WidgetRefresher(_config(update_interval=60), FakeSource())
    assert refresher.needs_refresh(at(0))
    _run(refresher.refresh(at(0)))
    assert not refresher.needs_refresh(at(1))
    assert refresher.needs_refresh(at(2))


def test_push_state_updates_status_without_refetch() -> None:
    source = FakeSource(state="on")
    refresher = WidgetRefresher(_config(update_interval=600), source)
    _run(refresher.refresh(at(60)))

    assert _run(refresher.push_state("off", now=at(61))) is False
    assert len(source.history_calls) == 1
    assert refresher.result.live_state == "off"
    assert refresher.result.status_text == "Down"


def test_push_state_refreshes_stale_cache() -> None:
    source = FakeSource(state="on")
    refresher = WidgetRefresher(_config(update_interval=60), source)
    _run(refresher.refresh(at(60)))

    assert _run(refresher.push_state("off", now=at(70))) is True
    assert len(source.history_calls) == 2
    assert refresher.result.generated_at == at(70)


def test_pushed_state_newer_than_fetch_wins() -> None:
    """A fetched live state older than a pushed one does not override it."""

    async def scenario() -> WidgetRefresher:
        source = FakeSource(state="on")
        refresher = WidgetRefresher(_config(update_interval=600), source)
        await refresher.refresh(at(0))

        source.gates[at(5)] = asyncio.Event()
        slow = asyncio.create_task(refresher.refresh(at(5)))
        await asyncio.sleep(0)
        await refresher.push_state("off", now=at(6))
        source.gates[at(5)].set()
        await slow
        return refresher

    refresher = _run(scenario())
    assert refresher.result.generated_at == at(5)
    assert refresher.result.live_state == "off"


# =============================================================================
# 5. Registry
# =============================================================================


def test_registry_lookup_and_statuses() -> None:
    source = FakeSource()
    registry = WidgetRegistry(
        [_config(), _config(id="climate", entity="sensor.t", mode="numeric", title="Climate")],
        source,
    )
    assert len(registry) == 2
    assert "climate" in registry
    assert "missing" not in registry
    with pytest.raises(KeyError):
        registry.get("missing")

    _run(registry.get("router").refresh(at(60)))
    rows = {row.widget_id: row for row in registry.statuses()}
    assert rows["router"].last_updated == at(60)
    assert not rows["router"].stale
    assert rows["climate"].stale
    assert rows["climate"].title == "Climate"


def test_registry_start_stop() -> None:
    """Refreshers run in the background until stopped."""

    async def scenario() -> WidgetRegistry:
        registry = WidgetRegistry([_config()], FakeSource())
        registry.start()
        await asyncio.sleep(0.05)
        registry.stop()
        return registry

    registry = _run(scenario())
    assert registry.get("router").result is not None
