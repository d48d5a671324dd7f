"""Tests for the Home Assistant history client.

Covers:
1. parse_history_payload (full and minimal responses, malformed items)
2. fetch_history / fetch_state over a mocked httpx transport
3. Error mapping to HistoryFetchError
4. Client defaults from settings
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from foundry_history.errors import HistoryFetchError
from foundry_history.services.history_client import HomeAssistantClient, parse_history_payload
from tests.helpers import T0, at


def _run(coro):  # noqa: ANN001, ANN202
    """Run an async coroutine in a fresh event loop."""
    return asyncio.run(coro)


def _client(handler) -> HomeAssistantClient:  # noqa: ANN001
    return HomeAssistantClient(
        base_url="http://hass.local:8123/",
        token="secret",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


MINIMAL_PAYLOAD = [
    [
        {
            "entity_id": "sensor.temp",
            "state": "21.5",
            "last_changed": "2026-01-01T12:00:00+00:00",
            "attributes": {"unit_of_measurement": "°C"},
        },
        {"state": "22.0", "last_changed": "2026-01-01T12:30:00+00:00"},
        {"state": "unavailable", "last_changed": "2026-01-01T13:00:00+00:00"},
    ]
]


# =============================================================================
# 1. Payload parsing
# =============================================================================


def test_parse_minimal_response() -> None:
    """Only the first item carries entity_id and attributes."""
    histories = parse_history_payload(MINIMAL_PAYLOAD, ["sensor.temp"])
    history = histories["sensor.temp"]
    assert history.unit == "°C"
    assert [(r.timestamp, r.raw_state) for r in history.records] == [
        (T0, "21.5"),
        (at(30), "22.0"),
        (at(60), "unavailable"),
    ]


def test_parse_falls_back_to_requested_order() -> None:
    """Lists without entity_id are matched to the requested ids by position."""
    payload = [[{"state": "on", "last_changed": "2026-01-01T12:00:00+00:00"}]]
    histories = parse_history_payload(payload, ["binary_sensor.door"])
    assert list(histories) == ["binary_sensor.door"]


def test_parse_skips_malformed_items() -> None:
    payload = [
        [
            {"entity_id": "sensor.a", "state": "1", "last_changed": "2026-01-01T12:00:00+00:00"},
            {"state": "2", "last_changed": "not-a-date"},
            {"last_changed": "2026-01-01T12:10:00+00:00"},
            "garbage",
        ]
    ]
    history = parse_history_payload(payload, ["sensor.a"])["sensor.a"]
    assert [r.raw_state for r in history.records] == ["1"]


def test_parse_empty_lists_are_omitted() -> None:
    assert parse_history_payload([[]], ["sensor.a"]) == {}
    assert parse_history_payload([], ["sensor.a"]) == {}


@pytest.mark.parametrize("payload", [{"error": "nope"}, [{"state": "on"}], "text"])
def test_parse_rejects_unexpected_shapes(payload: object) -> None:
    with pytest.raises(HistoryFetchError):
        parse_history_payload(payload, ["sensor.a"])


# =============================================================================
# 2. HTTP calls
# =============================================================================


def test_fetch_history_request() -> None:
    """The request hits the period endpoint with filter, end time and auth."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=MINIMAL_PAYLOAD)

    histories = _run(_client(handler).fetch_history(["sensor.temp"], T0, at(60)))

    request = seen[0]
    assert request.url.path == f"/api/history/period/{T0.isoformat()}"
    assert request.url.params["filter_entity_id"] == "sensor.temp"
    assert request.url.params["end_time"] == at(60).isoformat()
    assert "minimal_response" in request.url.params
    assert request.headers["Authorization"] == "Bearer secret"
    assert len(histories["sensor.temp"].records) == 3


def test_fetch_history_joins_entity_ids() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[])

    _run(_client(handler).fetch_history(["sensor.a", "sensor.b"], T0, at(60)))
    assert seen[0].url.params["filter_entity_id"] == "sensor.a,sensor.b"


def test_fetch_state() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/states/sensor.temp"
        return httpx.Response(200, json={"entity_id": "sensor.temp", "state": "21.5"})

    assert _run(_client(handler).fetch_state("sensor.temp")) == "21.5"


def test_fetch_state_missing_entity_is_none() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "Entity not found."})

    assert _run(_client(handler).fetch_state("sensor.gone")) is None


# =============================================================================
# 3. Errors
# =============================================================================


def test_fetch_history_http_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    with pytest.raises(HistoryFetchError, match="History request failed"):
        _run(_client(handler).fetch_history(["sensor.a"], T0, at(60)))


def test_fetch_history_connection_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(HistoryFetchError):
        _run(_client(handler).fetch_history(["sensor.a"], T0, at(60)))


def test_fetch_history_invalid_json() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>")

    with pytest.raises(HistoryFetchError, match="not valid JSON"):
        _run(_client(handler).fetch_history(["sensor.a"], T0, at(60)))


def test_fetch_state_unauthorized() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401)

    with pytest.raises(HistoryFetchError):
        _run(_client(handler).fetch_state("sensor.a"))


def test_fetch_history_timeout() -> None:
    """A timeout raised by the underlying client maps to HistoryFetchError."""
    mock_client = AsyncMock()
    mock_client.get = AsyncMock(side_effect=httpx.ReadTimeout("too slow"))
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=None)

    with (
        patch(
            "foundry_history.services.history_client.httpx.AsyncClient",
            return_value=mock_client,
        ),
        pytest.raises(HistoryFetchError, match="too slow"),
    ):
        _run(HomeAssistantClient().fetch_history(["sensor.a"], T0, at(60)))

    mock_client.get.assert_called_once()


# =============================================================================
# 4. Settings defaults
# =============================================================================


def test_client_defaults_from_settings() -> None:
    """Unset constructor arguments come from the service settings."""
    mock_settings = MagicMock(
        HASS_URL="http://hass.test:8123/", HASS_TOKEN="tok", HTTP_TIMEOUT=3.0
    )
    with patch("foundry_history.services.history_client.settings", mock_settings):
        client = HomeAssistantClient()
    assert client.base_url == "http://hass.test:8123"
    assert client._token == "tok"
    assert client._timeout == 3.0


def test_client_without_token_sends_no_auth_header() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"state": "on"})

    client = HomeAssistantClient(
        base_url="http://hass.local", token="", transport=httpx.MockTransport(handler)
    )
    _run(client.fetch_state("binary_sensor.door"))
    assert "Authorization" not in seen[0].headers
