"""Home Assistant REST client for entity history and live state.

Uses:
- GET /api/history/period/{start}?filter_entity_id=...&minimal_response&end_time=...
- GET /api/states/{entity_id}

Transport and payload errors are raised as ``HistoryFetchError`` so callers
only have one failure type to handle.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any

import httpx

from foundry_history.config import settings
from foundry_history.errors import HistoryFetchError
from shared.schemas import EntityHistory, HistoryRecord

logger = logging.getLogger(__name__)


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def parse_history_payload(
    payload: Any,
    entity_ids: Sequence[str],
) -> dict[str, EntityHistory]:
    """Convert a history API response into per-entity record lists.

    The API returns one list per entity. With ``minimal_response`` only the
    first item carries ``entity_id`` and ``attributes``; the rest only have
    ``state`` and ``last_changed``. Items without a usable timestamp are
    dropped.

    Raises:
        HistoryFetchError: If the payload is not a list of lists.
    """
    if not isinstance(payload, list):
        raise HistoryFetchError(f"Unexpected history payload type: {type(payload).__name__}")

    result: dict[str, EntityHistory] = {}
    for index, items in enumerate(payload):
        if not isinstance(items, list):
            raise HistoryFetchError("Unexpected history payload: entity entry is not a list")
        if not items:
            continue

        first = items[0] if isinstance(items[0], dict) else {}
        entity_id = first.get("entity_id")
        if not entity_id:
            if index >= len(entity_ids):
                continue
            entity_id = entity_ids[index]

        attributes = first.get("attributes") or {}
        unit = attributes.get("unit_of_measurement")

        records: list[HistoryRecord] = []
        skipped = 0
        for item in items:
            if not isinstance(item, dict) or item.get("state") is None:
                skipped += 1
                continue
            ts = _parse_timestamp(item.get("last_changed") or item.get("last_updated"))
            if ts is None:
                skipped += 1
                continue
            records.append(HistoryRecord(timestamp=ts, raw_state=str(item["state"])))

        if skipped:
            logger.debug("Skipped %d malformed history items for %s", skipped, entity_id)

        result[entity_id] = EntityHistory(entity_id=entity_id, records=tuple(records), unit=unit)
    return result


class HomeAssistantClient:
    """Async client for the host's history and state endpoints."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.HASS_URL).rstrip("/")
        self._token = token if token is not None else settings.HASS_TOKEN
        self._timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def fetch_history(
        self,
        entity_ids: Sequence[str],
        start: datetime,
        end: datetime,
    ) -> dict[str, EntityHistory]:
        """Fetch state changes of ``entity_ids`` between ``start`` and ``end``.

        Raises:
            HistoryFetchError: On network errors, non-2xx responses or bad JSON.
        """
        params = {
            "filter_entity_id": ",".join(entity_ids),
            "minimal_response": "",
            "end_time": end.isoformat(),
        }
        try:
            async with self._client() as client:
                resp = await client.get(f"/api/history/period/{start.isoformat()}", params=params)
                resp.raise_for_status()
                payload = resp.json()
        except httpx.HTTPError as e:
            raise HistoryFetchError(f"History request failed: {e}") from e
        except ValueError as e:
            raise HistoryFetchError(f"History response is not valid JSON: {e}") from e

        return parse_history_payload(payload, entity_ids)

    async def fetch_state(self, entity_id: str) -> str | None:
        """Fetch the current raw state of an entity (None if it does not exist).

        Raises:
            HistoryFetchError: On network errors, non-2xx responses or bad JSON.
        """
        try:
            async with self._client() as client:
                resp = await client.get(f"/api/states/{entity_id}")
                if resp.status_code == 404:
                    return None
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as e:
            raise HistoryFetchError(f"State request for {entity_id} failed: {e}") from e
        except ValueError as e:
            raise HistoryFetchError(f"State response is not valid JSON: {e}") from e

        state = data.get("state") if isinstance(data, dict) else None
        return str(state) if state is not None else None
