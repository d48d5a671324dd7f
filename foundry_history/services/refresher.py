"""Per-widget refresh loop and result holder.

Each widget gets its own ``WidgetRefresher`` owning exactly one current
result. Fetches are stamped with the refresh time when issued; a response
whose stamp is older than the result already applied is dropped, so an
out-of-cycle refresh can never be overwritten by a slower timer refresh.
A failed fetch keeps the previous result and marks it stale.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Protocol

from foundry_history.errors import HistoryFetchError
from foundry_history.schemas.result import WidgetResult
from foundry_history.schemas.widget import WidgetConfig
from foundry_history.services.pipeline import compute_widget
from shared.schemas import ClassificationMode, EntityHistory, Window

logger = logging.getLogger(__name__)


class HistorySource(Protocol):
    """What the refresher needs from the host API client."""

    async def fetch_history(
        self, entity_ids: list[str], start: datetime, end: datetime
    ) -> dict[str, EntityHistory]: ...

    async def fetch_state(self, entity_id: str) -> str | None: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WidgetRefresher:
    """Fetches history for one widget and keeps its latest computed result.

    Usage:
        refresher = WidgetRefresher(config, client)
        refresher.start()          # background refresh every update_interval
        ...
        refresher.result           # last good WidgetResult (or None)
        refresher.stop()
    """

    def __init__(
        self,
        config: WidgetConfig,
        source: HistorySource,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.config = config
        self._source = source
        self._clock = clock

        self._result: WidgetResult | None = None
        self._applied_stamp: datetime | None = None
        self._inflight_stamp: datetime | None = None
        self._last_fetch: datetime | None = None
        self._last_error: str | None = None
        # entity_id -> (stamp, raw state) of the freshest live state seen
        self._live_states: dict[str, tuple[datetime, str | None]] = {}

        self._task: asyncio.Task[None] | None = None
        self._running = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def result(self) -> WidgetResult | None:
        return self._result

    @property
    def last_updated(self) -> datetime | None:
        return self._applied_stamp

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def refreshing(self) -> bool:
        return self._inflight_stamp is not None

    @property
    def stale(self) -> bool:
        """True when there is no result yet or the latest fetch failed."""
        return self._result is None or self._last_error is not None

    @property
    def entity_ids(self) -> list[str]:
        if self.config.mode == ClassificationMode.NUMERIC:
            return self.config.all_entities
        return [self.config.entity]

    def needs_refresh(self, now: datetime | None = None) -> bool:
        """True when nothing was fetched yet or the last fetch is older than the interval."""
        if self._last_fetch is None:
            return True
        now = now or self._clock()
        return now - self._last_fetch > timedelta(seconds=self.config.update_interval)

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def _remember_state(self, entity_id: str, state: str | None, stamp: datetime) -> None:
        known = self._live_states.get(entity_id)
        if known is None or stamp >= known[0]:
            self._live_states[entity_id] = (stamp, state)

    async def _fetch(
        self, window: Window
    ) -> tuple[dict[str, EntityHistory], dict[str, str | None]]:
        entity_ids = self.entity_ids
        histories = await self._source.fetch_history(entity_ids, window.start, window.end)
        states: dict[str, str | None] = {}
        for entity_id in entity_ids:
            states[entity_id] = await self._source.fetch_state(entity_id)
        return histories, states

    async def refresh(self, now: datetime | None = None) -> bool:
        """Fetch history and recompute the result.

        Args:
            now: Refresh stamp and window end. Defaults to the current time.

        Returns:
            True if a new result was applied, False if the fetch failed or
            the response was superseded by a newer one.
        """
        stamp = now or self._clock()
        self._last_fetch = stamp
        self._inflight_stamp = stamp
        window = Window.ending_at(stamp, self.config.hours_to_show)

        try:
            histories, states = await self._fetch(window)
        except HistoryFetchError as e:
            if self._applied_stamp is None or stamp >= self._applied_stamp:
                self._last_error = str(e)
            logger.warning(
                "Widget %s: history fetch failed, keeping previous result (%s)",
                self.config.id,
                e,
            )
            return False
        finally:
            if self._inflight_stamp == stamp:
                self._inflight_stamp = None

        if self._applied_stamp is not None and stamp < self._applied_stamp:
            logger.debug(
                "Widget %s: dropping superseded response stamped %s (applied %s)",
                self.config.id,
                stamp.isoformat(),
                self._applied_stamp.isoformat(),
            )
            return False

        for entity_id, state in states.items():
            known = self._live_states.get(entity_id)
            # A state pushed at or after the fetch stamp is fresher than the fetched one.
            if known is None or known[0] < stamp:
                self._live_states[entity_id] = (stamp, state)
        live_states = {e: self._live_states[e][1] for e in self.entity_ids}

        self._result = compute_widget(
            self.config, window, histories, live_states, generated_at=stamp
        )
        self._applied_stamp = stamp
        self._last_error = None
        return True

    async def push_state(
        self,
        state: str,
        now: datetime | None = None,
        entity_id: str | None = None,
    ) -> bool:
        """Accept a fresher live state pushed by the host.

        The status line of the current result is updated straight away; a
        full refresh is issued only when the cached result is older than the
        update interval.

        Returns:
            True if a refresh was issued and applied.
        """
        now = now or self._clock()
        entity_id = entity_id or self.config.entity
        self._remember_state(entity_id, state, now)

        if self.needs_refresh(now):
            return await self.refresh(now)

        if self._result is not None and entity_id == self.config.entity:
            self._result = self._result.model_copy(
                update={"live_state": state, "status_text": self.config.status_text(state)}
            )
        return False

    # ------------------------------------------------------------------
    # Background loop
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the background refresh loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info(
            "Widget %s refresher started (interval=%ss)",
            self.config.id,
            self.config.update_interval,
        )

    def stop(self) -> None:
        """Stop the background refresh loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            self._task = None
        logger.info("Widget %s refresher stopped", self.config.id)

    async def _loop(self) -> None:
        """Refresh, then sleep for the update interval."""
        while self._running:
            try:
                await self.refresh()
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("Widget %s refresh error", self.config.id)
            await asyncio.sleep(self.config.update_interval)
