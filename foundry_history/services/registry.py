"""Registry of configured widgets and their refreshers."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from foundry_history.schemas.result import WidgetStatusResponse
from foundry_history.schemas.widget import WidgetConfig
from foundry_history.services.refresher import HistorySource, WidgetRefresher

logger = logging.getLogger(__name__)


class WidgetRegistry:
    """Owns one ``WidgetRefresher`` per configured widget."""

    def __init__(self, configs: Iterable[WidgetConfig], source: HistorySource) -> None:
        self._refreshers: dict[str, WidgetRefresher] = {
            config.id: WidgetRefresher(config, source) for config in configs
        }

    def __len__(self) -> int:
        return len(self._refreshers)

    def __contains__(self, widget_id: object) -> bool:
        return widget_id in self._refreshers

    def get(self, widget_id: str) -> WidgetRefresher:
        """Return the refresher for ``widget_id``.

        Raises:
            KeyError: If no such widget is configured.
        """
        return self._refreshers[widget_id]

    def start(self) -> None:
        for refresher in self._refreshers.values():
            refresher.start()
        logger.info("Started %d widget refreshers", len(self._refreshers))

    def stop(self) -> None:
        for refresher in self._refreshers.values():
            refresher.stop()

    def statuses(self) -> list[WidgetStatusResponse]:
        """One status row per widget, in configuration order."""
        return [
            WidgetStatusResponse(
                widget_id=widget_id,
                title=r.config.title,
                mode=r.config.mode,
                last_updated=r.last_updated,
                stale=r.stale,
                refreshing=r.refreshing,
            )
            for widget_id, r in self._refreshers.items()
        ]
