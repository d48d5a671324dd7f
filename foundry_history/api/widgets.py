"""REST API endpoints for computed widget history."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request

from foundry_history.schemas.result import (
    StatePush,
    WidgetDetailResponse,
    WidgetStatusResponse,
)
from foundry_history.services.refresher import WidgetRefresher
from foundry_history.services.registry import WidgetRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/widgets", tags=["widgets"])


def get_registry(request: Request) -> WidgetRegistry:
    """Registry dependency, created by the app lifespan."""
    return request.app.state.registry


def _get_refresher(registry: WidgetRegistry, widget_id: str) -> WidgetRefresher:
    try:
        return registry.get(widget_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Widget {widget_id} not found") from None


def _detail(widget_id: str, refresher: WidgetRefresher) -> WidgetDetailResponse:
    return WidgetDetailResponse(
        widget_id=widget_id,
        last_updated=refresher.last_updated,
        stale=refresher.stale,
        result=refresher.result,
    )


@router.get("", response_model=list[WidgetStatusResponse])
async def list_widgets(
    registry: Annotated[WidgetRegistry, Depends(get_registry)],
) -> list[WidgetStatusResponse]:
    """List configured widgets with their freshness."""
    return registry.statuses()


@router.get("/{widget_id}", response_model=WidgetDetailResponse)
async def get_widget(
    widget_id: str,
    registry: Annotated[WidgetRegistry, Depends(get_registry)],
) -> WidgetDetailResponse:
    """Latest computed result of a widget.

    ``result`` is null until the first successful refresh; after a failed
    refresh the previous result is returned with ``stale`` set.
    """
    return _detail(widget_id, _get_refresher(registry, widget_id))


@router.post("/{widget_id}/refresh", response_model=WidgetDetailResponse)
async def refresh_widget(
    widget_id: str,
    registry: Annotated[WidgetRegistry, Depends(get_registry)],
) -> WidgetDetailResponse:
    """Refresh a widget now, outside its regular interval."""
    refresher = _get_refresher(registry, widget_id)
    await refresher.refresh()
    return _detail(widget_id, refresher)


@router.post("/{widget_id}/state", response_model=WidgetDetailResponse)
async def push_widget_state(
    widget_id: str,
    body: StatePush,
    registry: Annotated[WidgetRegistry, Depends(get_registry)],
) -> WidgetDetailResponse:
    """Receive a live state update from the host.

    Updates the status line immediately and refreshes history if the cached
    result is older than the widget's update interval.
    """
    refresher = _get_refresher(registry, widget_id)
    await refresher.push_state(body.state)
    return _detail(widget_id, refresher)
