"""Marketplace API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from eventbase.services.marketplace import (
    MarketplaceEvent,
    MarketplaceProjection,
    MarketplaceService,
    MarketplaceView,
    StatusSummary,
    get_marketplace_service,
)
from eventbase.services.tickets import EventStatus

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/marketplace", tags=["Marketplace"])


async def _projection(service: MarketplaceService, refresh: bool) -> MarketplaceProjection:
    if refresh:
        return await service.refresh()
    return await service.get_projection()


@router.get("/events", response_model=list[MarketplaceEvent])
async def list_events(
    service: Annotated[MarketplaceService, Depends(get_marketplace_service)],
    view: MarketplaceView = Query(MarketplaceView.ALL, description="Marketplace slice"),
    search: str | None = Query(None, description="Title or location substring"),
    category: str | None = Query(None, description="Category filter"),
    status: EventStatus | None = Query(None, description="Status filter"),
    limit: int | None = Query(None, ge=1, le=200, description="Maximum results"),
    refresh: bool = Query(False, description="Re-read the registry first"),
) -> list[MarketplaceEvent]:
    """List marketplace events for a view, optionally filtered."""
    projection = await _projection(service, refresh)

    events = projection.view(view, limit if view == MarketplaceView.FEATURED else None)
    if search or category or status is not None:
        events = MarketplaceProjection(events, projection.settings).search(search, category, status)
    return events[:limit] if limit is not None else events


@router.get("/summary", response_model=StatusSummary)
async def get_summary(
    service: Annotated[MarketplaceService, Depends(get_marketplace_service)],
    refresh: bool = Query(False, description="Re-read the registry first"),
) -> StatusSummary:
    """Event counts by status."""
    projection = await _projection(service, refresh)
    return projection.status_summary()
