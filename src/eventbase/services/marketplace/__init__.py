"""Marketplace projection module."""

from eventbase.services.marketplace.projection import (
    MarketplaceProjection,
    filter_listings,
    format_price,
    is_trending,
    parse_metadata,
    project_ticket,
    resolve_image,
)
from eventbase.services.marketplace.schemas import (
    ListingSort,
    MarketplaceEvent,
    MarketplaceView,
    ResaleListing,
    StatusSummary,
    price_difference_pct,
)
from eventbase.services.marketplace.service import (
    MarketplaceService,
    get_marketplace_service,
    reset_marketplace_service,
)

__all__ = [
    # Projection
    "MarketplaceProjection",
    "filter_listings",
    "format_price",
    "is_trending",
    "parse_metadata",
    "project_ticket",
    "resolve_image",
    "price_difference_pct",
    # Service
    "MarketplaceService",
    "get_marketplace_service",
    "reset_marketplace_service",
    # Schemas
    "ListingSort",
    "MarketplaceEvent",
    "MarketplaceView",
    "ResaleListing",
    "StatusSummary",
]
