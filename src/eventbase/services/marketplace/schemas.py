"""Marketplace view schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, computed_field

from eventbase.services.tickets import EventStatus


class MarketplaceView(str, Enum):
    """Named slices of the marketplace."""

    ALL = "all"
    FEATURED = "featured"
    UPCOMING = "upcoming"
    TRENDING = "trending"


class ListingSort(str, Enum):
    """Resale listing ordering."""

    RECENT = "recent"
    PRICE_LOW = "price-low"
    PRICE_HIGH = "price-high"


def price_difference_pct(current: int, original: int) -> float | None:
    """Resale price change versus the primary price, in percent (1 decimal).

    None when the original price is zero (free events).
    """
    if original <= 0:
        return None
    return round((current - original) / original * 100, 1)


class MarketplaceEvent(BaseModel):
    """Display projection of one event listing."""

    id: int = Field(..., description="Event ID")
    event_title: str = Field(..., description="Event name")
    price: str = Field(..., description="Formatted price, e.g. '0.01 BASE'")
    price_wei: int = Field(..., ge=0, description="Price in wei")
    date: datetime = Field(..., description="Event start")
    location: str = Field(default="", description="Venue")
    image: str = Field(..., description="Banner image URL or path")
    category: str = Field(..., description="Category")
    attendees: int = Field(..., ge=0, description="Maximum supply")
    sold: int = Field(..., ge=0, description="Tickets sold")
    tickets_left: int = Field(..., description="Tickets left")
    status: EventStatus = Field(..., description="Derived status")
    trending: bool = Field(..., description="More than the trending share sold")
    created_at: datetime = Field(..., description="Sort key (event start)")
    creator: str = Field(default="", description="Organizer address")


class ResaleListing(BaseModel):
    """A ticket NFT offered on the resale market."""

    token_id: str = Field(..., description="Ticket NFT token ID")
    ticket_id: str = Field(..., description="Event the token belongs to")
    seller: str = Field(..., description="Seller address")
    price: int = Field(..., ge=0, description="Asking price in wei")
    active: bool = Field(..., description="Listing is open")
    event_name: str = Field(default="", description="Event name")
    event_date: datetime | None = Field(None, description="Event start")
    location: str = Field(default="", description="Venue")
    original_price: int = Field(default=0, ge=0, description="Primary sale price in wei")

    @computed_field
    @property
    def price_difference_pct(self) -> float | None:
        return price_difference_pct(self.price, self.original_price)


class StatusSummary(BaseModel):
    """Event counts by status."""

    total: int = Field(default=0, description="All events")
    by_status: dict[EventStatus, int] = Field(default_factory=dict, description="Counts per status")
    trending: int = Field(default=0, description="Trending upcoming events")
