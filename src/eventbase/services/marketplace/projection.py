"""Read-only marketplace projection of the event registry."""

import json
import logging
from decimal import ROUND_HALF_UP, Decimal
from fractions import Fraction
from typing import Any

from eventbase.core.config import Settings, get_settings
from eventbase.services.marketplace.schemas import (
    ListingSort,
    MarketplaceEvent,
    MarketplaceView,
    ResaleListing,
    StatusSummary,
)
from eventbase.services.tickets import EventStatus, TicketRecord, now_ts

logger = logging.getLogger(__name__)

WEI_PER_ETHER = Decimal(10) ** 18


def format_price(price_wei: int, symbol: str = "BASE") -> str:
    """Ether amount with at most 8 decimals, trailing zeros dropped."""
    ether = (Decimal(price_wei) / WEI_PER_ETHER).quantize(
        Decimal("0.00000001"), rounding=ROUND_HALF_UP
    )
    text = f"{ether:.8f}".rstrip("0").rstrip(".")
    return f"{text} {symbol}"


def is_trending(sold: int, max_supply: int, ratio: float = 0.7) -> bool:
    """True when strictly more than ``ratio`` of the supply is sold.

    Compared as exact fractions so 0.7 means seven tenths, not its float.
    """
    share = Fraction(str(ratio))
    return sold * share.denominator > max_supply * share.numerator


def parse_metadata(raw: str, event_id: int | None = None) -> dict[str, Any]:
    """Best-effort parse of the free-form metadata string.

    Anything that is not a JSON object yields an empty dict.
    """
    if not raw or not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except ValueError as e:
        logger.debug(f"Could not parse metadata for event {event_id}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.debug(f"Metadata for event {event_id} is not an object")
        return {}
    return data


def resolve_image(metadata: dict[str, Any], default: str) -> str:
    """Pick the banner image: ``image``, then legacy ``bannerImage``."""
    image = metadata.get("image")
    if isinstance(image, str) and image.strip():
        return image

    banner = metadata.get("bannerImage")
    if isinstance(banner, str) and banner.strip():
        if banner.startswith("http"):
            return banner
        return f"/uploads/{banner}"

    return default


def project_ticket(
    record: TicketRecord,
    now: int | None = None,
    settings: Settings | None = None,
) -> MarketplaceEvent:
    """Project one on-chain record into its marketplace entry. Never raises on metadata."""
    settings = settings or get_settings()
    metadata = parse_metadata(record.metadata, record.id)

    category = metadata.get("category")
    if not isinstance(category, str) or not category:
        category = settings.default_category

    return MarketplaceEvent(
        id=record.id,
        event_title=record.event_name,
        price=format_price(record.price, settings.native_symbol),
        price_wei=record.price,
        date=record.event_date,
        location=record.location,
        image=resolve_image(metadata, settings.default_event_image),
        category=category,
        attendees=record.max_supply,
        sold=record.sold,
        tickets_left=record.tickets_left,
        status=record.compute_status(now),
        trending=is_trending(record.sold, record.max_supply, settings.trending_ratio),
        created_at=record.event_date,
        creator=record.creator,
    )


class MarketplaceProjection:
    """Views over a snapshot of projected events."""

    def __init__(self, events: list[MarketplaceEvent], settings: Settings | None = None):
        self.events = list(events)
        self.settings = settings or get_settings()

    @classmethod
    def from_records(
        cls,
        records: list[TicketRecord],
        now: int | None = None,
        settings: Settings | None = None,
    ) -> "MarketplaceProjection":
        now = now_ts() if now is None else now
        return cls([project_ticket(r, now, settings) for r in records], settings)

    def upcoming(self) -> list[MarketplaceEvent]:
        return [e for e in self.events if e.status == EventStatus.UPCOMING]

    def trending(self) -> list[MarketplaceEvent]:
        return [e for e in self.upcoming() if e.trending]

    def featured(self, limit: int | None = None) -> list[MarketplaceEvent]:
        """Upcoming events, trending first, then by units sold (descending)."""
        limit = self.settings.featured_limit if limit is None else limit
        ranked = sorted(self.upcoming(), key=lambda e: (not e.trending, -e.sold))
        return ranked[:limit]

    def search(
        self,
        term: str | None = None,
        category: str | None = None,
        status: EventStatus | None = None,
    ) -> list[MarketplaceEvent]:
        """Filter by title/location substring, category and status."""
        results = self.events
        if term:
            needle = term.lower()
            results = [
                e for e in results
                if needle in e.event_title.lower() or needle in e.location.lower()
            ]
        if category:
            results = [e for e in results if e.category.lower() == category.lower()]
        if status is not None:
            results = [e for e in results if e.status == status]
        return results

    def view(self, view: MarketplaceView, limit: int | None = None) -> list[MarketplaceEvent]:
        if view == MarketplaceView.FEATURED:
            return self.featured(limit)
        if view == MarketplaceView.UPCOMING:
            events = self.upcoming()
        elif view == MarketplaceView.TRENDING:
            events = self.trending()
        else:
            events = list(self.events)
        return events[:limit] if limit is not None else events

    def status_summary(self) -> StatusSummary:
        counts = {status: 0 for status in EventStatus}
        for event in self.events:
            counts[event.status] += 1
        return StatusSummary(
            total=len(self.events),
            by_status=counts,
            trending=len(self.trending()),
        )


def filter_listings(
    listings: list[ResaleListing],
    search: str | None = None,
    sort: ListingSort = ListingSort.RECENT,
) -> list[ResaleListing]:
    """Active listings matching ``search`` on event name, ordered by ``sort``.

    ``recent`` keeps the input order.
    """
    results = [listing for listing in listings if listing.active]
    if search:
        needle = search.lower()
        results = [listing for listing in results if needle in listing.event_name.lower()]

    if sort == ListingSort.PRICE_LOW:
        results = sorted(results, key=lambda listing: listing.price)
    elif sort == ListingSort.PRICE_HIGH:
        results = sorted(results, key=lambda listing: listing.price, reverse=True)
    return results
