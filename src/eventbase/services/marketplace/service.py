"""Marketplace loading through the chain gateway."""

import asyncio
import logging
from typing import Callable

from eventbase.core.config import Settings, get_settings
from eventbase.core.errors import TicketingError
from eventbase.infrastructure.blockchain.contracts import ContractRef
from eventbase.infrastructure.blockchain.gateway import ChainGateway
from eventbase.services.marketplace.projection import MarketplaceProjection
from eventbase.services.marketplace.schemas import ResaleListing
from eventbase.services.notifications import Notifier, get_notifier
from eventbase.services.tickets import TicketRecord, now_ts

logger = logging.getLogger(__name__)


class MarketplaceService:
    """Loads the event registry and resale listings into display models."""

    def __init__(
        self,
        gateway: ChainGateway,
        notifier: Notifier | None = None,
        settings: Settings | None = None,
        clock: Callable[[], int] = now_ts,
    ):
        self.gateway = gateway
        self.notifier = notifier or get_notifier()
        self.settings = settings or get_settings()
        self.clock = clock
        self._projection: MarketplaceProjection | None = None

    @property
    def projection(self) -> MarketplaceProjection | None:
        return self._projection

    async def refresh(self) -> MarketplaceProjection:
        """Re-read ``getRecentTickets`` and rebuild the projection.

        Raises:
            GatewayError: The registry read failed
        """
        try:
            raw_tickets = await self.gateway.read(ContractRef.EVENT_TICKETING, "getRecentTickets")
        except TicketingError as e:
            self.notifier.error(f"Failed to load events: {e.message}")
            raise

        records = [TicketRecord.from_chain(raw) for raw in raw_tickets or []]
        self._projection = MarketplaceProjection.from_records(records, self.clock(), self.settings)

        if records:
            self.notifier.success("Events loaded successfully")
        else:
            self.notifier.info("No events found. Create one to get started!")

        summary = self._projection.status_summary()
        logger.info(
            f"Marketplace refreshed: {summary.total} events, "
            f"{summary.by_status} by status, {summary.trending} trending"
        )
        return self._projection

    async def get_projection(self) -> MarketplaceProjection:
        if self._projection is None:
            return await self.refresh()
        return self._projection

    async def load_listing(self, token_id: int) -> ResaleListing | None:
        """Resale listing for one token, joined with its event. None when unreadable."""
        listing_raw, metadata_raw = await asyncio.gather(
            self.gateway.read(ContractRef.RESALE_MARKET, "listings", [token_id]),
            self.gateway.read(ContractRef.TICKET_NFT, "getTicketMetadata", [token_id]),
            return_exceptions=True,
        )
        if isinstance(listing_raw, BaseException):
            logger.warning(f"Listing read for token {token_id} failed: {listing_raw}")
            return None

        event_id = ""
        event: TicketRecord | None = None
        if not isinstance(metadata_raw, BaseException) and metadata_raw:
            event_id = str(metadata_raw.get("ticketId", ""))
            try:
                event = TicketRecord.from_chain(
                    await self.gateway.read(ContractRef.EVENT_TICKETING, "tickets", [int(event_id)])
                )
            except (TicketingError, ValueError) as e:
                logger.warning(f"Event {event_id} for token {token_id} unavailable: {e}")

        return ResaleListing(
            token_id=str(token_id),
            ticket_id=event_id,
            seller=str(listing_raw.get("seller", "")),
            price=int(listing_raw.get("price") or 0),
            active=bool(listing_raw.get("active", False)),
            event_name=event.event_name if event else "",
            event_date=event.event_date if event else None,
            location=event.location if event else "",
            original_price=event.price if event else 0,
        )

    async def load_listings(self, token_ids: list[int]) -> list[ResaleListing]:
        """Listings for the given tokens in input order, unreadable ones skipped."""
        results = await asyncio.gather(*(self.load_listing(t) for t in token_ids))
        return [listing for listing in results if listing is not None]


_service: MarketplaceService | None = None


def get_marketplace_service() -> MarketplaceService:
    """Get or create the process-wide marketplace service."""
    global _service
    if _service is None:
        from eventbase.infrastructure.blockchain.gateway import get_chain_gateway

        _service = MarketplaceService(get_chain_gateway())
    return _service


def reset_marketplace_service() -> None:
    """Reset marketplace singleton (for testing)."""
    global _service
    _service = None
