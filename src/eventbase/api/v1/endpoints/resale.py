"""Resale market API endpoints."""

import logging
from decimal import Decimal
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from eventbase.core.errors import InvalidInputError
from eventbase.services.marketplace import (
    ListingSort,
    MarketplaceService,
    ResaleListing,
    filter_listings,
    get_marketplace_service,
)
from eventbase.services.pipeline import (
    PaymentStatus,
    PipelineOrchestrator,
    PipelineRun,
    ResaleService,
    get_pipeline_orchestrator,
    get_resale_service,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/resale", tags=["Resale"])


class ListTicketRequest(BaseModel):
    """List an owned ticket NFT."""

    token_id: str = Field(..., description="Ticket NFT token ID")
    price: Decimal = Field(..., gt=0, description="Asking price in ether")


class BuyTicketRequest(BaseModel):
    """Buy a listed ticket NFT."""

    token_id: str = Field(..., description="Ticket NFT token ID")
    price: Decimal = Field(..., gt=0, description="Listing price in the payment asset")
    payment_token: str = Field(default="NATIVE", description="NATIVE, USDC or USDT")


def _parse_token_ids(raw: str) -> list[int]:
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise InvalidInputError(f"Invalid token ID list: {raw}")


@router.get("/listings", response_model=list[ResaleListing])
async def list_listings(
    service: Annotated[MarketplaceService, Depends(get_marketplace_service)],
    token_ids: str = Query(..., description="Comma separated token IDs"),
    search: str | None = Query(None, description="Event name substring"),
    sort: ListingSort = Query(ListingSort.RECENT, description="Ordering"),
) -> list[ResaleListing]:
    """Active resale listings for the given tokens."""
    listings = await service.load_listings(_parse_token_ids(token_ids))
    return filter_listings(listings, search, sort)


@router.post("/list", response_model=PipelineRun)
async def list_ticket(
    request: ListTicketRequest,
    service: Annotated[ResaleService, Depends(get_resale_service)],
) -> PipelineRun:
    """Approve the market for the token, then list it."""
    return await service.list_ticket(request.token_id, request.price)


@router.post("/buy", response_model=PipelineRun)
async def buy_ticket(
    request: BuyTicketRequest,
    service: Annotated[ResaleService, Depends(get_resale_service)],
) -> PipelineRun:
    """Buy a listed token with the native asset or a stablecoin."""
    return await service.buy_ticket(request.token_id, request.price, request.payment_token)


@router.get("/payment/{payment_token}", response_model=PaymentStatus)
async def get_payment_status(
    payment_token: str,
    service: Annotated[ResaleService, Depends(get_resale_service)],
) -> PaymentStatus:
    """Signer balance and market allowance for NATIVE, USDC or USDT."""
    return await service.payment_status(payment_token)


@router.get("/pipeline")
async def get_pipeline_state(
    orchestrator: Annotated[PipelineOrchestrator, Depends(get_pipeline_orchestrator)],
) -> dict[str, Any]:
    """Current pipeline status, the active or last run, and per-token op states."""
    run = orchestrator.current_run or orchestrator.last_run
    return {
        "status": orchestrator.status.value,
        "run": run.model_dump(mode="json") if run else None,
        "entity_states": {k: v.value for k, v in orchestrator.entity_states.items()},
    }
