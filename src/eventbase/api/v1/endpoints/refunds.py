"""Refund API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Path

from eventbase.services.refunds import (
    ClaimBatchResult,
    RefundCandidate,
    RefundClaimer,
    RefundSummary,
    get_refund_claimer,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/refunds", tags=["Refunds"])


def get_claimer(
    address: str = Path(..., pattern=r"^0x[a-fA-F0-9]{40}$", description="Ticket holder"),
) -> RefundClaimer:
    return get_refund_claimer(address)


async def _loaded(claimer: RefundClaimer) -> RefundClaimer:
    if not claimer.candidates:
        await claimer.load()
    return claimer


@router.get("/{address}", response_model=RefundSummary)
async def get_refunds(
    claimer: Annotated[RefundClaimer, Depends(get_claimer)],
) -> RefundSummary:
    """Refundable tickets and the total still claimable."""
    await claimer.load()
    return claimer.summary()


@router.post("/{address}/claim/{ticket_id}", response_model=RefundCandidate)
async def claim_refund(
    ticket_id: int,
    claimer: Annotated[RefundClaimer, Depends(get_claimer)],
) -> RefundCandidate:
    """Submit one refund claim. The server signer must be ``address``."""
    await _loaded(claimer)
    return await claimer.claim_one(ticket_id)


@router.post("/{address}/claim-all", response_model=ClaimBatchResult)
async def claim_all_refunds(
    claimer: Annotated[RefundClaimer, Depends(get_claimer)],
) -> ClaimBatchResult:
    """Claim every pending refund, one submission at a time."""
    await _loaded(claimer)
    return await claimer.claim_all()
