"""Ticket verification API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Query
from pydantic import BaseModel, Field, model_validator

from eventbase.services.verification import (
    CheckInStats,
    EventOption,
    TicketVerificationEngine,
    VerificationResult,
    get_verification_engine,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/verification", tags=["Verification"])


class SelectEventRequest(BaseModel):
    event_id: str = Field(..., description="Event to verify tickets for")


class VerifyRequest(BaseModel):
    """Token ID typed in, or the raw text of a scanned QR code."""

    token_id: str | None = Field(None, description="Ticket NFT token ID")
    qr_payload: str | None = Field(None, description="Scanned QR text")

    @model_validator(mode="after")
    def require_one(self) -> "VerifyRequest":
        if self.token_id is None and self.qr_payload is None:
            raise ValueError("Provide token_id or qr_payload")
        return self


class CheckInRequest(BaseModel):
    token_id: str = Field(..., description="Ticket NFT token ID")


def get_engine(
    x_operator: str = Header("default", max_length=64, description="Door operator ID"),
) -> TicketVerificationEngine:
    """Engine of the calling operator; selections are not shared between operators."""
    return get_verification_engine(x_operator)


@router.get("/events", response_model=list[EventOption])
async def list_creator_events(
    engine: Annotated[TicketVerificationEngine, Depends(get_engine)],
    creator: str = Query(..., pattern=r"^0x[a-fA-F0-9]{40}$", description="Organizer address"),
) -> list[EventOption]:
    """Events the organizer can verify tickets for."""
    return await engine.list_creator_events(creator)


@router.post("/select")
async def select_event(
    request: SelectEventRequest,
    engine: Annotated[TicketVerificationEngine, Depends(get_engine)],
) -> dict[str, str | None]:
    """Switch the calling operator's event; other operators are unaffected."""
    engine.select_event(request.event_id)
    return {"selected_event_id": engine.selected_event_id}


@router.post("/verify", response_model=VerificationResult)
async def verify_ticket(
    request: VerifyRequest,
    engine: Annotated[TicketVerificationEngine, Depends(get_engine)],
) -> VerificationResult:
    """Verify a ticket against the selected event. No state changes."""
    if request.token_id is not None:
        return await engine.verify(request.token_id)
    return await engine.verify_qr(request.qr_payload or "")


@router.post("/check-in", response_model=VerificationResult)
async def check_in(
    request: CheckInRequest,
    engine: Annotated[TicketVerificationEngine, Depends(get_engine)],
) -> VerificationResult:
    """Check in a ticket, verifying it first unless it was just verified."""
    result = engine.last_result
    if result is None or result.token_id != request.token_id.strip():
        result = await engine.verify(request.token_id)
    return await engine.check_in(result)


@router.get("/stats", response_model=CheckInStats)
async def get_stats(
    engine: Annotated[TicketVerificationEngine, Depends(get_engine)],
) -> CheckInStats:
    return await engine.stats()
