"""Refund schemas."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field


class RefundStatus(str, Enum):
    """Client-side progress of a refund claim."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"


class RefundCandidate(BaseModel):
    """A canceled event the user holds a paid registration for."""

    ticket_id: int = Field(..., ge=0, description="Ticket (event) ID")
    event_name: str = Field(..., description="Event name")
    event_date: datetime = Field(..., description="Event start")
    location: str = Field(default="", description="Venue")
    paid_amount: int = Field(..., gt=0, description="Amount paid in wei")
    refund_status: RefundStatus = Field(default=RefundStatus.PENDING, description="Claim progress")
    tx_hash: str | None = Field(None, description="Claim transaction hash")


class RefundSummary(BaseModel):
    """Refund view for one user."""

    user: str = Field(..., description="Ticket holder address")
    candidates: list[RefundCandidate] = Field(default_factory=list, description="Refundable tickets")
    total_refundable_wei: int = Field(default=0, description="Sum of pending paid amounts")
    total_refundable: Decimal = Field(default=Decimal(0), description="Same sum in ether")


class ClaimBatchResult(BaseModel):
    """Outcome of a claim-all batch."""

    submitted: list[int] = Field(default_factory=list, description="Tickets whose claim was submitted")
    failed: list[int] = Field(default_factory=list, description="Tickets whose submission failed")
