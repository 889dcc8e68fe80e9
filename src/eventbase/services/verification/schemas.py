"""Ticket verification schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from eventbase.services.tickets import EventStatus


class VerificationOutcome(str, Enum):
    """Single user-facing verdict of a verify call, in priority order."""

    ALREADY_USED = "already_used"
    CANCELED = "canceled"
    CLOSED = "closed"
    PASSED = "passed"
    INVALID = "invalid"
    VALID = "valid"


OUTCOME_MESSAGES: dict[VerificationOutcome, str] = {
    VerificationOutcome.ALREADY_USED: "This ticket has already been checked in!",
    VerificationOutcome.CANCELED: "Event has been canceled",
    VerificationOutcome.CLOSED: "Event is closed",
    VerificationOutcome.PASSED: "Event has already passed",
    VerificationOutcome.INVALID: "Invalid ticket",
    VerificationOutcome.VALID: "Valid ticket!",
}


class CheckInKey(BaseModel):
    """Ledger key: one ticket NFT at one event."""

    model_config = {"frozen": True}

    event_id: str = Field(..., description="Event (ticket) ID")
    token_id: str = Field(..., description="Ticket NFT token ID")

    def __str__(self) -> str:
        return f"{self.event_id}-{self.token_id}"


class VerificationCandidate(BaseModel):
    """Operator input for one verify attempt."""

    selected_event_id: str = Field(..., description="Event being verified")
    candidate_token_id: str = Field(..., description="Token presented at the door")


class VerificationResult(BaseModel):
    """Fused answer from the event registry, NFT ownership and NFT metadata."""

    event_id: str = Field(..., description="Selected event ID")
    token_id: str = Field(..., description="Verified token ID")
    event_name: str = Field(..., description="Event name")
    event_date: datetime = Field(..., description="Event start")
    location: str = Field(default="", description="Venue")
    owner: str = Field(..., description="Current NFT owner")
    is_valid: bool = Field(..., description="Event is upcoming")
    already_used: bool = Field(..., description="Ticket already checked in")
    event_status: EventStatus = Field(..., description="Event status at verify time")
    outcome: VerificationOutcome = Field(..., description="Verdict")

    @property
    def message(self) -> str:
        return OUTCOME_MESSAGES[self.outcome]

    @property
    def key(self) -> CheckInKey:
        return CheckInKey(event_id=self.event_id, token_id=self.token_id)


class EventOption(BaseModel):
    """An event the operator may verify tickets for."""

    id: str = Field(..., description="Event ID")
    event_name: str = Field(..., description="Event name")
    event_date: datetime = Field(..., description="Event start")
    location: str = Field(default="", description="Venue")
    status: EventStatus = Field(..., description="Current status")
    checked_in: int = Field(default=0, ge=0, description="Tickets checked in locally")


class CheckInStats(BaseModel):
    """Ledger statistics for the selected event."""

    event_id: str | None = Field(None, description="Selected event")
    checked_in: int = Field(default=0, description="Check-ins for the selected event")
    total: int = Field(default=0, description="Check-ins across all events")
