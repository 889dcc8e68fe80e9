"""On-chain ticket (event listing) record and its derived status."""

import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

MAX_EVENT_DATE = datetime.max.replace(tzinfo=timezone.utc)


class EventStatus(str, Enum):
    """Derived lifecycle status of an event listing."""

    UPCOMING = "upcoming"
    PASSED = "passed"
    CANCELED = "canceled"
    CLOSED = "closed"
    SOLD_OUT = "sold_out"


def now_ts() -> int:
    """Current unix time in seconds."""
    return int(time.time())


class TicketRecord(BaseModel):
    """Event listing as stored by the EventTicketing contract. Read-only here."""

    id: int = Field(..., ge=0, description="Ticket (event) ID")
    creator: str = Field(..., description="Organizer address")
    price: int = Field(..., ge=0, description="Primary sale price in wei")
    event_name: str = Field(default="", description="Event name")
    description: str = Field(default="", description="Event description")
    event_timestamp: int = Field(default=0, ge=0, description="Event start (unix seconds)")
    location: str = Field(default="", description="Venue")
    closed: bool = Field(default=False, description="Sales closed by organizer")
    canceled: bool = Field(default=False, description="Event canceled")
    metadata: str = Field(default="", description="Free-form JSON metadata")
    max_supply: int = Field(default=0, ge=0, description="Tickets available in total")
    sold: int = Field(default=0, ge=0, description="Tickets sold")
    total_collected: int = Field(default=0, ge=0, description="Wei collected")
    total_refunded: int = Field(default=0, ge=0, description="Wei refunded")
    proceeds_withdrawn: bool = Field(default=False, description="Organizer withdrew")

    @classmethod
    def from_chain(cls, raw: dict[str, Any]) -> "TicketRecord":
        """Build from a decoded contract struct (camelCase keys)."""
        return cls(
            id=int(raw.get("id", 0)),
            creator=str(raw.get("creator", "")),
            price=int(raw.get("price", 0)),
            event_name=raw.get("eventName") or "",
            description=raw.get("description") or "",
            event_timestamp=int(raw.get("eventTimestamp") or 0),
            location=raw.get("location") or "",
            closed=bool(raw.get("closed", False)),
            canceled=bool(raw.get("canceled", False)),
            metadata=raw.get("metadata") or "",
            max_supply=int(raw.get("maxSupply") or 0),
            sold=int(raw.get("sold") or 0),
            total_collected=int(raw.get("totalCollected") or 0),
            total_refunded=int(raw.get("totalRefunded") or 0),
            proceeds_withdrawn=bool(raw.get("proceedsWithdrawn", False)),
        )

    @property
    def tickets_left(self) -> int:
        return self.max_supply - self.sold

    @property
    def event_date(self) -> datetime:
        """Event start in UTC, clamped to datetime.max for unrepresentable timestamps."""
        try:
            return datetime.fromtimestamp(self.event_timestamp, timezone.utc)
        except (OverflowError, ValueError, OSError):
            return MAX_EVENT_DATE

    def compute_status(self, now: int | None = None) -> EventStatus:
        """Classify the listing.

        Precedence is fixed: canceled, closed, passed, sold out, upcoming.
        Every record maps to exactly one status.
        """
        now = now_ts() if now is None else now
        if self.canceled:
            return EventStatus.CANCELED
        if self.closed:
            return EventStatus.CLOSED
        if self.event_timestamp < now:
            return EventStatus.PASSED
        if self.tickets_left == 0:
            return EventStatus.SOLD_OUT
        return EventStatus.UPCOMING
