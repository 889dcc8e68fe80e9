"""Ticket record module."""

from eventbase.services.tickets.schemas import (
    MAX_EVENT_DATE,
    EventStatus,
    TicketRecord,
    now_ts,
)

__all__ = ["EventStatus", "TicketRecord", "MAX_EVENT_DATE", "now_ts"]
