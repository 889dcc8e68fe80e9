"""Ticket verification and check-in module."""

from eventbase.services.verification.engine import (
    TicketVerificationEngine,
    decide_outcome,
    get_verification_engine,
    parse_qr_payload,
    reset_verification_engine,
)
from eventbase.services.verification.ledger import (
    CheckInLedger,
    InMemoryCheckInLedger,
    RedisCheckInLedger,
    build_checkin_ledger,
)
from eventbase.services.verification.schemas import (
    OUTCOME_MESSAGES,
    CheckInKey,
    CheckInStats,
    EventOption,
    VerificationCandidate,
    VerificationOutcome,
    VerificationResult,
)

__all__ = [
    # Engine
    "TicketVerificationEngine",
    "decide_outcome",
    "parse_qr_payload",
    "get_verification_engine",
    "reset_verification_engine",
    # Ledger
    "CheckInLedger",
    "InMemoryCheckInLedger",
    "RedisCheckInLedger",
    "build_checkin_ledger",
    # Schemas
    "OUTCOME_MESSAGES",
    "CheckInKey",
    "CheckInStats",
    "EventOption",
    "VerificationCandidate",
    "VerificationOutcome",
    "VerificationResult",
]
