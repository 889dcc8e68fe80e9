"""Door verification of ticket NFTs.

A verify call fuses three independent reads:

- ``EventTicketing.tickets(eventId)``: the event being verified
- ``TicketNft.ownerOf(tokenId)``: proves the token exists
- ``TicketNft.getTicketMetadata(tokenId)``: names the event the token was
  minted for

The reads run concurrently and are judged only after all of them settle.
"""

import asyncio
import logging
from typing import Any, Callable

from eventbase.core.errors import (
    EventNotFoundError,
    InvalidInputError,
    NoEventSelectedError,
    TicketingError,
    TokenNotFoundError,
    VerificationSupersededError,
    WrongEventError,
)
from eventbase.infrastructure.blockchain.contracts import ContractRef
from eventbase.infrastructure.blockchain.gateway import ChainGateway
from eventbase.services.notifications import Notifier, get_notifier
from eventbase.services.tickets import EventStatus, TicketRecord, now_ts
from eventbase.services.verification.ledger import (
    CheckInLedger,
    InMemoryCheckInLedger,
    build_checkin_ledger,
)
from eventbase.services.verification.schemas import (
    CheckInKey,
    CheckInStats,
    EventOption,
    VerificationCandidate,
    VerificationOutcome,
    VerificationResult,
)

logger = logging.getLogger(__name__)

_STATUS_OUTCOMES = {
    EventStatus.CANCELED: VerificationOutcome.CANCELED,
    EventStatus.CLOSED: VerificationOutcome.CLOSED,
    EventStatus.PASSED: VerificationOutcome.PASSED,
}


def parse_qr_payload(text: str) -> str:
    """Extract the token ID from a scanned ticket QR code.

    The code is multi-line text with an ``ID:<n>`` line. A bare number is
    accepted too (manual entry through the scanner field).

    Raises:
        InvalidInputError: No ID line found
    """
    for line in (text or "").splitlines():
        line = line.strip()
        if line.startswith("ID:"):
            token_id = line[3:].strip()
            if token_id.isdigit():
                return token_id
            break

    stripped = (text or "").strip()
    if stripped.isdigit():
        return stripped
    raise InvalidInputError("Invalid QR code format")


def decide_outcome(already_used: bool, status: EventStatus) -> VerificationOutcome:
    """Collapse ledger membership and event status into one verdict."""
    if already_used:
        return VerificationOutcome.ALREADY_USED
    if status in _STATUS_OUTCOMES:
        return _STATUS_OUTCOMES[status]
    if status != EventStatus.UPCOMING:
        return VerificationOutcome.INVALID
    return VerificationOutcome.VALID


class TicketVerificationEngine:
    """Verifies tickets for one selected event and checks them in.

    Every ``select_event`` and ``verify`` call bumps a generation counter;
    a verify whose reads settle after a newer call started is discarded
    with :class:`VerificationSupersededError` and notifies nothing.
    """

    def __init__(
        self,
        gateway: ChainGateway,
        ledger: CheckInLedger | None = None,
        notifier: Notifier | None = None,
        clock: Callable[[], int] = now_ts,
    ):
        """Initialize verification engine.

        Args:
            gateway: Chain gateway for reads
            ledger: Check-in ledger (defaults to in-memory)
            notifier: Notification sink
            clock: Returns the current unix time in seconds
        """
        self.gateway = gateway
        self.ledger = ledger or InMemoryCheckInLedger()
        self.notifier = notifier or get_notifier()
        self.clock = clock
        self._selected_event_id: str | None = None
        self._last_result: VerificationResult | None = None
        self._generation = 0

    @property
    def selected_event_id(self) -> str | None:
        return self._selected_event_id

    @property
    def last_result(self) -> VerificationResult | None:
        """Most recent successful verification for the selected event."""
        return self._last_result

    def select_event(self, event_id: str | int) -> None:
        """Switch the event context. In-flight verifications become stale."""
        event = str(event_id).strip()
        if not event:
            raise InvalidInputError("Please select an event")
        if not event.isdigit():
            raise InvalidInputError(f"Invalid event ID: {event}")
        self._generation += 1
        self._selected_event_id = event
        self._last_result = None
        logger.info(f"Verification context switched to event {event}")

    async def list_creator_events(self, creator: str) -> list[EventOption]:
        """Events created by ``creator``, newest listing order preserved.

        The first event is auto-selected when none is selected yet.
        """
        raw_tickets = await self.gateway.read(ContractRef.EVENT_TICKETING, "getRecentTickets")
        now = self.clock()

        options = []
        for raw in raw_tickets or []:
            record = TicketRecord.from_chain(raw)
            if record.creator.lower() != creator.lower():
                continue
            options.append(
                EventOption(
                    id=str(record.id),
                    event_name=record.event_name,
                    event_date=record.event_date,
                    location=record.location,
                    status=record.compute_status(now),
                    checked_in=await self.ledger.size(str(record.id)),
                )
            )

        if not options:
            self.notifier.info(
                "You haven't created any events yet. Only event creators can verify tickets."
            )
        elif self._selected_event_id is None:
            self.select_event(options[0].id)

        return options

    async def verify(self, token_id: str | int) -> VerificationResult:
        """Verify a token against the selected event.

        Read-only: repeated calls with unchanged chain and ledger state
        return equal results.

        Raises:
            InvalidInputError: Empty or non-numeric token ID
            NoEventSelectedError: No event selected
            EventNotFoundError: Event read failed or event has no name
            TokenNotFoundError: Owner read failed
            WrongEventError: Token was minted for another event
            VerificationSupersededError: A newer select/verify replaced this call
        """
        try:
            candidate = self._validate_request(token_id)
        except TicketingError as e:
            self.notifier.error(e.message)
            raise

        token, event_id = candidate.candidate_token_id, candidate.selected_event_id
        self._generation += 1
        generation = self._generation

        event_raw, owner_raw, metadata_raw = await asyncio.gather(
            self.gateway.read(ContractRef.EVENT_TICKETING, "tickets", [int(event_id)]),
            self.gateway.read(ContractRef.TICKET_NFT, "ownerOf", [int(token)]),
            self.gateway.read(ContractRef.TICKET_NFT, "getTicketMetadata", [int(token)]),
            return_exceptions=True,
        )

        if generation != self._generation or event_id != self._selected_event_id:
            logger.debug(f"Discarding stale verification of token {token} for event {event_id}")
            raise VerificationSupersededError(f"Verification of token {token} superseded")

        try:
            result = await self._fuse(candidate, event_raw, owner_raw, metadata_raw)
        except TicketingError as e:
            logger.info(f"Token {token} rejected for event {event_id}: {e.message}")
            self.notifier.error(e.message, event_id=event_id, token_id=token)
            raise

        self._last_result = result
        logger.info(f"Token {token} for event {event_id}: {result.outcome.value}")
        if result.outcome == VerificationOutcome.VALID:
            self.notifier.success(result.message, event_id=event_id, token_id=token)
        else:
            self.notifier.error(result.message, event_id=event_id, token_id=token)
        return result

    async def verify_qr(self, payload: str) -> VerificationResult:
        """Verify the token encoded in a scanned QR payload."""
        try:
            token_id = parse_qr_payload(payload)
        except InvalidInputError as e:
            self.notifier.error(e.message)
            raise
        return await self.verify(token_id)

    async def check_in(self, result: VerificationResult) -> VerificationResult:
        """Admit a verified ticket.

        Records the (event, token) pair in the ledger only. Checking in the
        same pair twice leaves the ledger unchanged.

        Raises:
            InvalidInputError: The result is not valid or was already used
        """
        if not result.is_valid:
            self.notifier.error("Cannot check in an invalid ticket")
            raise InvalidInputError("Cannot check in an invalid ticket")
        if result.already_used:
            self.notifier.error("This ticket has already been checked in!")
            raise InvalidInputError("This ticket has already been checked in!")

        inserted = await self.ledger.insert(result.key)
        if inserted:
            logger.info(f"Checked in {result.key}")
            self.notifier.success(
                f"Ticket #{result.token_id} checked in successfully for {result.event_name}!",
                event_id=result.event_id,
                token_id=result.token_id,
            )
        else:
            logger.info(f"{result.key} was already in the ledger")

        checked_in = result.model_copy(
            update={"already_used": True, "outcome": VerificationOutcome.ALREADY_USED}
        )
        if self._last_result is not None and self._last_result.key == result.key:
            self._last_result = checked_in
        return checked_in

    async def checked_in_count(self, event_id: str | None = None) -> int:
        event = event_id if event_id is not None else self._selected_event_id
        if event is None:
            return 0
        return await self.ledger.size(str(event))

    async def stats(self) -> CheckInStats:
        return CheckInStats(
            event_id=self._selected_event_id,
            checked_in=await self.checked_in_count(),
            total=await self.ledger.size(),
        )

    def _validate_request(self, token_id: str | int) -> VerificationCandidate:
        token = str(token_id if token_id is not None else "").strip()
        if not token:
            raise InvalidInputError("Please enter a ticket NFT token ID")
        if self._selected_event_id is None:
            raise NoEventSelectedError()
        if not token.isdigit():
            raise InvalidInputError(f"Invalid token ID: {token}")
        return VerificationCandidate(
            selected_event_id=self._selected_event_id, candidate_token_id=token
        )

    async def _fuse(
        self,
        candidate: VerificationCandidate,
        event_raw: Any,
        owner_raw: Any,
        metadata_raw: Any,
    ) -> VerificationResult:
        event_id, token_id = candidate.selected_event_id, candidate.candidate_token_id
        if isinstance(event_raw, BaseException) or not event_raw or not event_raw.get("eventName"):
            raise EventNotFoundError(event_id)

        if isinstance(owner_raw, BaseException):
            raise TokenNotFoundError(token_id)

        if isinstance(metadata_raw, BaseException) or not metadata_raw:
            logger.warning(f"Metadata for token {token_id} unavailable, skipping event match")
        else:
            reference = metadata_raw.get("ticketId")
            if reference is None:
                logger.warning(f"Metadata for token {token_id} has no event reference")
            elif str(reference) != event_id:
                raise WrongEventError(token_id, str(reference), event_id)

        record = TicketRecord.from_chain(event_raw)
        status = record.compute_status(self.clock())
        already_used = await self.ledger.contains(CheckInKey(event_id=event_id, token_id=token_id))

        return VerificationResult(
            event_id=event_id,
            token_id=token_id,
            event_name=record.event_name,
            event_date=record.event_date,
            location=record.location,
            owner=str(owner_raw),
            is_valid=status == EventStatus.UPCOMING,
            already_used=already_used,
            event_status=status,
            outcome=decide_outcome(already_used, status),
        )


_engines: dict[str, TicketVerificationEngine] = {}
_ledger: CheckInLedger | None = None


def get_verification_engine(operator: str = "default") -> TicketVerificationEngine:
    """Get or create the engine for one door operator.

    Each operator keeps its own selected event, so switching events at one
    door never supersedes a verify at another. All engines share one
    check-in ledger.
    """
    global _ledger
    key = operator.strip().lower() or "default"
    if key not in _engines:
        from eventbase.infrastructure.blockchain.gateway import get_chain_gateway

        if _ledger is None:
            _ledger = build_checkin_ledger()
        _engines[key] = TicketVerificationEngine(get_chain_gateway(), _ledger)
    return _engines[key]


def reset_verification_engine() -> None:
    """Drop all engines and the shared ledger (for testing)."""
    global _ledger
    _engines.clear()
    _ledger = None
