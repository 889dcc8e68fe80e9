"""Refund aggregation and serial batch claims.

Eligibility is decided by the EventTicketing contract; this module only
collects what the contract reports (registration, amount paid, event
canceled) and submits ``claimRefund`` transactions one at a time.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Any, Awaitable, Callable

from web3 import Web3

from eventbase.core.config import Settings, get_settings
from eventbase.core.errors import (
    AlreadyRunningError,
    GatewayError,
    InvalidInputError,
    NotFoundError,
    TicketingError,
)
from eventbase.infrastructure.blockchain.contracts import ContractRef
from eventbase.infrastructure.blockchain.gateway import ChainGateway
from eventbase.services.notifications import Notifier, get_notifier
from eventbase.services.refunds.schemas import (
    ClaimBatchResult,
    RefundCandidate,
    RefundStatus,
    RefundSummary,
)
from eventbase.services.tickets import TicketRecord

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


def _as_int(value: Any) -> int:
    if value is None or isinstance(value, BaseException):
        return 0
    return int(value)


def compute_refundable(
    tickets: list[TicketRecord],
    registration_results: list[Any],
    paid_amount_results: list[Any],
) -> list[RefundCandidate]:
    """Select the tickets the user can claim a refund for.

    A ticket qualifies when the user is registered, the event is canceled
    and the amount paid is positive. Both result lists are index-aligned
    with ``tickets``; failed reads (exceptions) count as not registered or
    nothing paid. Paid amounts of unregistered tickets are ignored.

    Args:
        tickets: Event records in listing order
        registration_results: ``isRegistered`` result per ticket
        paid_amount_results: ``paidAmount`` result per ticket

    Returns:
        Candidates in the order of ``tickets``
    """
    candidates = []
    for index, ticket in enumerate(tickets):
        registered = registration_results[index] if index < len(registration_results) else None
        if isinstance(registered, BaseException) or not registered:
            continue
        if not ticket.canceled:
            continue

        paid = _as_int(paid_amount_results[index] if index < len(paid_amount_results) else None)
        if paid <= 0:
            continue

        candidates.append(
            RefundCandidate(
                ticket_id=ticket.id,
                event_name=ticket.event_name,
                event_date=ticket.event_date,
                location=ticket.location,
                paid_amount=paid,
            )
        )
    return candidates


class RefundClaimer:
    """Refund state and claims for one ticket holder."""

    def __init__(
        self,
        gateway: ChainGateway,
        user: str,
        notifier: Notifier | None = None,
        settings: Settings | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """Initialize refund claimer.

        Args:
            gateway: Chain gateway; claims are only submitted when its
                signer is ``user``
            user: Ticket holder address
            notifier: Notification sink
            settings: Settings override
            sleep: Awaitable sleep used between batch submissions
        """
        self.gateway = gateway
        self.user = user
        self.notifier = notifier or get_notifier()
        self.settings = settings or get_settings()
        self._sleep = sleep
        self._candidates: list[RefundCandidate] = []
        self._watchers: set[asyncio.Task] = set()
        self._batch_running = False

    @property
    def candidates(self) -> list[RefundCandidate]:
        return list(self._candidates)

    @property
    def total_refundable(self) -> int:
        """Sum of pending paid amounts in wei, recomputed on every access."""
        return sum(
            c.paid_amount for c in self._candidates if c.refund_status == RefundStatus.PENDING
        )

    @property
    def total_refundable_ether(self) -> Decimal:
        return Decimal(Web3.from_wei(self.total_refundable, "ether"))

    def summary(self) -> RefundSummary:
        return RefundSummary(
            user=self.user,
            candidates=self.candidates,
            total_refundable_wei=self.total_refundable,
            total_refundable=self.total_refundable_ether,
        )

    async def load(self) -> list[RefundCandidate]:
        """Read registrations and paid amounts and rebuild the candidate list.

        Claims still in flight keep their status across reloads.
        """
        raw_tickets = await self.gateway.read(ContractRef.EVENT_TICKETING, "getRecentTickets")
        tickets = [TicketRecord.from_chain(raw) for raw in raw_tickets or []]

        registrations = await asyncio.gather(
            *(
                self.gateway.read(ContractRef.EVENT_TICKETING, "isRegistered", [t.id, self.user])
                for t in tickets
            ),
            return_exceptions=True,
        )

        registered_indexes = [
            i for i, r in enumerate(registrations) if not isinstance(r, BaseException) and r
        ]
        paid_reads = await asyncio.gather(
            *(
                self.gateway.read(
                    ContractRef.EVENT_TICKETING, "paidAmount", [tickets[i].id, self.user]
                )
                for i in registered_indexes
            ),
            return_exceptions=True,
        )
        paid_amounts: list[Any] = [None] * len(tickets)
        for i, paid in zip(registered_indexes, paid_reads):
            paid_amounts[i] = paid

        for result in list(registrations) + list(paid_reads):
            if isinstance(result, BaseException):
                logger.warning(f"Refund read failed for {self.user}: {result}")

        previous = {c.ticket_id: c for c in self._candidates}
        candidates = compute_refundable(tickets, list(registrations), paid_amounts)
        for candidate in candidates:
            old = previous.get(candidate.ticket_id)
            if old is not None and old.refund_status != RefundStatus.PENDING:
                candidate.refund_status = old.refund_status
                candidate.tx_hash = old.tx_hash

        self._candidates = candidates
        logger.info(
            f"Loaded {len(candidates)} refundable tickets for {self.user} "
            f"({self.total_refundable} wei)"
        )
        return self.candidates

    def _require_holder_signer(self) -> None:
        signer = self.gateway.signer_address
        if signer is None or signer.lower() != self.user.lower():
            raise InvalidInputError(
                f"Refunds for {self.user} can only be claimed by that address "
                f"(signer is {signer or 'not configured'})"
            )

    def _find(self, ticket_id: int) -> RefundCandidate:
        for candidate in self._candidates:
            if candidate.ticket_id == int(ticket_id):
                return candidate
        raise NotFoundError(f"No refundable ticket #{ticket_id} for {self.user}")

    async def claim_one(self, ticket_id: int) -> RefundCandidate:
        """Submit a refund claim for one candidate.

        The candidate is marked processing before submission. A rejected
        submission puts it back to pending; the receipt is watched in the
        background.

        Raises:
            NotFoundError: Ticket is not a candidate
            InvalidInputError: Claim already in flight or completed, or the
                gateway signer is not the ticket holder
            GatewayError: Submission failed
        """
        self._require_holder_signer()
        candidate = self._find(ticket_id)
        if candidate.refund_status != RefundStatus.PENDING:
            raise InvalidInputError(
                f"Refund for ticket #{candidate.ticket_id} is already {candidate.refund_status.value}"
            )

        candidate.refund_status = RefundStatus.PROCESSING
        self.notifier.info("Processing refund claim...", ticket_id=candidate.ticket_id)

        try:
            tx_hash = await self.gateway.write(
                ContractRef.EVENT_TICKETING, "claimRefund", [candidate.ticket_id]
            )
        except Exception as e:
            candidate.refund_status = RefundStatus.PENDING
            logger.error(f"Refund claim for ticket {candidate.ticket_id} failed: {e}")
            self.notifier.error("Failed to claim refund", ticket_id=candidate.ticket_id)
            if isinstance(e, GatewayError):
                raise
            raise GatewayError(f"Refund claim for ticket #{candidate.ticket_id} failed: {e}") from e

        candidate.tx_hash = tx_hash
        logger.info(f"Refund claim for ticket {candidate.ticket_id} submitted: {tx_hash}")

        watcher = asyncio.create_task(self._watch_receipt(candidate, tx_hash))
        self._watchers.add(watcher)
        watcher.add_done_callback(self._watchers.discard)
        return candidate

    async def claim_all(self) -> ClaimBatchResult:
        """Claim every pending candidate, one at a time, in list order.

        Each submission is followed by a fixed pause so the wallet and RPC
        see the claims spaced apart. A failed submission is reported and the
        batch moves on.

        Raises:
            AlreadyRunningError: A batch is already running for this user
            InvalidInputError: The gateway signer is not the ticket holder
        """
        self._require_holder_signer()
        if self._batch_running:
            raise AlreadyRunningError(f"refund-batch:{self.user}")

        pending = [c for c in self._candidates if c.refund_status == RefundStatus.PENDING]
        result = ClaimBatchResult()
        if not pending:
            self.notifier.info("No refunds to claim")
            return result

        self._batch_running = True
        try:
            for candidate in pending:
                try:
                    await self.claim_one(candidate.ticket_id)
                    result.submitted.append(candidate.ticket_id)
                except TicketingError as e:
                    logger.warning(f"Batch claim for ticket {candidate.ticket_id} failed: {e.message}")
                    result.failed.append(candidate.ticket_id)
                await self._sleep(self.settings.refund_claim_delay_seconds)
        finally:
            self._batch_running = False

        logger.info(
            f"Refund batch for {self.user}: {len(result.submitted)} submitted, "
            f"{len(result.failed)} failed"
        )
        return result

    async def wait_for_confirmations(self) -> None:
        """Wait for every outstanding receipt watcher to finish."""
        if self._watchers:
            await asyncio.gather(*list(self._watchers))

    async def _watch_receipt(self, candidate: RefundCandidate, tx_hash: str) -> None:
        try:
            receipt = await self.gateway.await_receipt(tx_hash)
        except TicketingError as e:
            logger.error(f"Refund receipt for ticket {candidate.ticket_id} unavailable: {e.message}")
            candidate.refund_status = RefundStatus.PENDING
            self.notifier.error("Failed to claim refund", ticket_id=candidate.ticket_id)
            return

        if receipt.success:
            candidate.refund_status = RefundStatus.COMPLETED
            self.notifier.success(
                "Refund claimed successfully!",
                ticket_id=candidate.ticket_id,
                tx_hash=tx_hash,
            )
        else:
            candidate.refund_status = RefundStatus.PENDING
            self.notifier.error(
                "Failed to claim refund",
                ticket_id=candidate.ticket_id,
                tx_hash=tx_hash,
            )


_claimers: dict[str, RefundClaimer] = {}


def get_refund_claimer(user: str) -> RefundClaimer:
    """Get or create the claimer for a ticket holder."""
    key = user.lower()
    if key not in _claimers:
        from eventbase.infrastructure.blockchain.gateway import get_chain_gateway

        _claimers[key] = RefundClaimer(get_chain_gateway(), user)
    return _claimers[key]


def reset_refund_claimers() -> None:
    """Drop all claimers (for testing)."""
    _claimers.clear()
