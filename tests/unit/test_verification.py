"""Tests for ticket verification and the check-in ledger."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from conftest import BUYER, CREATOR, NOW_TS, PAST_TS, FakeChainGateway, make_ticket
from eventbase.core.config import Settings
from eventbase.core.errors import (
    EventNotFoundError,
    InvalidInputError,
    NoEventSelectedError,
    TokenNotFoundError,
    VerificationSupersededError,
    WrongEventError,
)
from eventbase.services.notifications import NotificationLevel, Notifier
from eventbase.services.tickets import EventStatus
from eventbase.services.verification import (
    CheckInKey,
    InMemoryCheckInLedger,
    RedisCheckInLedger,
    TicketVerificationEngine,
    VerificationCandidate,
    VerificationOutcome,
    build_checkin_ledger,
    decide_outcome,
    parse_qr_payload,
)


def metadata_for(event_id):
    return lambda token_id: {"ticketId": event_id, "eventName": "", "eventTimestamp": 0, "location": ""}


class TestParseQrPayload:
    """Tests for QR payload parsing."""

    def test_id_line(self):
        """Test the ID line is extracted from multi-line QR text."""
        payload = "EventBase Ticket\nID:42\nEvent: Summit"

        assert parse_qr_payload(payload) == "42"

    def test_bare_number(self):
        """Test a bare number is accepted."""
        assert parse_qr_payload(" 7 ") == "7"

    @pytest.mark.parametrize("payload", ["", "hello", "ID:abc"])
    def test_invalid_payload(self, payload):
        """Test payloads without a numeric ID are rejected."""
        with pytest.raises(InvalidInputError, match="QR"):
            parse_qr_payload(payload)


class TestDecideOutcome:
    """Tests for outcome priority."""

    def test_already_used_wins(self):
        """Test ledger membership outranks every status."""
        assert decide_outcome(True, EventStatus.CANCELED) == VerificationOutcome.ALREADY_USED

    @pytest.mark.parametrize(
        "status,outcome",
        [
            (EventStatus.CANCELED, VerificationOutcome.CANCELED),
            (EventStatus.CLOSED, VerificationOutcome.CLOSED),
            (EventStatus.PASSED, VerificationOutcome.PASSED),
            (EventStatus.SOLD_OUT, VerificationOutcome.INVALID),
            (EventStatus.UPCOMING, VerificationOutcome.VALID),
        ],
    )
    def test_status_outcomes(self, status, outcome):
        """Test each status maps to one outcome."""
        assert decide_outcome(False, status) == outcome


class TestTicketVerificationEngine:
    """Tests for TicketVerificationEngine."""

    def setup_method(self):
        """Set up an engine over a fake gateway with event 1 and token 5."""
        self.gateway = FakeChainGateway()
        self.tickets = {1: make_ticket(1), 2: make_ticket(2, creator=BUYER)}
        self.gateway.on_read("tickets", lambda event_id: self.tickets.get(event_id, make_ticket(0, eventName="")))
        self.gateway.on_read("ownerOf", lambda token_id: BUYER)
        self.gateway.on_read("getTicketMetadata", metadata_for(1))
        self.gateway.on_read("getRecentTickets", lambda: list(self.tickets.values()))
        self.notifier = Notifier()
        self.ledger = InMemoryCheckInLedger()
        self.engine = TicketVerificationEngine(
            self.gateway, self.ledger, self.notifier, clock=lambda: NOW_TS
        )

    @pytest.mark.asyncio
    async def test_valid_ticket(self):
        """Test a matching token for an upcoming event is valid."""
        self.engine.select_event("1")

        result = await self.engine.verify("5")

        assert result.is_valid is True
        assert result.already_used is False
        assert result.outcome == VerificationOutcome.VALID
        assert result.owner == BUYER
        assert result.event_name == "Event 1"
        assert [n.message for n in self.notifier.history] == ["Valid ticket!"]

    @pytest.mark.asyncio
    async def test_millisecond_timestamp_event(self):
        """Test an out-of-range event timestamp still yields one classified result."""
        self.tickets[1] = make_ticket(1, eventTimestamp=10**13)
        self.engine.select_event("1")

        result = await self.engine.verify("5")

        assert result.outcome == VerificationOutcome.VALID
        assert result.event_date.year == 9999
        assert len(self.notifier.history) == 1

    @pytest.mark.asyncio
    async def test_creator_events_with_millisecond_timestamp(self):
        """Test listing creator events tolerates an out-of-range timestamp."""
        self.tickets[3] = make_ticket(3, eventTimestamp=10**13)

        options = await self.engine.list_creator_events(CREATOR)

        assert [o.id for o in options] == ["1", "3"]
        assert options[1].event_date.year == 9999

    @pytest.mark.asyncio
    async def test_reads_run_concurrently(self):
        """Test all three reads are issued before any is judged."""
        self.engine.select_event("1")

        await self.engine.verify("5")

        assert sorted(method for _, method, _ in self.gateway.reads) == [
            "getTicketMetadata",
            "ownerOf",
            "tickets",
        ]

    @pytest.mark.asyncio
    async def test_no_event_selected(self):
        """Test verify without an event context fails."""
        with pytest.raises(NoEventSelectedError):
            await self.engine.verify("5")

        assert self.gateway.reads == []

    @pytest.mark.asyncio
    async def test_empty_token(self):
        """Test an empty token ID is rejected before any read."""
        self.engine.select_event("1")

        with pytest.raises(InvalidInputError):
            await self.engine.verify("  ")

        assert self.gateway.reads == []

    @pytest.mark.asyncio
    async def test_unknown_event(self):
        """Test a nameless event record means the event does not exist."""
        self.engine.select_event("99")

        with pytest.raises(EventNotFoundError):
            await self.engine.verify("5")

        assert self.notifier.history[-1].level == NotificationLevel.ERROR

    @pytest.mark.asyncio
    async def test_event_read_failure(self):
        """Test a failing event read maps to EventNotFoundError."""
        def broken(event_id):
            raise RuntimeError("rpc")

        self.gateway.on_read("tickets", broken)
        self.engine.select_event("1")

        with pytest.raises(EventNotFoundError):
            await self.engine.verify("5")

    @pytest.mark.asyncio
    async def test_unknown_token(self):
        """Test an ownerOf failure means the token does not exist."""
        def no_owner(token_id):
            raise RuntimeError("ERC721NonexistentToken")

        self.gateway.on_read("ownerOf", no_owner)
        self.engine.select_event("1")

        with pytest.raises(TokenNotFoundError):
            await self.engine.verify("5")

    @pytest.mark.asyncio
    async def test_wrong_event(self):
        """Test a token minted for another event is rejected with both IDs."""
        self.gateway.on_read("getTicketMetadata", metadata_for(2))
        self.engine.select_event("1")

        with pytest.raises(WrongEventError) as exc_info:
            await self.engine.verify("5")

        assert "event ID 2" in exc_info.value.message
        assert "(ID 1)" in exc_info.value.message
        assert "Token #5" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_missing_metadata_reference_tolerated(self):
        """Test metadata without an event reference still verifies."""
        self.gateway.on_read("getTicketMetadata", lambda token_id: {"eventName": "x"})
        self.engine.select_event("1")

        result = await self.engine.verify("5")

        assert result.outcome == VerificationOutcome.VALID

    @pytest.mark.asyncio
    async def test_metadata_read_failure_tolerated(self):
        """Test a failing metadata read does not block verification."""
        def broken(token_id):
            raise RuntimeError("reverted")

        self.gateway.on_read("getTicketMetadata", broken)
        self.engine.select_event("1")

        result = await self.engine.verify("5")

        assert result.is_valid is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides,outcome,message",
        [
            ({"canceled": True}, VerificationOutcome.CANCELED, "Event has been canceled"),
            ({"closed": True}, VerificationOutcome.CLOSED, "Event is closed"),
            ({"eventTimestamp": PAST_TS}, VerificationOutcome.PASSED, "Event has already passed"),
            ({"sold": 100}, VerificationOutcome.INVALID, "Invalid ticket"),
        ],
    )
    async def test_invalid_statuses(self, overrides, outcome, message):
        """Test non-upcoming events yield invalid results with one notification."""
        self.tickets[1] = make_ticket(1, **overrides)
        self.engine.select_event("1")

        result = await self.engine.verify("5")

        assert result.is_valid is False
        assert result.outcome == outcome
        assert [n.message for n in self.notifier.history] == [message]

    @pytest.mark.asyncio
    async def test_verify_is_idempotent(self):
        """Test repeated verification returns equal results and writes nothing."""
        self.engine.select_event("1")

        first = await self.engine.verify("5")
        second = await self.engine.verify("5")

        assert first == second
        assert await self.ledger.size() == 0
        assert self.gateway.writes == []

    @pytest.mark.asyncio
    async def test_verify_check_in_verify(self):
        """Test a checked-in ticket verifies as already used."""
        self.engine.select_event("1")

        result = await self.engine.verify("5")
        checked = await self.engine.check_in(result)
        again = await self.engine.verify("5")

        assert checked.already_used is True
        assert again.already_used is True
        assert again.outcome == VerificationOutcome.ALREADY_USED
        assert self.notifier.history[-1].message == "This ticket has already been checked in!"
        assert self.gateway.writes == []

    def test_request_becomes_candidate(self):
        """Test a verify request is pinned to the selected event and trimmed token."""
        self.engine.select_event("1")

        candidate = self.engine._validate_request(" 5 ")

        assert candidate == VerificationCandidate(selected_event_id="1", candidate_token_id="5")

    @pytest.mark.asyncio
    async def test_check_in_message(self):
        """Test check-in announces the ticket and event name."""
        self.engine.select_event("1")
        result = await self.engine.verify("5")

        await self.engine.check_in(result)

        assert self.notifier.history[-1].message == "Ticket #5 checked in successfully for Event 1!"
        assert await self.engine.checked_in_count() == 1

    @pytest.mark.asyncio
    async def test_check_in_is_idempotent(self):
        """Test checking in the same stale result twice leaves one ledger entry."""
        self.engine.select_event("1")
        result = await self.engine.verify("5")

        await self.engine.check_in(result)
        await self.engine.check_in(result)

        assert await self.ledger.size() == 1

    @pytest.mark.asyncio
    async def test_check_in_invalid_rejected(self):
        """Test an invalid result cannot be checked in."""
        self.tickets[1] = make_ticket(1, canceled=True)
        self.engine.select_event("1")
        result = await self.engine.verify("5")

        with pytest.raises(InvalidInputError):
            await self.engine.check_in(result)

        assert await self.ledger.size() == 0

    @pytest.mark.asyncio
    async def test_superseded_verification_discarded(self):
        """Test switching events mid-verify discards the stale result silently."""
        release = asyncio.Event()
        original_read = self.gateway.read

        async def slow_read(contract, method, args=None, address=None):
            if method == "tickets":
                await release.wait()
            return await original_read(contract, method, args, address)

        self.gateway.read = slow_read
        self.engine.select_event("1")

        task = asyncio.create_task(self.engine.verify("5"))
        await asyncio.sleep(0)
        self.engine.select_event("2")
        release.set()

        with pytest.raises(VerificationSupersededError):
            await task

        assert self.notifier.history == []

    @pytest.mark.asyncio
    async def test_list_creator_events_auto_selects(self):
        """Test creator filtering is case-insensitive and selects the first event."""
        self.tickets[1] = make_ticket(1, creator="0xAbCdEf0000000000000000000000000000000001")

        options = await self.engine.list_creator_events("0xabcdef0000000000000000000000000000000001")

        assert [o.id for o in options] == ["1"]
        assert self.engine.selected_event_id == "1"

    @pytest.mark.asyncio
    async def test_list_creator_events_none(self):
        """Test a non-organizer gets an informational notification."""
        options = await self.engine.list_creator_events("0x9999999999999999999999999999999999999999")

        assert options == []
        assert self.engine.selected_event_id is None
        assert "Only event creators" in self.notifier.history[-1].message

    @pytest.mark.asyncio
    async def test_verify_qr(self):
        """Test QR payloads verify the encoded token."""
        self.engine.select_event("1")

        result = await self.engine.verify_qr("EventBase\nID:5")

        assert result.token_id == "5"


class TestCheckInLedgers:
    """Tests for ledger implementations."""

    @pytest.mark.asyncio
    async def test_in_memory_ledger(self):
        """Test insert is idempotent and size counts per event."""
        ledger = InMemoryCheckInLedger()
        key = CheckInKey(event_id="1", token_id="5")

        assert await ledger.insert(key) is True
        assert await ledger.insert(key) is False
        await ledger.insert(CheckInKey(event_id="2", token_id="5"))

        assert await ledger.contains(key) is True
        assert await ledger.size() == 2
        assert await ledger.size("1") == 1

    @pytest.mark.asyncio
    async def test_redis_ledger(self):
        """Test the Redis ledger keeps one set per event."""
        redis = AsyncMock()
        redis.sadd.return_value = 1
        redis.sismember.return_value = 1
        redis.scard.return_value = 3
        ledger = RedisCheckInLedger(redis, prefix="checkin:")
        key = CheckInKey(event_id="1", token_id="5")

        assert await ledger.insert(key) is True
        assert await ledger.contains(key) is True
        assert await ledger.size("1") == 3

        redis.sadd.assert_any_call("checkin:1", "5")
        redis.sismember.assert_called_once_with("checkin:1", "5")
        redis.scard.assert_called_once_with("checkin:1")

    def test_key_format(self):
        """Test the ledger key renders as event-token."""
        assert str(CheckInKey(event_id="1", token_id="5")) == "1-5"

    def test_build_memory_ledger(self):
        """Test the default backend is the in-memory ledger."""
        ledger = build_checkin_ledger(Settings(environment="testing"))

        assert isinstance(ledger, InMemoryCheckInLedger)

    def test_build_redis_ledger(self):
        """Test the redis backend connects with the configured URL and prefix."""
        settings = Settings(
            environment="testing",
            checkin_ledger_backend="redis",
            checkin_ledger_prefix="door:",
            redis_host="cache",
            redis_password="secret",
        )

        with patch("eventbase.services.verification.ledger.aioredis.from_url") as from_url:
            from_url.return_value = MagicMock()
            ledger = build_checkin_ledger(settings)

        from_url.assert_called_once_with("redis://:secret@cache:6379/0", decode_responses=True)
        assert isinstance(ledger, RedisCheckInLedger)
        assert ledger.redis_client is from_url.return_value
        assert ledger.prefix == "door:"
