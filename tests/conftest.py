"""Pytest configuration and fixtures."""

import asyncio
from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient

from eventbase.infrastructure.blockchain.contracts import ContractRef
from eventbase.infrastructure.blockchain.gateway import ChainGateway, Receipt

SIGNER = "0x1111111111111111111111111111111111111111"
CREATOR = "0x2222222222222222222222222222222222222222"
BUYER = "0x3333333333333333333333333333333333333333"

# 2030-01-01T00:00:00Z
FUTURE_TS = 1893456000
# 2020-01-01T00:00:00Z
PAST_TS = 1577836800
NOW_TS = 1760000000


def make_ticket(ticket_id: int = 1, **overrides: Any) -> dict[str, Any]:
    """Decoded EventTicketing ticket struct (camelCase, as the ABI decoder returns it)."""
    ticket = {
        "id": ticket_id,
        "creator": CREATOR,
        "price": 10**16,
        "eventName": f"Event {ticket_id}",
        "description": "",
        "eventTimestamp": FUTURE_TS,
        "location": "Lagos",
        "closed": False,
        "canceled": False,
        "metadata": "",
        "maxSupply": 100,
        "sold": 10,
        "totalCollected": 0,
        "totalRefunded": 0,
        "proceedsWithdrawn": False,
    }
    ticket.update(overrides)
    return ticket


class FakeChainGateway(ChainGateway):
    """In-memory gateway.

    Reads are answered by handlers registered per method name. Every write
    gets a sequential hash; its receipt resolves when ``confirm`` or
    ``revert`` is called, or immediately when ``auto_confirm`` is set.
    """

    def __init__(self, auto_confirm: bool = True, signer: str | None = SIGNER):
        self.auto_confirm = auto_confirm
        self._signer = signer
        self.read_handlers: dict[str, Callable[..., Any]] = {}
        self.reads: list[tuple[ContractRef, str, list[Any]]] = []
        self.writes: list[dict[str, Any]] = []
        self.write_errors: dict[str, Exception] = {}
        self.balances: dict[str, int] = {}
        self._receipt_events: dict[str, asyncio.Event] = {}
        self._receipt_success: dict[str, bool] = {}

    def on_read(self, method: str, handler: Callable[..., Any]) -> None:
        """Register a handler called with the read args; may raise."""
        self.read_handlers[method] = handler

    def fail_write(self, method: str, error: Exception) -> None:
        self.write_errors[method] = error

    @property
    def signer_address(self) -> str | None:
        return self._signer

    async def read(self, contract, method, args=None, address=None):
        args = list(args or [])
        self.reads.append((contract, method, args))
        await asyncio.sleep(0)
        handler = self.read_handlers.get(method)
        if handler is None:
            raise RuntimeError(f"No handler for {method}")
        return handler(*args)

    async def write(self, contract, method, args=None, value=None, address=None):
        await asyncio.sleep(0)
        if method in self.write_errors:
            raise self.write_errors[method]
        tx_hash = f"0x{len(self.writes) + 1:064x}"
        self.writes.append(
            {
                "tx_hash": tx_hash,
                "contract": contract,
                "method": method,
                "args": list(args or []),
                "value": value,
                "address": address,
            }
        )
        self._receipt_events[tx_hash] = asyncio.Event()
        if self.auto_confirm:
            self.confirm(tx_hash)
        return tx_hash

    def confirm(self, tx_hash: str) -> None:
        self._receipt_success[tx_hash] = True
        self._receipt_events[tx_hash].set()

    def revert(self, tx_hash: str) -> None:
        self._receipt_success[tx_hash] = False
        self._receipt_events[tx_hash].set()

    async def await_receipt(self, tx_hash):
        await self._receipt_events[tx_hash].wait()
        return Receipt(tx_hash=tx_hash, success=self._receipt_success[tx_hash], block_number=1)

    async def native_balance(self, address):
        return self.balances.get(address, 0)

    @property
    def written_methods(self) -> list[str]:
        return [w["method"] for w in self.writes]


@pytest.fixture
def gateway() -> FakeChainGateway:
    return FakeChainGateway()


@pytest.fixture
def notifier():
    from eventbase.services.notifications import Notifier

    return Notifier()


@pytest.fixture(scope="session")
def app():
    """Create FastAPI application for testing."""
    from eventbase.main import create_app

    return create_app()


@pytest.fixture
def client(app):
    """Create test client; dependency overrides are cleared afterwards."""
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def settings():
    """Create settings instance for testing."""
    from eventbase.core.config import Settings

    return Settings(environment="testing")
