"""Chain gateway: the read / write / receipt seam used by every service.

Services never talk to web3 directly. They issue ``read``, ``write`` and
``await_receipt`` calls against a :class:`ChainGateway`, and every failure
below this seam surfaces as :class:`GatewayError`.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from eventbase.core.config import Settings, get_settings
from eventbase.core.errors import GatewayError
from eventbase.infrastructure.blockchain.client import BaseChainClient, ChainClient
from eventbase.infrastructure.blockchain.contracts import ContractManager, ContractRef
from eventbase.infrastructure.blockchain.transaction import (
    TransactionService,
    TransactionStatus,
    get_transaction_service,
)

logger = logging.getLogger(__name__)


class Receipt(BaseModel):
    """Outcome of a mined transaction."""

    tx_hash: str = Field(..., description="Transaction hash")
    success: bool = Field(..., description="True when the transaction did not revert")
    block_number: int | None = Field(None, description="Inclusion block")
    gas_used: int | None = Field(None, description="Gas consumed")


class ChainGateway(ABC):
    """Abstract read/write/receipt interface over the contracts."""

    @abstractmethod
    async def read(
        self,
        contract: ContractRef,
        method: str,
        args: list[Any] | None = None,
        address: str | None = None,
    ) -> Any:
        """Call a view function."""
        ...

    @abstractmethod
    async def write(
        self,
        contract: ContractRef,
        method: str,
        args: list[Any] | None = None,
        value: int | None = None,
        address: str | None = None,
    ) -> str:
        """Submit a state-changing call and return its transaction hash."""
        ...

    @abstractmethod
    async def await_receipt(self, tx_hash: str) -> Receipt:
        """Wait until the transaction is mined."""
        ...

    @abstractmethod
    async def native_balance(self, address: str) -> int:
        """Native (ETH) balance of an address in wei."""
        ...

    @property
    @abstractmethod
    def signer_address(self) -> str | None:
        """Address writes are sent from, if a signer is configured."""
        ...


class Web3ChainGateway(ChainGateway):
    """Gateway backed by AsyncWeb3 reads and locally signed writes."""

    def __init__(
        self,
        client: ChainClient | None = None,
        transactions: TransactionService | None = None,
        settings: Settings | None = None,
    ):
        """Initialize gateway.

        Args:
            client: Chain client (defaults to BaseChainClient)
            transactions: Signing service; writes fail with GatewayError without one
            settings: Settings override
        """
        self.settings = settings or get_settings()
        self.client = client or BaseChainClient()
        self.contracts = ContractManager(self.client, self.settings)
        self.transactions = transactions

    @property
    def signer_address(self) -> str | None:
        return self.transactions.address if self.transactions else None

    async def read(
        self,
        contract: ContractRef,
        method: str,
        args: list[Any] | None = None,
        address: str | None = None,
    ) -> Any:
        try:
            return await self.contracts.call_contract(contract, method, args, address)
        except Exception as e:
            logger.warning(f"Read {contract.value}.{method}({args}) failed: {e}")
            raise GatewayError(f"{contract.value}.{method} read failed: {e}") from e

    async def write(
        self,
        contract: ContractRef,
        method: str,
        args: list[Any] | None = None,
        value: int | None = None,
        address: str | None = None,
    ) -> str:
        if self.transactions is None:
            raise GatewayError("No signer configured for chain writes")

        result = await self.transactions.send_transaction(
            contract,
            method,
            args or [],
            value=value or 0,
            address=address,
        )
        if result.status == TransactionStatus.FAILED:
            raise GatewayError(f"{contract.value}.{method} submission failed: {result.error}")
        return result.tx_hash

    async def native_balance(self, address: str) -> int:
        try:
            return int(await self.client.get_balance(address))
        except Exception as e:
            raise GatewayError(f"Balance lookup for {address} failed: {e}") from e

    async def await_receipt(self, tx_hash: str) -> Receipt:
        try:
            receipt = await self.client.wait_for_transaction_receipt(
                tx_hash,
                timeout=self.settings.receipt_timeout,
                poll_latency=self.settings.receipt_poll_interval,
            )
        except Exception as e:
            raise GatewayError(f"Receipt for {tx_hash} unavailable: {e}") from e

        return Receipt(
            tx_hash=tx_hash,
            success=receipt.get("status") == 1,
            block_number=receipt.get("blockNumber"),
            gas_used=receipt.get("gasUsed"),
        )


def get_chain_gateway() -> ChainGateway:
    """Build the default gateway from settings.

    A signer is attached only when SIGNER_PRIVATE_KEY is configured; without
    one the gateway still serves reads.
    """
    settings = get_settings()
    client = BaseChainClient()
    transactions = None
    if settings.signer_private_key:
        transactions = get_transaction_service(client)
    return Web3ChainGateway(client=client, transactions=transactions, settings=settings)
