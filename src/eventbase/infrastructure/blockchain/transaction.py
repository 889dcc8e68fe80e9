"""Local signing and broadcast of contract calls.

Writes are signed in-process with ``SIGNER_PRIVATE_KEY``. Submission only
broadcasts; confirmation is the caller's business (see the gateway's
``await_receipt``).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount

from eventbase.core.config import Settings, get_settings
from eventbase.infrastructure.blockchain.client import BaseChainClient, ChainClient
from eventbase.infrastructure.blockchain.contracts import (
    ContractManager,
    ContractRef,
    resolve_address,
)

logger = logging.getLogger(__name__)


class TransactionStatus(str, Enum):
    """Submission outcome."""

    PENDING = "pending"
    FAILED = "failed"


@dataclass
class TransactionResult:
    """Hash of a broadcast transaction, or the reason it never left."""

    tx_hash: str
    status: TransactionStatus
    error: str | None = None


class TransactionService:
    """Signs contract calls with one local account and broadcasts them."""

    def __init__(
        self,
        client: ChainClient,
        private_key: str,
        contracts: ContractManager | None = None,
        settings: Settings | None = None,
    ):
        """Initialize transaction service.

        Args:
            client: Chain client used for nonce, gas and broadcast
            private_key: Hex key, ``0x`` prefix optional
            contracts: Call encoder (built from ``client`` when omitted)
            settings: Settings override
        """
        self.client = client
        self.settings = settings or get_settings()
        self.contracts = contracts or ContractManager(client, self.settings)

        if not private_key.startswith("0x"):
            private_key = f"0x{private_key}"
        self.account: LocalAccount = Account.from_key(private_key)
        logger.info(f"Signer loaded: {self.account.address}")

    @property
    def address(self) -> str:
        return self.account.address

    async def _build(
        self,
        to_address: str,
        data: bytes,
        value: int,
        gas_limit: int | None,
    ) -> dict[str, Any]:
        nonce = await self.client.get_transaction_count(self.account.address)
        gas_price = await self.client.get_gas_price()

        if gas_limit is None:
            estimate = await self.client.estimate_gas(
                {"from": self.account.address, "to": to_address, "data": data, "value": value}
            )
            gas_limit = int(estimate * self.settings.gas_limit_multiplier)
            logger.debug(f"Gas estimate {estimate}, limit {gas_limit}")

        return {
            "chainId": self.settings.chain_id,
            "nonce": nonce,
            "to": to_address,
            "data": data,
            "value": value,
            "gas": gas_limit,
            "gasPrice": gas_price,
        }

    async def send_transaction(
        self,
        contract: ContractRef,
        function_name: str,
        args: list[Any],
        value: int = 0,
        address: str | None = None,
        gas_limit: int | None = None,
    ) -> TransactionResult:
        """Encode, sign and broadcast ``contract.function_name(*args)``.

        Args:
            contract: Target contract
            function_name: Contract function
            args: Function arguments
            value: Wei attached to payable calls
            address: Token address for ERC20 calls
            gas_limit: Fixed gas limit; estimated when omitted

        Returns:
            PENDING result with the hash, or FAILED with the error text.
            Nothing is raised.
        """
        label = f"{contract.value}.{function_name}"
        try:
            if self.settings.is_mainnet:
                self.settings.require_mainnet_protection()
                logger.warning(f"Mainnet write: {label}")

            to_address = resolve_address(contract, address, self.settings)
            data = self.contracts.encode_function_call(
                self.contracts.get_abi(contract), function_name, args
            )
            tx = await self._build(to_address, data, value, gas_limit)

            signed = self.account.sign_transaction(tx)
            tx_hash = await self.client.send_raw_transaction(signed.raw_transaction)
        except Exception as e:
            logger.error(f"{label} not submitted: {e}")
            return TransactionResult(tx_hash="", status=TransactionStatus.FAILED, error=str(e))

        logger.info(f"{label} submitted as {tx_hash} (nonce {tx['nonce']})")
        return TransactionResult(tx_hash=tx_hash, status=TransactionStatus.PENDING)


def get_transaction_service(
    client: ChainClient | None = None,
    private_key: str | None = None,
) -> TransactionService:
    """Build a signer from ``SIGNER_PRIVATE_KEY`` unless a key is given.

    Raises:
        ValueError: No key available
    """
    settings = get_settings()
    key = private_key or settings.signer_private_key
    if not key:
        raise ValueError("No private key configured. Set SIGNER_PRIVATE_KEY")
    return TransactionService(client or BaseChainClient(), key, settings=settings)
