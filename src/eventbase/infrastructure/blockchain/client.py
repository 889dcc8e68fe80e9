"""JSON-RPC access to Base with ordered fallback endpoints."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import TransactionNotFound, Web3RPCError
from web3.types import BlockIdentifier, TxParams, Wei

from eventbase.core.config import get_settings

logger = logging.getLogger(__name__)


class ChainClient(ABC):
    """Raw node operations the gateway, signer and health checks rely on."""

    @abstractmethod
    async def get_block_number(self) -> int:
        ...

    @abstractmethod
    async def eth_call(
        self, transaction: TxParams, block_identifier: BlockIdentifier = "latest"
    ) -> bytes:
        ...

    @abstractmethod
    async def get_code(self, address: str) -> bytes:
        ...

    @abstractmethod
    async def get_transaction_receipt(self, tx_hash: str) -> dict[str, Any] | None:
        """Receipt of a mined transaction, None while it is pending."""
        ...

    @abstractmethod
    async def wait_for_transaction_receipt(
        self, tx_hash: str, timeout: float | None = None, poll_latency: float = 2.0
    ) -> dict[str, Any]:
        ...

    @abstractmethod
    async def get_balance(self, address: str) -> Wei:
        ...

    @abstractmethod
    async def get_transaction_count(self, address: str) -> int:
        ...

    @abstractmethod
    async def estimate_gas(self, transaction: TxParams) -> int:
        ...

    @abstractmethod
    async def get_gas_price(self) -> Wei:
        ...

    @abstractmethod
    async def send_raw_transaction(self, signed_tx: bytes) -> str:
        ...


class BaseChainClient(ChainClient):
    """Client for Base mainnet or Base Sepolia.

    Calls go to the endpoint that last answered. On failure the call is
    retried with a linear backoff, then the next endpoint in the list is
    tried, wrapping around once.
    """

    def __init__(
        self,
        rpc_urls: list[str] | None = None,
        chain_id: int | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
    ):
        """Initialize Base client.

        Args:
            rpc_urls: Endpoints in preference order; defaults to the active
                network's primary URL followed by its backups
            chain_id: 8453 (mainnet) or 84532 (Sepolia); defaults to the
                active network
            max_retries: Attempts per endpoint before moving on
            retry_delay: Base backoff in seconds, multiplied by the attempt number
        """
        settings = get_settings()
        self.rpc_urls = rpc_urls or [settings.active_rpc_url, *settings.active_backup_rpc_urls]
        self.chain_id = settings.chain_id if chain_id is None else chain_id
        self.max_retries = settings.rpc_max_retries if max_retries is None else max_retries
        self.retry_delay = settings.rpc_retry_delay if retry_delay is None else retry_delay
        self._preferred = 0
        self._web3: AsyncWeb3 | None = None

    @property
    def web3(self) -> AsyncWeb3:
        """AsyncWeb3 bound to the preferred endpoint."""
        if self._web3 is None:
            self._web3 = self._connect(self._preferred)
        return self._web3

    def _connect(self, index: int) -> AsyncWeb3:
        return AsyncWeb3(AsyncHTTPProvider(self.rpc_urls[index]))

    def _endpoint_order(self) -> list[int]:
        count = len(self.rpc_urls)
        return [(self._preferred + offset) % count for offset in range(count)]

    async def _rpc(self, method: str, *args: Any) -> Any:
        """Call ``web3.eth.<method>`` with retries and endpoint fallback.

        ``TransactionNotFound`` is an answer, not a failure, and propagates
        straight away.

        Raises:
            Web3RPCError: Every endpoint exhausted its retries
        """
        last_error: Exception | None = None

        for index in self._endpoint_order():
            web3 = self._connect(index)
            url = self.rpc_urls[index]

            for attempt in range(1, self.max_retries + 1):
                try:
                    result = await getattr(web3.eth, method)(*args)
                except TransactionNotFound:
                    raise
                except Exception as e:
                    last_error = e
                    logger.warning(f"{method} via {url} failed ({attempt}/{self.max_retries}): {e}")
                    if attempt < self.max_retries:
                        await asyncio.sleep(self.retry_delay * attempt)
                    continue

                if index != self._preferred:
                    logger.info(f"Preferring RPC {url} after fallback")
                self._preferred = index
                self._web3 = web3
                return result

        raise Web3RPCError(f"{method} failed on all {len(self.rpc_urls)} RPCs: {last_error}")

    async def get_block_number(self) -> int:
        return await self._rpc("get_block_number")

    async def eth_call(
        self, transaction: TxParams, block_identifier: BlockIdentifier = "latest"
    ) -> bytes:
        return await self._rpc("call", transaction, block_identifier)

    async def get_code(self, address: str) -> bytes:
        return await self._rpc("get_code", Web3.to_checksum_address(address))

    async def get_transaction_receipt(self, tx_hash: str) -> dict[str, Any] | None:
        try:
            receipt = await self._rpc("get_transaction_receipt", tx_hash)
        except TransactionNotFound:
            return None
        return dict(receipt) if receipt else None

    async def get_balance(self, address: str) -> Wei:
        return await self._rpc("get_balance", Web3.to_checksum_address(address))

    async def get_transaction_count(self, address: str) -> int:
        return await self._rpc("get_transaction_count", address)

    async def estimate_gas(self, transaction: TxParams) -> int:
        return await self._rpc("estimate_gas", transaction)

    async def get_gas_price(self) -> Wei:
        # gas_price is an awaitable property on AsyncWeb3
        return await self.web3.eth.gas_price

    async def send_raw_transaction(self, signed_tx: bytes) -> str:
        """Broadcast a signed transaction and return its 0x-prefixed hash."""
        tx_hash = await self._rpc("send_raw_transaction", signed_tx)
        return tx_hash.to_0x_hex() if hasattr(tx_hash, "to_0x_hex") else str(tx_hash)

    async def health_check(self) -> bool:
        try:
            return await self.get_block_number() > 0
        except Exception as e:
            logger.warning(f"RPC health check failed: {e}")
            return False

    async def wait_for_transaction_receipt(
        self, tx_hash: str, timeout: float | None = None, poll_latency: float = 2.0
    ) -> dict[str, Any]:
        """Poll until ``tx_hash`` is mined.

        Args:
            tx_hash: Transaction hash
            timeout: Seconds to wait; None polls forever
            poll_latency: Seconds between polls

        Raises:
            TimeoutError: ``timeout`` elapsed first
        """
        waited = 0.0
        while timeout is None or waited < timeout:
            receipt = await self.get_transaction_receipt(tx_hash)
            if receipt is not None and receipt.get("blockNumber") is not None:
                return receipt
            await asyncio.sleep(poll_latency)
            waited += poll_latency

        raise TimeoutError(f"Transaction {tx_hash} still pending after {timeout}s")
