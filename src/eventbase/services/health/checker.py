"""Deployment health checks.

Answers two questions about the active network: does the RPC respond, and
is there contract code at every configured address.
"""

import logging
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, Field

from eventbase.core.config import Settings, get_settings
from eventbase.infrastructure.blockchain.client import ChainClient
from eventbase.infrastructure.blockchain.contracts import ContractRef, resolve_address

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    """Health status levels."""

    HEALTHY = "HEALTHY"
    DEGRADED = "DEGRADED"
    UNHEALTHY = "UNHEALTHY"
    UNKNOWN = "UNKNOWN"


class ComponentHealth(BaseModel):
    """Result of one named check."""

    name: str = Field(..., description="Check name (rpc or contract name)")
    status: HealthStatus = Field(..., description="Check verdict")
    message: str | None = Field(None, description="Human readable detail")
    latency_ms: float | None = Field(None, description="Check duration in ms")
    last_check: datetime = Field(..., description="When the check ran")
    explorer_url: str | None = Field(None, description="Block explorer link")
    details: dict[str, Any] = Field(default_factory=dict, description="Raw check data")


class DeploymentHealth(BaseModel):
    """Aggregated verdict for the active network."""

    status: HealthStatus = Field(..., description="Worst component verdict")
    version: str = Field(..., description="Service version")
    network: str = Field(..., description="testnet or mainnet")
    chain_id: int = Field(..., description="Chain ID")
    timestamp: datetime = Field(..., description="When the checks ran")
    components: list[ComponentHealth] = Field(..., description="Per-check results")


HealthCheck = Callable[[], Awaitable[ComponentHealth]]

DEPLOYED_CONTRACTS = (
    ContractRef.EVENT_TICKETING,
    ContractRef.TICKET_NFT,
    ContractRef.RESALE_MARKET,
)

_SEVERITY = {
    HealthStatus.HEALTHY: 0,
    HealthStatus.DEGRADED: 1,
    HealthStatus.UNKNOWN: 1,
    HealthStatus.UNHEALTHY: 2,
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def aggregate_status(components: list[ComponentHealth]) -> HealthStatus:
    """UNHEALTHY wins; DEGRADED or UNKNOWN anywhere degrades the whole."""
    worst = max((_SEVERITY[c.status] for c in components), default=0)
    return [HealthStatus.HEALTHY, HealthStatus.DEGRADED, HealthStatus.UNHEALTHY][worst]


class HealthChecker:
    """Named async checks over the chain client.

    ``rpc`` and one check per deployed contract are registered up front;
    more can be added with :meth:`register_check`.
    """

    def __init__(
        self,
        client: ChainClient,
        settings: Settings | None = None,
        version: str = "0.0.0",
    ):
        self.client = client
        self.settings = settings or get_settings()
        self.version = version
        self._checks: dict[str, HealthCheck] = {"rpc": self._check_rpc}
        for contract in DEPLOYED_CONTRACTS:
            self._checks[contract.value] = self._contract_check(contract)
        self._results: dict[str, ComponentHealth] = {}

    def register_check(self, name: str, check_fn: HealthCheck) -> None:
        self._checks[name] = check_fn

    def unregister_check(self, name: str) -> bool:
        return self._checks.pop(name, None) is not None

    @property
    def check_names(self) -> list[str]:
        return list(self._checks)

    async def check_all(self) -> DeploymentHealth:
        """Run every check in registration order."""
        components = []
        for name in list(self._checks):
            components.append(await self.check_component(name))

        return DeploymentHealth(
            status=aggregate_status(components),
            version=self.version,
            network=self.settings.blockchain_network,
            chain_id=self.settings.chain_id,
            timestamp=_now(),
            components=components,
        )

    async def check_component(self, name: str) -> ComponentHealth | None:
        """Run one check. A check that raises is recorded as UNKNOWN."""
        check_fn = self._checks.get(name)
        if check_fn is None:
            return None

        started = time.perf_counter()
        try:
            result = await check_fn()
        except Exception as e:
            logger.error(f"Health check {name} raised: {e}")
            result = ComponentHealth(
                name=name, status=HealthStatus.UNKNOWN, message=str(e), last_check=_now()
            )
        result.latency_ms = (time.perf_counter() - started) * 1000

        self._results[name] = result
        return result

    def get_last_result(self, name: str) -> ComponentHealth | None:
        return self._results.get(name)

    def is_healthy(self) -> bool:
        """True until some check has reported anything but HEALTHY."""
        return all(r.status == HealthStatus.HEALTHY for r in self._results.values())

    async def _check_rpc(self) -> ComponentHealth:
        url = self.settings.active_rpc_url
        try:
            block_number = await self.client.get_block_number()
        except Exception as e:
            return ComponentHealth(
                name="rpc",
                status=HealthStatus.UNHEALTHY,
                message=f"RPC unreachable: {e}",
                last_check=_now(),
                details={"url": url},
            )

        return ComponentHealth(
            name="rpc",
            status=HealthStatus.HEALTHY,
            message=f"Block {block_number}",
            last_check=_now(),
            details={"url": url, "block_number": block_number},
        )

    def _contract_check(self, contract: ContractRef) -> HealthCheck:
        async def check() -> ComponentHealth:
            address = resolve_address(contract, settings=self.settings)
            code = bytes(await self.client.get_code(address) or b"")
            deployed = code.strip(b"\x00") != b""

            return ComponentHealth(
                name=contract.value,
                status=HealthStatus.HEALTHY if deployed else HealthStatus.UNHEALTHY,
                message="Contract deployed" if deployed else f"No contract code at {address}",
                last_check=_now(),
                explorer_url=f"{self.settings.explorer_url}/address/{address}",
                details={"address": address, "code_size": len(code)},
            )

        return check


_health_checker: HealthChecker | None = None


def get_health_checker() -> HealthChecker:
    """Get or create the process-wide health checker."""
    global _health_checker
    if _health_checker is None:
        from eventbase import __version__
        from eventbase.infrastructure.blockchain.client import BaseChainClient

        _health_checker = HealthChecker(BaseChainClient(), version=__version__)
    return _health_checker


def reset_health_checker() -> None:
    """Reset health checker singleton (for testing)."""
    global _health_checker
    _health_checker = None
