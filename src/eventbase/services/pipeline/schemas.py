"""Transaction pipeline schemas."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from eventbase.infrastructure.blockchain.contracts import ContractRef


class PipelineStatus(str, Enum):
    """Lifecycle of a pipeline run."""

    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class EntityOpState(str, Enum):
    """Operation state of an entity (token, listing) touched by a pipeline."""

    IDLE = "idle"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class StepSpec(BaseModel):
    """One chain write within an ordered pipeline."""

    name: str = Field(..., description="Human readable step name")
    contract: ContractRef = Field(..., description="Target contract")
    method: str = Field(..., description="Contract function")
    args: list[Any] = Field(default_factory=list, description="Function arguments")
    value: int | None = Field(None, ge=0, description="Native value attached (wei)")
    address: str | None = Field(None, description="Explicit address (ERC20 tokens)")


class StepProgress(BaseModel):
    """Progress event emitted on every pipeline transition."""

    run_id: str = Field(..., description="Pipeline run ID")
    step_name: str = Field(..., description="Step the run is at")
    index: int = Field(..., ge=0, description="Zero-based step index")
    total: int = Field(..., ge=1, description="Number of steps")
    status: PipelineStatus = Field(..., description="Run status after the transition")


class PipelineRun(BaseModel):
    """State of one user-initiated multi-step action.

    A run is never resumed: a failed run is discarded and retries start a
    fresh run at step 0.
    """

    run_id: str = Field(..., description="Run ID")
    name: str = Field(..., description="Action name, e.g. list-ticket")
    entity_id: str | None = Field(None, description="Entity the run operates on")
    steps: list[StepSpec] = Field(..., min_length=1, description="Ordered steps")
    current_index: int = Field(default=0, ge=0, description="Step being executed")
    status: PipelineStatus = Field(default=PipelineStatus.IDLE, description="Run status")
    tx_hashes: list[str] = Field(default_factory=list, description="Submitted tx hashes")
    error: str | None = Field(None, description="Failure reason")
    started_at: datetime | None = Field(None, description="Start time")
    finished_at: datetime | None = Field(None, description="Terminal time")

    @property
    def current_step(self) -> StepSpec:
        return self.steps[self.current_index]

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def is_terminal(self) -> bool:
        return self.status in (PipelineStatus.SUCCEEDED, PipelineStatus.FAILED)


class PaymentStatus(BaseModel):
    """Signer's balance in a payment asset and what the market may spend."""

    symbol: str = Field(..., description="Asset symbol")
    owner: str = Field(..., description="Signer address")
    spender: str = Field(..., description="Resale market address")
    balance: int = Field(..., ge=0, description="Balance in base units")
    allowance: int | None = Field(
        None, description="ERC20 allowance granted to the market; None for the native asset"
    )
