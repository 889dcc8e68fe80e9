"""Transaction pipeline module."""

from eventbase.services.pipeline.flows import (
    NativeAsset,
    PaymentAsset,
    ResaleService,
    TokenAsset,
    build_buy_steps,
    build_list_steps,
    get_resale_service,
    resolve_payment_asset,
)
from eventbase.services.pipeline.orchestrator import (
    PipelineOrchestrator,
    get_pipeline_orchestrator,
    reset_pipeline_orchestrator,
)
from eventbase.services.pipeline.schemas import (
    EntityOpState,
    PaymentStatus,
    PipelineRun,
    PipelineStatus,
    StepProgress,
    StepSpec,
)

__all__ = [
    # Orchestrator
    "PipelineOrchestrator",
    "get_pipeline_orchestrator",
    "reset_pipeline_orchestrator",
    # Flows
    "NativeAsset",
    "TokenAsset",
    "PaymentAsset",
    "ResaleService",
    "build_list_steps",
    "build_buy_steps",
    "resolve_payment_asset",
    "get_resale_service",
    # Schemas
    "EntityOpState",
    "PaymentStatus",
    "PipelineRun",
    "PipelineStatus",
    "StepProgress",
    "StepSpec",
]
