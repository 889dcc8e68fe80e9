"""Sequential transaction pipeline.

Drives an ordered list of chain writes (approve then list, approve then buy)
as an explicit state machine:

    idle -> running(step 0) -> ... -> running(step n-1) -> succeeded
                 \\________________ failed ________________/

Step i+1 is submitted only after the receipt of step i has been observed
and reported success. A failed run is discarded; the next ``start`` begins
again at step 0.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable

from eventbase.core.errors import (
    AlreadyRunningError,
    GatewayError,
    InvalidInputError,
    TicketingError,
)
from eventbase.infrastructure.blockchain.gateway import ChainGateway
from eventbase.services.notifications import Notifier, get_notifier
from eventbase.services.pipeline.schemas import (
    EntityOpState,
    PipelineRun,
    PipelineStatus,
    StepProgress,
    StepSpec,
)

logger = logging.getLogger(__name__)

ProgressListener = Callable[[StepProgress], None]


class PipelineOrchestrator:
    """Runs one multi-step chain action at a time.

    Concurrent ``start`` calls are rejected, never queued. There is no
    timeout at this layer: a receipt that never arrives stalls the run
    until the awaiting task is cancelled.
    """

    def __init__(
        self,
        gateway: ChainGateway,
        notifier: Notifier | None = None,
    ):
        """Initialize orchestrator.

        Args:
            gateway: Chain gateway used for writes and receipts
            notifier: Notification sink (defaults to the process notifier)
        """
        self.gateway = gateway
        self.notifier = notifier or get_notifier()
        self._active: PipelineRun | None = None
        self._last_run: PipelineRun | None = None
        self._listeners: list[ProgressListener] = []
        self._entity_states: dict[str, EntityOpState] = {}

    @property
    def status(self) -> PipelineStatus:
        if self._active is not None:
            return self._active.status
        return PipelineStatus.IDLE

    @property
    def current_run(self) -> PipelineRun | None:
        return self._active

    @property
    def last_run(self) -> PipelineRun | None:
        return self._last_run

    @property
    def is_running(self) -> bool:
        return self._active is not None

    def entity_state(self, entity_id: str) -> EntityOpState:
        return self._entity_states.get(str(entity_id), EntityOpState.IDLE)

    @property
    def entity_states(self) -> dict[str, EntityOpState]:
        return dict(self._entity_states)

    def add_progress_listener(self, listener: ProgressListener) -> None:
        self._listeners.append(listener)

    async def start(
        self,
        steps: list[StepSpec],
        name: str = "pipeline",
        entity_id: str | None = None,
    ) -> PipelineRun:
        """Run the steps in order until success or the first failure.

        The busy and empty checks happen before the first suspension, so a
        second caller is rejected while the first run is still awaiting.

        Args:
            steps: Ordered chain writes, at least one
            name: Action name used in notifications
            entity_id: Entity whose op state is tracked (e.g. token id)

        Returns:
            The run in its terminal state (succeeded or failed)

        Raises:
            AlreadyRunningError: A run is in progress
            InvalidInputError: No steps given
        """
        if self._active is not None:
            raise AlreadyRunningError(self._active.run_id)
        if not steps:
            raise InvalidInputError("Pipeline requires at least one step")

        run = PipelineRun(
            run_id=str(uuid.uuid4()),
            name=name,
            entity_id=str(entity_id) if entity_id is not None else None,
            steps=list(steps),
            status=PipelineStatus.RUNNING,
            started_at=datetime.now(timezone.utc),
        )
        self._active = run
        self._set_entity_state(run, EntityOpState.SUBMITTED)
        logger.info(f"Pipeline {run.name} ({run.run_id}) started with {run.total_steps} steps")

        try:
            for index, step in enumerate(run.steps):
                run.current_index = index
                await self._execute_step(run, step)

            self._finish(run, PipelineStatus.SUCCEEDED)
            self._set_entity_state(run, EntityOpState.CONFIRMED)
            self.notifier.success(
                f"{run.name} completed successfully!",
                run_id=run.run_id,
                tx_hashes=list(run.tx_hashes),
            )
        except asyncio.CancelledError:
            self._fail(run, "Pipeline cancelled")
            raise
        except TicketingError as e:
            self._fail(run, e.message)
        except Exception as e:
            logger.exception(f"Pipeline {run.run_id} crashed on step {run.current_index}")
            self._fail(run, str(e))
        finally:
            self._last_run = run
            self._active = None

        return run

    async def _execute_step(self, run: PipelineRun, step: StepSpec) -> None:
        index = run.current_index
        self._emit_progress(run)
        self.notifier.info(
            f"Step {index + 1}/{run.total_steps}: {step.name}...",
            run_id=run.run_id,
            step=step.name,
        )

        tx_hash = await self.gateway.write(
            step.contract,
            step.method,
            step.args,
            value=step.value,
            address=step.address,
        )
        run.tx_hashes.append(tx_hash)
        logger.info(f"Pipeline {run.run_id} step {index} ({step.name}) submitted: {tx_hash}")

        receipt = await self.gateway.await_receipt(tx_hash)
        if not receipt.success:
            raise GatewayError(f"{step.name} transaction reverted ({tx_hash})")

        logger.info(f"Pipeline {run.run_id} step {index} ({step.name}) confirmed")

    def _finish(self, run: PipelineRun, status: PipelineStatus) -> None:
        run.status = status
        run.finished_at = datetime.now(timezone.utc)
        self._emit_progress(run)
        logger.info(f"Pipeline {run.name} ({run.run_id}) {status.value}")

    def _fail(self, run: PipelineRun, reason: str) -> None:
        run.error = reason
        self._finish(run, PipelineStatus.FAILED)
        self._set_entity_state(run, EntityOpState.FAILED)
        self.notifier.error(
            f"{run.name} failed at step {run.current_index + 1}/{run.total_steps}: {reason}",
            run_id=run.run_id,
            step=run.current_step.name,
        )

    def _set_entity_state(self, run: PipelineRun, state: EntityOpState) -> None:
        if run.entity_id is not None:
            self._entity_states[run.entity_id] = state

    def _emit_progress(self, run: PipelineRun) -> None:
        progress = StepProgress(
            run_id=run.run_id,
            step_name=run.current_step.name,
            index=run.current_index,
            total=run.total_steps,
            status=run.status,
        )
        for listener in list(self._listeners):
            try:
                listener(progress)
            except Exception as e:
                logger.warning(f"Progress listener {listener!r} failed: {e}")


_orchestrator: PipelineOrchestrator | None = None


def get_pipeline_orchestrator() -> PipelineOrchestrator:
    """Get or create the process-wide pipeline orchestrator."""
    global _orchestrator
    if _orchestrator is None:
        from eventbase.infrastructure.blockchain.gateway import get_chain_gateway

        _orchestrator = PipelineOrchestrator(get_chain_gateway())
    return _orchestrator


def reset_pipeline_orchestrator() -> None:
    """Reset orchestrator singleton (for testing)."""
    global _orchestrator
    _orchestrator = None
