"""Public entry point that starts pipeline jobs in the background."""

import asyncio
import logging
import uuid
from typing import Any, Set

from app.core.errors import ValidationError
from app.job_store import JobStore
from app.workflow.runner import PipelineOrchestrator

logger = logging.getLogger(__name__)


def validate_input(raw_input: Any, min_length: int, max_length: int) -> str:
    """Return the input if it passes the sanity bounds, else raise ValidationError."""
    if raw_input is None:
        raise ValidationError("Input content is required")
    if not isinstance(raw_input, str):
        raise ValidationError("Input content must be a string")
    if not raw_input.strip():
        raise ValidationError("Input content is required")
    if len(raw_input) > max_length:
        raise ValidationError(f"Input content exceeds {max_length:,} character limit")
    if len(raw_input.strip()) < min_length:
        raise ValidationError(
            f"Input content too short ({min_length:,} characters minimum). "
            "Please provide more detailed documentation."
        )
    return raw_input


class JobLauncher:
    """Validates requests, registers jobs and spawns their orchestration.

    Every spawned task is held in a set until it finishes so it cannot be
    garbage collected mid-run, and so shutdown() can cancel what is left.
    """

    def __init__(
        self,
        store: JobStore,
        orchestrator: PipelineOrchestrator,
        min_input_length: int,
        max_input_length: int,
    ):
        self.store = store
        self.orchestrator = orchestrator
        self.min_input_length = min_input_length
        self.max_input_length = max_input_length
        self._tasks: Set[asyncio.Task] = set()

    async def start(self, raw_input: Any) -> str:
        """Start a job and return its id without waiting for any stage."""
        request_input = validate_input(raw_input, self.min_input_length, self.max_input_length)

        job_id = str(uuid.uuid4())
        # Written before returning so an immediate poll never sees NotFound
        self.store.create(job_id, self.orchestrator.initial_record(job_id))
        logger.info(f"Job {job_id} created ({len(request_input)} chars, {self.orchestrator.total_steps} stages)")

        task = asyncio.create_task(
            self.orchestrator.run(job_id, request_input), name=f"pipeline-{job_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return job_id

    @property
    def active_jobs(self) -> int:
        return len(self._tasks)

    async def wait_idle(self) -> None:
        """Wait for every running job to reach a terminal state."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel jobs still in flight; they end as failed."""
        tasks = list(self._tasks)
        if not tasks:
            return
        logger.info(f"Cancelling {len(tasks)} running job(s)")
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
