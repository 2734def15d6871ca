import asyncio
import logging
from typing import Any, Dict, Optional, Sequence

from app.core.errors import JobStateError, JobNotFoundError, StageFailure
from app.core.logging import release_job_logger, setup_job_logger
from app.job_store import JobStore
from app.models.job import JobProgress, JobRecord, JobStatus
from app.models.stage import StageContext, StageDefinition
from app.models.state import PipelineState
from app.workflow.assembler import assemble
from app.workflow.context import SummaryExtractor
from app.workflow.graph import create_workflow, recursion_limit
from app.workflow.stage_runner import StageRunner

logger = logging.getLogger(__name__)

STARTING_LABEL = "starting"
EXTRACTING_LABEL = "Extracting context"
COMPLETED_LABEL = "Completed"
SHUTDOWN_ERROR = "Job cancelled: service shutting down"


class PipelineOrchestrator:
    """Drives one job through the ordered stages and records the outcome.

    The orchestrator is the only writer of a job while it is processing.
    Stage failures end the job as failed; nothing is assembled from a
    partial run.
    """

    def __init__(
        self,
        store: JobStore,
        stage_runner: StageRunner,
        stages: Sequence[StageDefinition],
        summary_extractor: Optional[SummaryExtractor] = None,
        pacing_seconds: float = 0.0,
        retry_backoff_seconds: float = 0.0,
    ):
        stage_ids = [stage.id for stage in stages]
        duplicates = sorted({sid for sid in stage_ids if stage_ids.count(sid) > 1})
        if duplicates:
            raise ValueError(f"Duplicate stage ids: {', '.join(duplicates)}")

        self.store = store
        self.stage_runner = stage_runner
        self.stages = tuple(stages)
        self.summary_extractor = summary_extractor
        self.pacing_seconds = pacing_seconds
        self.retry_backoff_seconds = retry_backoff_seconds
        self.workflow = create_workflow(self.stages, self._make_stage_node, self._assemble_node)

    @property
    def total_steps(self) -> int:
        return len(self.stages)

    def remaining_seconds(self, from_index: int) -> int:
        return sum(stage.estimated_duration_seconds for stage in self.stages[from_index:])

    def initial_record(self, job_id: str) -> JobRecord:
        """The record a job starts with, before any stage has run."""
        return JobRecord(
            job_id=job_id,
            status=JobStatus.PROCESSING,
            progress=JobProgress(
                current_step_index=0,
                total_steps=self.total_steps,
                step_label=STARTING_LABEL,
                estimated_seconds_remaining=self.remaining_seconds(0),
            ),
        )

    async def run(self, job_id: str, request_input: str) -> None:
        """Execute the pipeline for job_id. Never raises for stage failures."""
        job_logger = setup_job_logger(job_id)
        job_logger.info("Pipeline started", extra={"job_id": job_id, "total_steps": self.total_steps})
        try:
            summary = await self._extract_summary(job_id, request_input)
            initial_state = PipelineState(
                job_id=job_id,
                request_input=request_input,
                summary=summary,
                stage_outputs={},
                error=None,
                artifact=None,
            )
            final_state = await self.workflow.ainvoke(
                initial_state,
                config={"recursion_limit": recursion_limit(self.total_steps)},
            )

            if final_state.get("error"):
                self._mark_failed(job_id, final_state["error"])
            else:
                self._mark_complete(job_id, final_state["artifact"])

        except asyncio.CancelledError:
            self._mark_failed(job_id, SHUTDOWN_ERROR)
            raise
        except Exception as e:
            logger.error(f"Pipeline for job {job_id} crashed: {e}", exc_info=True)
            self._mark_failed(job_id, f"Unexpected error: {e}")
        finally:
            release_job_logger(job_id)

    async def _extract_summary(self, job_id: str, request_input: str) -> Dict[str, Any]:
        # A zero-stage pipeline completes with the bare assembler output
        if self.summary_extractor is None or not self.stages:
            return {}

        self._update_progress(job_id, 0, EXTRACTING_LABEL)
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, self.summary_extractor.extract, request_input),
                timeout=self.stage_runner.timeout_seconds,
            )
        except asyncio.TimeoutError:
            setup_job_logger(job_id).warning("Context extraction timed out, continuing without summary")
            return {}

    def _make_stage_node(self, index: int, stage: StageDefinition):
        async def stage_node(state: PipelineState) -> Dict[str, Any]:
            return await self._run_stage(index, stage, state)
        return stage_node

    async def _run_stage(self, index: int, stage: StageDefinition, state: PipelineState) -> Dict[str, Any]:
        job_id = state["job_id"]
        job_logger = setup_job_logger(job_id)

        self._update_progress(job_id, index, stage.display_label)
        job_logger.info(f"Stage {index + 1}/{self.total_steps} started", extra={"stage": stage.id})

        context = StageContext(
            request_input=state["request_input"],
            summary=state["summary"],
            previous_outputs=dict(state["stage_outputs"]),
        )
        try:
            output = await self._run_with_retries(job_id, stage, context)
        except StageFailure as failure:
            job_logger.error(str(failure), extra={"stage": stage.id, "transient": failure.transient})
            return {"error": str(failure)}

        job_logger.info(f"Stage {stage.id} produced {len(output)} chars", extra={"stage": stage.id})
        if self.pacing_seconds and index + 1 < self.total_steps:
            await asyncio.sleep(self.pacing_seconds)
        return {"stage_outputs": {**state["stage_outputs"], stage.id: output}}

    async def _run_with_retries(self, job_id: str, stage: StageDefinition, context: StageContext) -> str:
        """Run a stage, retrying transient failures up to stage.max_retries times."""
        attempt = 0
        while True:
            try:
                return await self.stage_runner.run(stage, context)
            except StageFailure as failure:
                if not failure.transient or attempt >= stage.max_retries:
                    raise
                attempt += 1
                setup_job_logger(job_id).warning(
                    f"Retrying stage {stage.id} (attempt {attempt + 1}/{stage.max_retries + 1}): {failure.cause}",
                    extra={"stage": stage.id},
                )
                await asyncio.sleep(self.retry_backoff_seconds * attempt)

    async def _assemble_node(self, state: PipelineState) -> Dict[str, Any]:
        return {"artifact": assemble(state["stage_outputs"], state["summary"])}

    def _update_progress(self, job_id: str, index: int, label: str) -> None:
        remaining = self.remaining_seconds(index)

        def mutate(record: JobRecord) -> JobRecord:
            record.progress = JobProgress(
                current_step_index=index,
                total_steps=self.total_steps,
                step_label=label,
                estimated_seconds_remaining=remaining,
            )
            return record

        self.store.update(job_id, mutate)

    def _mark_complete(self, job_id: str, artifact: str) -> None:
        def mutate(record: JobRecord) -> JobRecord:
            record.status = JobStatus.COMPLETE
            record.result = artifact
            record.progress = JobProgress(
                current_step_index=self.total_steps,
                total_steps=self.total_steps,
                step_label=COMPLETED_LABEL,
                estimated_seconds_remaining=0,
            )
            return record

        self.store.update(job_id, mutate)
        setup_job_logger(job_id).info("Pipeline complete", extra={"artifact_chars": len(artifact)})

    def _mark_failed(self, job_id: str, error: str) -> None:
        def mutate(record: JobRecord) -> JobRecord:
            record.status = JobStatus.FAILED
            record.error = error
            return record

        try:
            self.store.update(job_id, mutate)
        except (JobStateError, JobNotFoundError) as e:
            # The job already reached a terminal state; the first outcome stands
            logger.warning(f"Could not mark job {job_id} failed: {e}")
            return
        setup_job_logger(job_id).error("Pipeline failed", extra={"error": error})
