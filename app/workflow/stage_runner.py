import asyncio
import inspect
import logging
from typing import Any, Protocol

from app.core.errors import (
    ContentGenerationError,
    GenerationError,
    StageFailure,
    TransientGenerationError,
)
from app.models.stage import StageContext, StageDefinition

logger = logging.getLogger(__name__)


class GenerationCapability(Protocol):
    """Produces the text for one stage. May be sync or async."""

    def generate(self, stage_id: str, context: StageContext) -> Any:
        ...


class StageRunner:
    """Executes a single pipeline stage against the generation capability.

    One call per run, no retries. Never touches the job store.
    """

    def __init__(self, generator: GenerationCapability, timeout_seconds: float):
        self.generator = generator
        self.timeout_seconds = timeout_seconds

    async def run(self, stage: StageDefinition, context: StageContext) -> str:
        """Return the stage's text or raise StageFailure.

        A call that outlives the timeout is abandoned, but this method only
        returns once it has actually stopped, so at most one generation call
        per stage is ever in flight.
        """
        call = self._start(stage.id, context)
        try:
            done, _ = await asyncio.wait({call}, timeout=self.timeout_seconds)
        except asyncio.CancelledError:
            call.cancel()
            raise

        if not done:
            await self._abandon(stage.id, call)
            raise StageFailure(
                stage.id, f"timed out after {self.timeout_seconds:g}s", transient=True
            )

        try:
            output = call.result()
        except TransientGenerationError as e:
            raise StageFailure(stage.id, str(e) or "transient generation error", transient=True)
        except ContentGenerationError as e:
            raise StageFailure(stage.id, str(e) or "invalid generation output")
        except GenerationError as e:
            raise StageFailure(stage.id, str(e) or "generation failed")
        except (ConnectionError, TimeoutError) as e:
            raise StageFailure(stage.id, f"{type(e).__name__}: {e}", transient=True)
        except Exception as e:
            logger.error(f"Generation for stage {stage.id} raised", exc_info=True)
            raise StageFailure(stage.id, f"{type(e).__name__}: {e}")

        if not isinstance(output, str):
            raise StageFailure(
                stage.id, f"expected text output, got {type(output).__name__}"
            )
        if not output.strip():
            raise StageFailure(stage.id, "generation returned empty output")
        return output

    def _start(self, stage_id: str, context: StageContext) -> asyncio.Future:
        generate = self.generator.generate
        if inspect.iscoroutinefunction(generate):
            return asyncio.ensure_future(generate(stage_id, context))
        # Blocking clients run in the default executor so the event loop stays free
        loop = asyncio.get_running_loop()
        return loop.run_in_executor(None, generate, stage_id, context)

    async def _abandon(self, stage_id: str, call: asyncio.Future) -> None:
        """Stop a timed-out call and wait until it is really gone."""
        if isinstance(call, asyncio.Task):
            call.cancel()
        else:
            # A thread cannot be interrupted; the generator's own request timeout bounds it
            logger.warning(f"Stage {stage_id} timed out, waiting for the blocking call to return")
        await asyncio.wait({call})
        if not call.cancelled() and call.exception() is not None:
            logger.info(f"Abandoned call for stage {stage_id} ended with {call.exception()!r}")
