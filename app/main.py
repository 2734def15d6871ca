import logging
from contextlib import asynccontextmanager
from typing import Any, Optional, Sequence

import uvicorn
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from app.config import Settings, settings as default_settings
from app.core.config import DEFAULT_STAGES
from app.core.errors import JobNotFoundError, ValidationError
from app.core.logging import configure_logging
from app.job_store import InMemoryJobStore, JobStore
from app.launcher import JobLauncher
from app.models.job import JobStatus
from app.models.stage import StageDefinition
from app.status import StatusService
from app.workflow.context import SummaryExtractor
from app.workflow.generation import OpenAIGenerator
from app.workflow.runner import PipelineOrchestrator
from app.workflow.stage_runner import GenerationCapability, StageRunner

logger = logging.getLogger(__name__)

START_JOB_PATH = "/api/jobs"


class StartJobRequest(BaseModel):
    """Request model for playbook generation."""
    # Left optional so a missing field is reported as a 400, like any other bad input
    input: Optional[Any] = None


def create_app(
    config: Optional[Settings] = None,
    generator: Optional[GenerationCapability] = None,
    stages: Sequence[StageDefinition] = DEFAULT_STAGES,
    store: Optional[JobStore] = None,
    summary_extractor: Optional[SummaryExtractor] = None,
) -> FastAPI:
    """Wire the store, orchestrator and launcher into a FastAPI application.

    With no generator the OpenAI-backed one is used, and it also supplies
    summary extraction unless an extractor is passed in.
    """
    config = config or default_settings
    store = store or InMemoryJobStore()
    if generator is None:
        openai_generator = OpenAIGenerator(config)
        generator = openai_generator
        if summary_extractor is None:
            summary_extractor = SummaryExtractor(openai_generator.extract_context)

    orchestrator = PipelineOrchestrator(
        store=store,
        stage_runner=StageRunner(generator, timeout_seconds=config.STAGE_TIMEOUT_SECONDS),
        stages=stages,
        summary_extractor=summary_extractor,
        pacing_seconds=config.STAGE_PACING_SECONDS,
        retry_backoff_seconds=config.RETRY_BACKOFF_SECONDS,
    )
    launcher = JobLauncher(
        store=store,
        orchestrator=orchestrator,
        min_input_length=config.MIN_INPUT_LENGTH,
        max_input_length=config.MAX_INPUT_LENGTH,
    )
    status_service = StatusService(store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting playbook service ({config.ENVIRONMENT}) with {len(stages)} stage(s)")
        yield
        await launcher.shutdown()
        logger.info("Playbook service stopped")

    app = FastAPI(
        title="Launch Playbook Generator",
        description="Asynchronous multi-stage playbook generation with progress polling",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.launcher = launcher
    app.state.status_service = status_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(JobNotFoundError)
    async def not_found_handler(request: Request, exc: JobNotFoundError):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # No body, a non-object body or broken JSON all mean the input is missing
        if request.method == "POST" and request.url.path == START_JOB_PATH:
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"detail": "Input content is required"},
            )
        return await request_validation_exception_handler(request, exc)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    @app.post(START_JOB_PATH, status_code=status.HTTP_202_ACCEPTED)
    async def start_job(request: StartJobRequest):
        """Start generating a playbook. Poll the returned URL for progress."""
        job_id = await launcher.start(request.input)
        return {
            "jobId": job_id,
            "status": JobStatus.PROCESSING.value,
            "pollUrl": f"/api/jobs/{job_id}",
        }

    @app.get("/api/jobs/{job_id}")
    async def get_job_status(job_id: str):
        view = status_service.status(job_id)
        return view.model_dump(mode="json", by_alias=True, exclude_none=True)

    @app.get("/api/jobs/{job_id}/artifact")
    async def get_job_artifact(job_id: str):
        """Download the finished playbook as markdown."""
        view = status_service.status(job_id)
        if view.status != JobStatus.COMPLETE:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Job {job_id} is {view.status.value}, no artifact available",
            )
        return PlainTextResponse(view.result, media_type="text/markdown")

    return app


configure_logging()
app = create_app()


def run() -> None:
    """Serve the module-level app with uvicorn."""
    uvicorn.run(app, host=default_settings.HOST, port=default_settings.PORT, log_level=default_settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
