from enum import Enum
from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

class JobStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETE = "complete"
    FAILED = "failed"

    def __str__(self):
        return self.value

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.PROCESSING

class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class JobProgress(_CamelModel):
    current_step_index: int = Field(0, ge=0)
    total_steps: int = Field(0, ge=0)
    step_label: str = "starting"
    estimated_seconds_remaining: int = Field(0, ge=0)

class JobRecord(_CamelModel):
    """Current state of one pipeline job."""
    job_id: str
    status: JobStatus = JobStatus.PROCESSING
    progress: JobProgress = Field(default_factory=JobProgress)
    result: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

class JobStatusView(JobRecord):
    """JobRecord as returned to pollers, plus the derived artifact location."""
    artifact_url: Optional[str] = None
