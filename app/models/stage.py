from typing import Any, Dict
from pydantic import BaseModel, ConfigDict, Field

class StageDefinition(BaseModel):
    """One ordered step of the pipeline."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    display_label: str
    estimated_duration_seconds: int = Field(0, ge=0)
    # Extra attempts on transient failures only; 0 means the stage runs once.
    max_retries: int = Field(0, ge=0)

class StageContext(BaseModel):
    """Everything a stage may read: the request, the summary and prior stage output."""
    model_config = ConfigDict(frozen=True)

    request_input: str
    summary: Dict[str, Any] = Field(default_factory=dict)
    previous_outputs: Dict[str, str] = Field(default_factory=dict)
