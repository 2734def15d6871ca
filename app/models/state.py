from typing import Any, Dict, Optional, TypedDict

class PipelineState(TypedDict):
    """State carried between the nodes of the pipeline graph."""
    job_id: str
    request_input: str
    summary: Dict[str, Any]
    stage_outputs: Dict[str, str]
    error: Optional[str]
    artifact: Optional[str]
