"""Read-only view of job state for polling clients."""

from app.job_store import JobStore
from app.models.job import JobRecord, JobStatus, JobStatusView


def artifact_url(job_id: str) -> str:
    return f"/api/jobs/{job_id}/artifact"


class StatusService:
    """Reads straight through to the job store; nothing is cached."""

    def __init__(self, store: JobStore):
        self.store = store

    def status(self, job_id: str) -> JobStatusView:
        """Return the job as pollers see it. Raises JobNotFoundError."""
        record = self.store.get(job_id)
        return to_view(record)


def to_view(record: JobRecord) -> JobStatusView:
    return JobStatusView(
        **record.model_dump(),
        artifact_url=artifact_url(record.job_id) if record.status == JobStatus.COMPLETE else None,
    )
