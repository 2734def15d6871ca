"""Exception hierarchy for the playbook pipeline."""


class PlaybookError(Exception):
    """Base class for all pipeline errors."""


class ValidationError(PlaybookError):
    """Caller-supplied input failed size or shape checks."""


class JobNotFoundError(PlaybookError):
    """A status query or update targeted an unknown job id."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job {job_id} not found")


class JobStateError(PlaybookError):
    """A store operation would break a JobRecord invariant."""


class DuplicateJobError(JobStateError):
    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job {job_id} already exists")


class TerminalStateError(JobStateError):
    def __init__(self, job_id: str, status: str):
        self.job_id = job_id
        self.status = status
        super().__init__(f"Job {job_id} is already {status}")


class InvalidTransitionError(JobStateError):
    pass


class GenerationError(PlaybookError):
    """Raised by a generation capability when it cannot produce stage output."""


class TransientGenerationError(GenerationError):
    """Network, timeout or rate-limit trouble. Worth retrying."""


class ContentGenerationError(GenerationError):
    """Malformed or empty output. Retrying the same request will not help."""


class StageFailure(PlaybookError):
    """A single stage could not produce acceptable output."""

    def __init__(self, stage_id: str, cause: str, transient: bool = False):
        self.stage_id = stage_id
        self.cause = cause
        self.transient = transient
        super().__init__(f"Stage '{stage_id}' failed: {cause}")
