"""Job registry: the single source of truth for job state."""

import logging
from abc import ABC, abstractmethod
from threading import Lock
from typing import Callable, Dict

from app.core.errors import (
    DuplicateJobError,
    InvalidTransitionError,
    JobNotFoundError,
    TerminalStateError,
)
from app.models.job import JobRecord, JobStatus

logger = logging.getLogger(__name__)

Mutator = Callable[[JobRecord], JobRecord]


class JobStore(ABC):
    """Abstract interface so a persistent store can replace the in-memory one."""

    @abstractmethod
    def create(self, job_id: str, record: JobRecord) -> JobRecord:
        """Register a new job. Raises DuplicateJobError if the id is taken."""
        ...

    @abstractmethod
    def get(self, job_id: str) -> JobRecord:
        """Return a snapshot of the job. Raises JobNotFoundError."""
        ...

    @abstractmethod
    def update(self, job_id: str, mutator: Mutator) -> JobRecord:
        """Atomically apply mutator to the job and return the new snapshot."""
        ...


def check_transition(old: JobRecord, new: JobRecord) -> None:
    """Raise if moving from old to new would break a JobRecord invariant."""
    if old.status.is_terminal:
        raise TerminalStateError(old.job_id, old.status.value)
    if new.job_id != old.job_id:
        raise InvalidTransitionError("job_id is immutable")
    if new.created_at != old.created_at:
        raise InvalidTransitionError("created_at is immutable")

    progress = new.progress
    if progress.current_step_index < old.progress.current_step_index:
        raise InvalidTransitionError(
            f"current_step_index went backwards "
            f"({old.progress.current_step_index} -> {progress.current_step_index})"
        )
    if progress.current_step_index > progress.total_steps:
        raise InvalidTransitionError(
            f"current_step_index {progress.current_step_index} exceeds total_steps {progress.total_steps}"
        )

    if new.status == JobStatus.PROCESSING:
        if new.result is not None or new.error is not None:
            raise InvalidTransitionError("a processing job carries neither result nor error")
    elif new.status == JobStatus.COMPLETE:
        if new.result is None or new.error is not None:
            raise InvalidTransitionError("a complete job carries a result and no error")
    elif new.status == JobStatus.FAILED:
        if new.error is None or new.result is not None:
            raise InvalidTransitionError("a failed job carries an error and no result")


class _Entry:
    __slots__ = ("record", "lock")

    def __init__(self, record: JobRecord):
        self.record = record
        self.lock = Lock()


class InMemoryJobStore(JobStore):
    """Thread-safe in-memory job store.

    Each job has its own lock, so updates to unrelated jobs never contend.
    Updates work on a private copy and swap it in whole; a reader sees either
    the record before an update or the record after it.
    """

    def __init__(self):
        self._entries: Dict[str, _Entry] = {}
        self._registry_lock = Lock()

    def create(self, job_id: str, record: JobRecord) -> JobRecord:
        if record.job_id != job_id:
            raise InvalidTransitionError(f"record id {record.job_id} does not match {job_id}")
        entry = _Entry(record.model_copy(deep=True))
        with self._registry_lock:
            if job_id in self._entries:
                raise DuplicateJobError(job_id)
            self._entries[job_id] = entry
        logger.debug(f"Created job {job_id}")
        return record.model_copy(deep=True)

    def get(self, job_id: str) -> JobRecord:
        entry = self._entries.get(job_id)
        if entry is None:
            raise JobNotFoundError(job_id)
        return entry.record.model_copy(deep=True)

    def update(self, job_id: str, mutator: Mutator) -> JobRecord:
        entry = self._entries.get(job_id)
        if entry is None:
            raise JobNotFoundError(job_id)
        with entry.lock:
            current = entry.record
            if current.status.is_terminal:
                raise TerminalStateError(job_id, current.status.value)
            updated = mutator(current.model_copy(deep=True))
            # Field assignment on a model skips validation
            updated = JobRecord.model_validate(updated.model_dump())
            check_transition(current, updated)
            entry.record = updated
        return updated.model_copy(deep=True)

    def __contains__(self, job_id: str) -> bool:
        return job_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
