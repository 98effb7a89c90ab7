"""In-memory tracking of background knowledge uploads.

Uploads are accepted immediately and ingested in a FastAPI background task;
clients poll ``GET /knowledge/jobs/{job_id}`` for the outcome.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import uuid4

FINISHED_STATUSES = frozenset({"completed", "failed"})


class JobStatus(Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_finished(self) -> bool:
        return self.value in FINISHED_STATUSES


@dataclass
class JobEvent:
    """A progress message recorded while a file is ingested."""
    event_type: str
    message: str
    data: dict | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "type": self.event_type,
            "message": self.message,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class Job:
    """One uploaded file moving through ingestion."""
    id: str
    file_name: str
    user_id: int | None = None
    status: JobStatus = JobStatus.PENDING
    created_at: datetime = field(default_factory=datetime.now)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    events: list[JobEvent] = field(default_factory=list)
    result: dict | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        def stamp(value: datetime | None) -> str | None:
            return value.isoformat() if value else None

        return {
            "id": self.id,
            "status": self.status.value,
            "file_name": self.file_name,
            "user_id": self.user_id,
            "created_at": stamp(self.created_at),
            "started_at": stamp(self.started_at),
            "completed_at": stamp(self.completed_at),
            "events": [event.to_dict() for event in self.events],
            "result": self.result,
            "error": self.error,
        }


class JobTracker:
    """Keeps pending and running uploads plus the most recent finished ones."""

    def __init__(self, max_completed_jobs: int = 50):
        self._jobs: dict[str, Job] = {}
        self._max_completed = max_completed_jobs
        self._lock = asyncio.Lock()

    async def create_job(self, file_name: str, user_id: int | None = None) -> Job:
        async with self._lock:
            job = Job(id=uuid4().hex[:8], file_name=file_name, user_id=user_id)
            self._jobs[job.id] = job
            self._prune_finished()
            return job

    async def get_job(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    async def list_jobs(self, user_id: int | None = None) -> list[Job]:
        jobs = list(self._jobs.values())
        if user_id is not None:
            jobs = [job for job in jobs if job.user_id == user_id]
        return jobs

    async def start_job(self, job_id: str):
        if job := self._jobs.get(job_id):
            job.status = JobStatus.RUNNING
            job.started_at = datetime.now()

    async def complete_job(self, job_id: str, result: dict):
        if job := self._jobs.get(job_id):
            self._finish(job, JobStatus.COMPLETED)
            job.result = result

    async def fail_job(self, job_id: str, error: str):
        if job := self._jobs.get(job_id):
            self._finish(job, JobStatus.FAILED)
            job.error = error

    async def add_event(self, job_id: str, event_type: str, message: str, data: dict | None = None):
        if job := self._jobs.get(job_id):
            job.events.append(JobEvent(event_type, message, data))

    @staticmethod
    def _finish(job: Job, status: JobStatus):
        job.status = status
        job.completed_at = datetime.now()

    def _prune_finished(self):
        finished = sorted(
            (job for job in self._jobs.values() if job.status.is_finished),
            key=lambda job: job.completed_at or datetime.min,
        )
        excess = len(finished) - self._max_completed
        for job in finished[:max(excess, 0)]:
            del self._jobs[job.id]
