"""Tests for the ingestion job tracker."""

import asyncio

from hypertroq.web.job_tracker import JobStatus, JobTracker
from hypertroq.web.routers.knowledge import run_ingestion_job


def test_job_lifecycle():
    async def run():
        tracker = JobTracker()
        job = await tracker.create_job("volume.pdf", user_id=3)
        assert job.status is JobStatus.PENDING

        await tracker.start_job(job.id)
        await tracker.add_event(job.id, "status", "Processing volume.pdf")
        await tracker.complete_job(job.id, {"knowledge_item_id": 7})
        return await tracker.get_job(job.id)

    job = asyncio.run(run())
    data = job.to_dict()
    assert data["status"] == "completed"
    assert data["user_id"] == 3
    assert data["result"] == {"knowledge_item_id": 7}
    assert data["events"][0]["message"] == "Processing volume.pdf"
    assert data["started_at"] is not None


def test_failed_job():
    async def run():
        tracker = JobTracker()
        job = await tracker.create_job("scan.pdf")
        await tracker.fail_job(job.id, "PDF scan.pdf is password-protected")
        return await tracker.get_job(job.id)

    job = asyncio.run(run())
    assert job.status is JobStatus.FAILED
    assert job.error == "PDF scan.pdf is password-protected"


def test_unknown_job_ignored():
    async def run():
        tracker = JobTracker()
        await tracker.start_job("missing")
        return await tracker.get_job("missing")

    assert asyncio.run(run()) is None


def test_old_finished_jobs_dropped():
    async def run():
        tracker = JobTracker(max_completed_jobs=2)
        ids = []
        for i in range(3):
            job = await tracker.create_job(f"file{i}.txt")
            await tracker.complete_job(job.id, {})
            ids.append(job.id)
        pending = await tracker.create_job("file3.txt")
        return ids, pending.id, [j.id for j in await tracker.list_jobs()]

    ids, pending_id, remaining = asyncio.run(run())
    assert ids[0] not in remaining
    assert ids[1] in remaining and ids[2] in remaining
    assert pending_id in remaining


def test_ingestion_crash_fails_job():
    class CrashingService:
        async def ingest_file(self, data, file_name, mime_type, **kwargs):
            raise RuntimeError("corrupt page stream")

    async def run():
        tracker = JobTracker()
        job = await tracker.create_job("scan.pdf")
        await run_ingestion_job(
            tracker, job.id, CrashingService(), b"%PDF", "scan.pdf", "application/pdf", None, None, None
        )
        return await tracker.get_job(job.id)

    job = asyncio.run(run())
    assert job.status is JobStatus.FAILED
    assert job.error == "Ingestion failed: corrupt page stream"
    assert job.events[-1].event_type == "error"
