"""Knowledge base routes."""

import structlog
from fastapi import APIRouter, BackgroundTasks, File, Form, Header, Request, UploadFile
from pydantic import BaseModel

from ...db.repositories import KnowledgeRepository
from ...errors import HypertroqError, NotFoundError
from ...rag.file_processor import guess_mime_type
from ...services.ingestion import KnowledgeIngestionService
from ..deps import get_db_path, get_ingestion_service, get_job_tracker
from ..job_tracker import JobTracker

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/knowledge", tags=["knowledge"])


class TextKnowledgeRequest(BaseModel):
    title: str
    content: str
    category: str | None = None


async def run_ingestion_job(
    tracker: JobTracker,
    job_id: str,
    service: KnowledgeIngestionService,
    data: bytes,
    file_name: str,
    mime_type: str,
    title: str | None,
    category: str | None,
    user_id: int | None,
):
    """Ingest an uploaded file, recording progress on the job."""
    await tracker.start_job(job_id)
    await tracker.add_event(job_id, "status", f"Processing {file_name}")
    try:
        item, result = await service.ingest_file(
            data, file_name, mime_type, title=title, category=category, user_id=user_id
        )
    except HypertroqError as e:
        logger.warning("ingestion_job_failed", job_id=job_id, error=e.message)
        await tracker.add_event(job_id, "error", e.message)
        await tracker.fail_job(job_id, e.message)
        return
    except Exception as e:
        logger.exception("ingestion_job_failed", job_id=job_id)
        message = f"Ingestion failed: {e}"
        await tracker.add_event(job_id, "error", message)
        await tracker.fail_job(job_id, message)
        return

    if not result.success:
        await tracker.add_event(job_id, "error", "; ".join(result.errors), result.to_dict())
        await tracker.fail_job(job_id, "; ".join(result.errors) or "Processing failed")
        return

    for warning in result.warnings:
        await tracker.add_event(job_id, "warning", warning)
    await tracker.add_event(job_id, "complete", f"Created {result.chunks_created} chunks")
    await tracker.complete_job(job_id, {"knowledge_item_id": item.id, **result.to_dict()})


@router.post("/text")
async def add_text(
    request: Request, body: TextKnowledgeRequest, x_user_id: int | None = Header(default=None)
):
    """Add pasted text to the knowledge base and process it immediately."""
    service = get_ingestion_service(request)
    item, result = await service.ingest_text(
        body.title, body.content, category=body.category, user_id=x_user_id
    )
    return {"item": item.to_dict(), "processing": result.to_dict()}


@router.post("/upload", status_code=202)
async def upload_file(
    request: Request,
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    title: str | None = Form(None),
    category: str | None = Form(None),
    x_user_id: int | None = Header(default=None),
):
    """Accept a file and ingest it in the background. Poll the returned job."""
    data = await file.read()
    file_name = file.filename or "upload"
    mime_type = file.content_type
    if not mime_type or mime_type == "application/octet-stream":
        mime_type = guess_mime_type(file_name) or mime_type or "application/octet-stream"

    service = get_ingestion_service(request)
    # Reject over-limit uploads before queueing
    await service.check_upload_allowed(x_user_id, len(data), mime_type)

    tracker = get_job_tracker(request)
    job = await tracker.create_job(file_name, x_user_id)
    background_tasks.add_task(
        run_ingestion_job,
        tracker,
        job.id,
        service,
        data,
        file_name,
        mime_type,
        title,
        category,
        x_user_id,
    )
    return {"job_id": job.id, "status": job.status.value}


@router.get("/jobs/{job_id}")
async def get_job(request: Request, job_id: str):
    job = await get_job_tracker(request).get_job(job_id)
    if job is None:
        raise NotFoundError("Job", job_id)
    return job.to_dict()


@router.get("")
async def list_items(request: Request, x_user_id: int | None = Header(default=None)):
    """List knowledge items visible to the caller (all items without a user)."""
    items = await KnowledgeRepository(get_db_path(request)).list_all(user_id=x_user_id)
    return {"items": [item.to_dict() for item in items]}


@router.get("/{item_id}")
async def get_item(request: Request, item_id: int):
    item = await KnowledgeRepository(get_db_path(request)).get(item_id, include_chunks=True)
    if item is None:
        raise NotFoundError("Knowledge item", item_id)
    return {
        **item.to_dict(),
        "content": item.content,
        "chunks": [
            {
                "chunk_index": c.chunk_index,
                "content": c.content,
                "start_char": c.start_char,
                "end_char": c.end_char,
                "has_embedding": c.embedding is not None,
            }
            for c in item.chunks
        ],
    }


@router.delete("/{item_id}")
async def delete_item(request: Request, item_id: int):
    deleted = await KnowledgeRepository(get_db_path(request)).delete(item_id)
    if not deleted:
        raise NotFoundError("Knowledge item", item_id)
    return {"deleted": item_id}


@router.post("/{item_id}/reprocess")
async def reprocess_item(request: Request, item_id: int):
    result = await get_ingestion_service(request).reprocess(item_id)
    return result.to_dict()
