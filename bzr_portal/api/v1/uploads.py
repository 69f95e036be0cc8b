"""Asynchronous upload endpoints with server-sent progress events."""
import json
import logging
import re
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import StreamingResponse

from bzr_portal.api.deps import get_document_queue, get_storage
from bzr_portal.core.config import settings
from bzr_portal.schemas.upload import JobStatus, UploadAccepted
from bzr_portal.services.document_extractor import content_type_from_filename
from bzr_portal.services.document_queue import DocumentQueue
from bzr_portal.services.storage import StorageGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/uploads", tags=["uploads"])


def build_storage_key(filename: str, user_id: Optional[str], folder: Optional[str]) -> str:
    """`<user>/<folder>/<random>_<filename>`; the random part keeps repeated uploads apart."""
    safe_name = re.sub(r"[\\/]+", "_", filename or "document")
    parts = [user_id or "anonymous"]
    if folder:
        parts.append(folder.strip("/"))
    parts.append(f"{uuid.uuid4().hex[:12]}_{safe_name}")
    return "/".join(parts)


@router.post("", response_model=UploadAccepted, status_code=202)
async def upload_document(
    file: UploadFile = File(...),
    user_id: Optional[str] = Form(None, alias="userId"),
    is_public: bool = Form(False, alias="isPublic"),
    category: Optional[str] = Form(None),
    folder: Optional[str] = Form(None),
    tags: List[str] = Form([]),
    storage: StorageGateway = Depends(get_storage),
    queue: DocumentQueue = Depends(get_document_queue),
):
    """Store the file and queue it for processing; returns immediately."""
    data = await file.read()
    filename = file.filename or "document"
    mime_type = file.content_type or content_type_from_filename(filename)
    if mime_type == "application/octet-stream":
        mime_type = content_type_from_filename(filename)

    bucket = settings.WASABI_USER_DOCUMENTS_BUCKET
    key = build_storage_key(filename, user_id, folder)
    await storage.put(bucket, key, data, mime_type)

    job_id = queue.enqueue(
        file_path=key,
        mime_type=mime_type,
        original_filename=filename,
        owner_user_id=user_id,
        bucket=bucket,
        is_public=is_public,
        category=category,
        folder=folder,
        tags=tags,
    )
    return UploadAccepted(job_id=job_id, file_path=key)


@router.get("/{job_id}", response_model=JobStatus)
async def get_upload_status(
    job_id: str,
    queue: DocumentQueue = Depends(get_document_queue),
):
    job = queue.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobStatus(**job.to_dict())


async def _sse_generator(queue: DocumentQueue, job_id: str):
    """One `data:` line of JSON per event; the stream ends with the job."""
    async for event in queue.subscribe(job_id):
        yield f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


@router.get("/{job_id}/events")
async def stream_upload_events(
    job_id: str,
    queue: DocumentQueue = Depends(get_document_queue),
):
    if queue.get_job(job_id) is None:
        raise HTTPException(status_code=404, detail="Job not found")

    return StreamingResponse(
        _sse_generator(queue, job_id),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        }
    )
