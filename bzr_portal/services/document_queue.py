"""In-process upload queue: one FIFO, one worker, progress events for subscribers.

Uploads return as soon as the file is stored; the worker then runs the
slow extraction/embedding/indexing steps one job at a time and publishes
``queued``, ``progress``, ``completed`` and ``failed`` events.
"""
import asyncio
import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable, Deque, Dict, List, Optional

from bzr_portal.core.config import settings
from bzr_portal.services.ingestion import IngestMetadata, IngestionService

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = ("completed", "failed")

ProgressReporter = Callable[[int], Awaitable[None]]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class QueuedJob:
    id: str
    file_path: str
    mime_type: str
    original_filename: str
    owner_user_id: Optional[str] = None
    bucket: str = field(default_factory=lambda: settings.WASABI_USER_DOCUMENTS_BUCKET)
    is_public: bool = False
    category: Optional[str] = None
    folder: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    progress: int = 0
    status: str = "queued"  # queued, processing, completed, failed
    error: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
    created_at: str = field(default_factory=_now)
    updated_at: str = field(default_factory=_now)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "filePath": self.file_path,
            "mimeType": self.mime_type,
            "originalFilename": self.original_filename,
            "ownerUserId": self.owner_user_id,
            "bucket": self.bucket,
            "progress": self.progress,
            "status": self.status,
            "error": self.error,
            "result": self.result,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


JobProcessor = Callable[[QueuedJob, ProgressReporter], Awaitable[Any]]


class DocumentQueue:
    def __init__(
        self,
        processor: Optional[JobProcessor] = None,
        ingestion: Optional[IngestionService] = None,
        max_finished_jobs: Optional[int] = None,
    ):
        self._ingestion = ingestion
        self.processor = processor or self.ingest_job
        self.max_finished_jobs = max_finished_jobs or settings.UPLOAD_FINISHED_JOB_RETENTION
        self._queue: asyncio.Queue = asyncio.Queue()
        self._jobs: Dict[str, QueuedJob] = {}
        self._finished: Deque[str] = deque()
        self._subscribers: Dict[str, List[asyncio.Queue]] = {}
        self._worker: Optional[asyncio.Task] = None

    @property
    def ingestion(self) -> IngestionService:
        if self._ingestion is None:
            self._ingestion = IngestionService()
        return self._ingestion

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    async def start(self):
        if self.is_running:
            return
        # Rebind to the running loop, keeping jobs enqueued before start
        pending = []
        while not self._queue.empty():
            pending.append(self._queue.get_nowait())
        self._queue = asyncio.Queue()
        for job_id in pending:
            self._queue.put_nowait(job_id)
        self._worker = asyncio.create_task(self._run(), name="document-queue-worker")
        logger.info("Document queue worker started")

    async def stop(self):
        """Cancel the worker; a job that was in flight is marked failed."""
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info("Document queue worker stopped")

    def enqueue(
        self,
        file_path: str,
        mime_type: str,
        original_filename: str,
        owner_user_id: Optional[str] = None,
        **options: Any,
    ) -> str:
        """Register a job and return its id without waiting for processing."""
        job = QueuedJob(
            id=str(uuid.uuid4()),
            file_path=file_path,
            mime_type=mime_type,
            original_filename=original_filename,
            owner_user_id=owner_user_id,
            **options,
        )
        self._jobs[job.id] = job
        self._queue.put_nowait(job.id)
        logger.info(f"Queued job {job.id} for {original_filename} ({self._queue.qsize()} waiting)")
        self._publish(job, {"event": "queued", "jobId": job.id, "progress": 0})
        return job.id

    def get_job(self, job_id: str) -> Optional[QueuedJob]:
        return self._jobs.get(job_id)

    async def wait_idle(self):
        """Block until every queued job has been processed."""
        await self._queue.join()

    async def subscribe(self, job_id: str) -> AsyncIterator[Dict[str, Any]]:
        """Yield the job's current state, then its events until it finishes."""
        job = self._jobs.get(job_id)
        if job is None:
            raise KeyError(job_id)

        if job.is_terminal:
            yield self._snapshot(job)
            return

        # Registered before the first yield; events published while the caller
        # handles the snapshot wait in the inbox
        inbox: asyncio.Queue = asyncio.Queue()
        self._subscribers.setdefault(job_id, []).append(inbox)
        try:
            yield self._snapshot(job)
            while True:
                event = await inbox.get()
                yield event
                if event["event"] in TERMINAL_STATUSES:
                    return
        finally:
            subscribers = self._subscribers.get(job_id, [])
            if inbox in subscribers:
                subscribers.remove(inbox)
            if not subscribers:
                self._subscribers.pop(job_id, None)

    def _snapshot(self, job: QueuedJob) -> Dict[str, Any]:
        if job.status == "completed":
            return {"event": "completed", "jobId": job.id, "progress": 100, "result": job.result}
        if job.status == "failed":
            return {"event": "failed", "jobId": job.id, "progress": job.progress, "error": job.error}
        if job.status == "processing":
            return {"event": "progress", "jobId": job.id, "progress": job.progress}
        return {"event": "queued", "jobId": job.id, "progress": 0}

    def _publish(self, job: QueuedJob, event: Dict[str, Any]):
        job.updated_at = _now()
        for inbox in self._subscribers.get(job.id, []):
            inbox.put_nowait(event)

    async def _report(self, job: QueuedJob, progress: int):
        progress = max(0, min(100, int(progress)))
        if job.is_terminal or progress <= job.progress:
            return
        job.progress = progress
        self._publish(job, {"event": "progress", "jobId": job.id, "progress": progress})

    def _fail(self, job: QueuedJob, error: str):
        job.status = "failed"
        job.error = error
        self._publish(job, {"event": "failed", "jobId": job.id, "progress": job.progress, "error": error})
        logger.error(f"Job {job.id} ({job.original_filename}) failed: {error}")
        self._retire(job)

    def _retire(self, job: QueuedJob):
        """Remember a finished job, forgetting the oldest ones past the retention cap."""
        self._finished.append(job.id)
        while len(self._finished) > self.max_finished_jobs:
            self._jobs.pop(self._finished.popleft(), None)

    async def _run(self):
        while True:
            job_id = await self._queue.get()
            job = self._jobs[job_id]
            job.status = "processing"
            self._publish(job, {"event": "progress", "jobId": job.id, "progress": job.progress})

            async def report(progress: int, job: QueuedJob = job):
                await self._report(job, progress)

            try:
                result = await self.processor(job, report)
            except asyncio.CancelledError:
                self._fail(job, "Queue stopped before the job finished")
                raise
            except Exception as e:
                self._fail(job, str(e))
            else:
                job.status = "completed"
                job.progress = 100
                job.result = result if isinstance(result, dict) or result is None else {"value": result}
                self._publish(job, {"event": "completed", "jobId": job.id, "progress": 100, "result": job.result})
                logger.info(f"Job {job.id} ({job.original_filename}) completed")
                self._retire(job)
            finally:
                self._queue.task_done()

    async def ingest_job(self, job: QueuedJob, report: ProgressReporter) -> Dict[str, Any]:
        """Default processor: the file is already in storage, so only ingestion runs."""
        document_id = await self.ingestion.ingest_one(
            job.bucket,
            job.file_path,
            IngestMetadata(
                owner_user_id=job.owner_user_id,
                is_public=job.is_public,
                category=job.category,
                folder=job.folder,
                tags=list(job.tags),
                original_filename=job.original_filename,
            ),
            progress=report,
        )
        return {"documentId": document_id, "filePath": job.file_path}


document_queue = DocumentQueue()
