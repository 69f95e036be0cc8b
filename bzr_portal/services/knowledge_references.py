"""Mirrors external regulation documents into the knowledge base bucket and indexes them."""
import logging
import posixpath
import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import unquote, urlparse

import httpx
from sqlalchemy import select
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from bzr_portal.core.config import settings
from bzr_portal.core.database import get_async_session
from bzr_portal.models.knowledge_reference import KnowledgeReference
from bzr_portal.services.document_extractor import content_type_from_filename
from bzr_portal.services.ingestion import IngestMetadata, IngestionService
from bzr_portal.services.storage import StorageGateway, storage_gateway

logger = logging.getLogger(__name__)


def filename_from_url(url: str) -> str:
    """Last path segment of the URL, percent-decoded; a timestamped PDF name if there is none."""
    try:
        name = posixpath.basename(urlparse(url).path)
    except ValueError:
        name = ""
    name = unquote(name)
    if not name:
        return f"document_{int(time.time() * 1000)}.pdf"
    return name


@dataclass
class MigrationResult:
    success: bool
    message: str
    storage_key: Optional[str] = None
    document_id: Optional[str] = None


class KnowledgeReferenceService:
    def __init__(
        self,
        storage: Optional[StorageGateway] = None,
        ingestion: Optional[IngestionService] = None,
        session_factory=get_async_session,
        bucket: Optional[str] = None,
    ):
        self.storage = storage or storage_gateway
        self._ingestion = ingestion
        self.session_factory = session_factory
        self.bucket = bucket or settings.WASABI_KNOWLEDGE_BASE_BUCKET

    @property
    def ingestion(self) -> IngestionService:
        if self._ingestion is None:
            self._ingestion = IngestionService(storage=self.storage)
        return self._ingestion

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True
    )
    async def _download(self, url: str) -> bytes:
        """Download file with retry logic"""
        async with httpx.AsyncClient(follow_redirects=True, timeout=60.0) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.content

    async def migrate_reference(self, reference: KnowledgeReference) -> MigrationResult:
        """Download, store and index one reference.

        An indexing failure after a successful upload still counts as success;
        the message says so and no document id is returned.
        """
        if not reference.url:
            return MigrationResult(success=False, message="Reference has no URL")

        try:
            data = await self._download(reference.url)
            filename = filename_from_url(reference.url)
            storage_key = f"{reference.category or 'general'}/{filename}"
            await self.storage.put(self.bucket, storage_key, data, content_type_from_filename(filename))
        except Exception as e:
            logger.error(f"Failed to mirror reference '{reference.title}': {e}")
            return MigrationResult(success=False, message=f"Failed to transfer document: {e}")

        try:
            document_id = await self.ingestion.ingest_one(
                self.bucket,
                storage_key,
                IngestMetadata(
                    is_public=True,
                    category=reference.category,
                    tags=[reference.category or "regulation"],
                    original_filename=filename,
                ),
            )
        except Exception as e:
            logger.warning(f"Reference '{reference.title}' stored as {storage_key} but not indexed: {e}")
            return MigrationResult(
                success=True,
                message=f"Document stored but not indexed: {e}",
                storage_key=storage_key,
            )

        logger.info(f"Reference '{reference.title}' stored as {storage_key} and indexed as {document_id}")
        return MigrationResult(
            success=True,
            message="Document stored and indexed",
            storage_key=storage_key,
            document_id=document_id,
        )

    async def migrate_all(self) -> Dict[str, Any]:
        """Migrate every active reference; one failure never stops the rest."""
        stats: Dict[str, Any] = {"total": 0, "processed": 0, "successful": 0, "failed": 0, "errors": []}

        async with self.session_factory() as session:
            result = await session.execute(
                select(KnowledgeReference).where(KnowledgeReference.is_active.is_(True))
            )
            references = list(result.scalars().all())
            stats["total"] = len(references)
            logger.info(f"Migrating {len(references)} knowledge references to {self.bucket}")

            for reference in references:
                try:
                    outcome = await self.migrate_reference(reference)
                except Exception as e:
                    outcome = MigrationResult(success=False, message=str(e) or "Unknown error")

                stats["processed"] += 1
                if not outcome.success:
                    stats["failed"] += 1
                    stats["errors"].append({"title": reference.title, "error": outcome.message})
                    continue

                stats["successful"] += 1
                reference.storage_key = outcome.storage_key
                if outcome.document_id:
                    reference.document_id = uuid.UUID(outcome.document_id)
                await session.commit()

        stats["success"] = stats["failed"] == 0
        logger.info(
            f"Knowledge reference migration finished: {stats['successful']}/{stats['total']} succeeded"
        )
        return stats


knowledge_reference_service = KnowledgeReferenceService()
