"""Pulls stored documents through extraction, embedding and indexing."""
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from bzr_portal.core.config import settings
from bzr_portal.core.exceptions import IngestionError
from bzr_portal.services.document_extractor import DocumentExtractor, document_extractor
from bzr_portal.services.embeddings import EmbeddingService, embedding_service
from bzr_portal.services.storage import StorageGateway, storage_gateway
from bzr_portal.services.vector_store import VectorIndex

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], Awaitable[None]]

STAGE_PROGRESS = {"download": 25, "extract": 50, "embed": 75, "index": 100}


@dataclass
class IngestMetadata:
    owner_user_id: Optional[str] = None
    is_public: bool = False
    category: Optional[str] = None
    folder: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    original_filename: Optional[str] = None


@dataclass
class BatchItem:
    bucket: str
    key: str
    metadata: IngestMetadata = field(default_factory=IngestMetadata)


@dataclass
class BatchIngestResult:
    total: int = 0
    successful: int = 0
    failed: int = 0
    errors: List[Dict[str, str]] = field(default_factory=list)
    document_ids: Dict[str, List[str]] = field(default_factory=dict)  # key -> ids, one per successful item


class IngestionService:
    def __init__(
        self,
        storage: Optional[StorageGateway] = None,
        extractor: Optional[DocumentExtractor] = None,
        embedder: Optional[EmbeddingService] = None,
        index: Optional[VectorIndex] = None,
        duplicate_policy: Optional[str] = None,
    ):
        self.storage = storage or storage_gateway
        self.extractor = extractor or document_extractor
        self.embedder = embedder or embedding_service
        self.index = index or VectorIndex(embedder=self.embedder)
        self.duplicate_policy = (duplicate_policy or settings.INGEST_DUPLICATE_POLICY).lower()

    async def ingest_one(
        self,
        bucket: str,
        key: str,
        metadata: Optional[IngestMetadata] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> str:
        """Download, extract, embed and index one object; returns the record id.

        The stored object is left untouched. Any failure is raised as an
        IngestionError naming the stage.
        """
        metadata = metadata or IngestMetadata()

        async def _advance(stage: str):
            if progress is not None:
                await progress(STAGE_PROGRESS[stage])

        try:
            stored = await self.storage.get(bucket, key)
        except Exception as e:
            raise IngestionError("download", key, e) from e
        await _advance("download")

        filename = metadata.original_filename or os.path.basename(key)
        try:
            content = self.extractor.extract(stored.data, stored.content_type, filename)
        except Exception as e:
            raise IngestionError("extract", key, e) from e
        await _advance("extract")

        try:
            embedding = await self.embedder.embed_with_info(content.text)
        except Exception as e:
            raise IngestionError("embed", key, e) from e
        await _advance("embed")

        record_metadata: Dict[str, Any] = {
            **content.metadata,
            "bucket": bucket,
            "filePath": key,
            "addedAt": datetime.now(timezone.utc).isoformat(),
            "ownerUserId": metadata.owner_user_id,
            "isPublic": metadata.is_public,
            "category": metadata.category,
            "folder": metadata.folder,
            "tags": list(metadata.tags),
            "embeddingProvider": embedding.provider,
            "embeddingIsFallback": embedding.is_fallback,
        }

        try:
            record_id = await self._write(bucket, key, content.text, embedding.vector, record_metadata)
        except Exception as e:
            raise IngestionError("index", key, e) from e
        await _advance("index")

        logger.info(
            f"Ingested {bucket}/{key} as {record_id} "
            f"(provider={embedding.provider}, fallback={embedding.is_fallback})"
        )
        return record_id

    async def _write(self, bucket: str, key: str, text: str, vector: List[float], metadata: Dict[str, Any]) -> str:
        if self.duplicate_policy == "upsert":
            existing = await self.index.find_by_source(bucket, key)
            if existing is not None:
                await self.index.store.update(existing.id, content=text, embedding=vector, metadata=metadata)
                logger.info(f"Replaced existing record {existing.id} for {bucket}/{key}")
                return existing.id
        return await self.index.add(text, metadata, embedding=vector)

    async def ingest_batch(self, items: List[BatchItem]) -> BatchIngestResult:
        """Ingest each item independently; failures are collected, never raised."""
        result = BatchIngestResult(total=len(items))
        for item in items:
            try:
                record_id = await self.ingest_one(item.bucket, item.key, item.metadata)
            except Exception as e:
                result.failed += 1
                result.errors.append({"key": item.key, "error": str(e)})
                logger.error(f"Batch ingestion failed for {item.bucket}/{item.key}: {e}")
                continue
            result.successful += 1
            result.document_ids.setdefault(item.key, []).append(record_id)

        logger.info(f"Batch ingestion finished: {result.successful}/{result.total} succeeded")
        return result
