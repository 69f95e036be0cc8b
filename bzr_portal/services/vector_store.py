import json
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError

from bzr_portal.core.config import settings
from bzr_portal.core.database import get_async_session
from bzr_portal.core.exceptions import IndexUnavailableError
from bzr_portal.models.vector_document import VectorDocument
from bzr_portal.services.embeddings import EmbeddingService, embedding_service

logger = logging.getLogger(__name__)


@dataclass
class VectorRecord:
    id: str
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    embedding: Optional[List[float]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class ScoredRecord:
    id: str
    content: str
    metadata: Dict[str, Any]
    similarity: float


@dataclass
class SearchFilters:
    """Visibility and attribute filters applied to similarity results."""
    user_id: Optional[str] = None
    include_public: bool = True
    category: Optional[str] = None
    folder: Optional[str] = None
    file_types: Optional[List[str]] = None
    tags: Optional[List[str]] = None

    def matches(self, metadata: Dict[str, Any]) -> bool:
        is_public = bool(metadata.get("isPublic"))
        if self.user_id:
            visible = metadata.get("ownerUserId") == self.user_id or (self.include_public and is_public)
        else:
            visible = is_public
        if not visible:
            return False

        if self.category and metadata.get("category") != self.category:
            return False
        if self.folder and metadata.get("folder") != self.folder:
            return False
        if self.file_types and metadata.get("fileType") not in self.file_types:
            return False
        if self.tags and not set(self.tags) & set(metadata.get("tags") or []):
            return False
        return True


class VectorBackingStore(ABC):
    """Persistence behind the vector index."""

    @abstractmethod
    async def insert(self, content: str, embedding: List[float], metadata: Dict[str, Any]) -> str:
        ...

    @abstractmethod
    async def similarity_query(self, embedding: List[float], threshold: float, limit: int) -> List[ScoredRecord]:
        """Records with similarity above threshold, best first."""

    @abstractmethod
    async def update(
        self,
        record_id: str,
        content: Optional[str] = None,
        embedding: Optional[List[float]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        ...

    @abstractmethod
    async def delete(self, record_id: str) -> bool:
        ...

    @abstractmethod
    async def get(self, record_id: str) -> Optional[VectorRecord]:
        ...

    @abstractmethod
    async def find_by_source(self, bucket: str, file_path: str) -> Optional[VectorRecord]:
        ...


def _parse_id(record_id: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(record_id))
    except ValueError:
        return None


def _to_record(document: VectorDocument) -> VectorRecord:
    return VectorRecord(
        id=str(document.id),
        content=document.content,
        metadata=dict(document.meta or {}),
        embedding=list(document.embedding) if document.embedding is not None else None,
        created_at=document.created_at,
        updated_at=document.updated_at,
    )


class PgVectorStore(VectorBackingStore):
    """pgvector table `vector_documents`, cosine distance via `<=>`."""

    def __init__(self, session_factory=get_async_session):
        self.session_factory = session_factory

    async def insert(self, content: str, embedding: List[float], metadata: Dict[str, Any]) -> str:
        try:
            async with self.session_factory() as session:
                document = VectorDocument(content=content, embedding=embedding, meta=metadata)
                session.add(document)
                await session.commit()
                await session.refresh(document)
                return str(document.id)
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Error inserting vector document: {e}", exc_info=True)
            raise IndexUnavailableError(f"Failed to store document: {e}", provider_name="pgvector") from e

    async def similarity_query(self, embedding: List[float], threshold: float, limit: int) -> List[ScoredRecord]:
        # Convert embedding list to string format for pgvector
        embedding_str = '[' + ','.join(map(str, embedding)) + ']'
        query_sql = text("""
            SELECT id, content, metadata,
                   1 - (embedding <=> CAST(:query_embedding AS vector)) AS similarity
            FROM vector_documents
            WHERE 1 - (embedding <=> CAST(:query_embedding AS vector)) > :threshold
            ORDER BY embedding <=> CAST(:query_embedding AS vector)
            LIMIT :limit
        """)

        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    query_sql,
                    {"query_embedding": embedding_str, "threshold": threshold, "limit": limit}
                )
                rows = result.mappings().fetchall()
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Error executing vector search: {e}", exc_info=True)
            raise IndexUnavailableError(f"Similarity query failed: {e}", provider_name="pgvector") from e

        records = []
        for row in rows:
            metadata = row['metadata']
            if isinstance(metadata, str):
                metadata = json.loads(metadata)
            records.append(ScoredRecord(
                id=str(row['id']),
                content=row['content'],
                metadata=metadata or {},
                similarity=float(row['similarity']),
            ))
        return records

    async def update(
        self,
        record_id: str,
        content: Optional[str] = None,
        embedding: Optional[List[float]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        parsed = _parse_id(record_id)
        if parsed is None:
            return False

        try:
            async with self.session_factory() as session:
                document = await session.get(VectorDocument, parsed)
                if document is None:
                    return False
                if content is not None:
                    document.content = content
                if embedding is not None:
                    document.embedding = embedding
                if metadata is not None:
                    document.meta = metadata
                await session.commit()
                return True
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Error updating vector document {record_id}: {e}", exc_info=True)
            raise IndexUnavailableError(f"Failed to update document: {e}", provider_name="pgvector") from e

    async def delete(self, record_id: str) -> bool:
        parsed = _parse_id(record_id)
        if parsed is None:
            return False

        try:
            async with self.session_factory() as session:
                document = await session.get(VectorDocument, parsed)
                if document is None:
                    return False
                await session.delete(document)
                await session.commit()
                return True
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Error deleting vector document {record_id}: {e}", exc_info=True)
            raise IndexUnavailableError(f"Failed to delete document: {e}", provider_name="pgvector") from e

    async def get(self, record_id: str) -> Optional[VectorRecord]:
        parsed = _parse_id(record_id)
        if parsed is None:
            return None

        try:
            async with self.session_factory() as session:
                document = await session.get(VectorDocument, parsed)
                return _to_record(document) if document is not None else None
        except (SQLAlchemyError, OSError) as e:
            raise IndexUnavailableError(f"Failed to load document: {e}", provider_name="pgvector") from e

    async def find_by_source(self, bucket: str, file_path: str) -> Optional[VectorRecord]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(VectorDocument)
                    .where(VectorDocument.meta["bucket"].as_string() == bucket)
                    .where(VectorDocument.meta["filePath"].as_string() == file_path)
                    .order_by(VectorDocument.created_at.desc())
                    .limit(1)
                )
                document = result.scalar_one_or_none()
                return _to_record(document) if document is not None else None
        except (SQLAlchemyError, OSError) as e:
            raise IndexUnavailableError(f"Failed to look up {bucket}/{file_path}: {e}", provider_name="pgvector") from e


class VectorIndex:
    """Embeds text on the way in and filters results on the way out."""

    def __init__(self, store: Optional[VectorBackingStore] = None, embedder: Optional[EmbeddingService] = None):
        self.store = store or PgVectorStore()
        self.embedder = embedder or embedding_service

    async def add(self, content: str, metadata: Dict[str, Any], embedding: Optional[List[float]] = None) -> str:
        """Store a document. The content is embedded unless a vector is supplied."""
        metadata = dict(metadata or {})
        if embedding is None:
            result = await self.embedder.embed_with_info(content)
            embedding = result.vector
            metadata.setdefault("embeddingProvider", result.provider)
            metadata.setdefault("embeddingIsFallback", result.is_fallback)

        record_id = await self.store.insert(content, embedding, metadata)
        logger.info(f"Indexed document {record_id} ({metadata.get('filename', 'unnamed')})")
        return record_id

    async def search(
        self,
        query_text: str,
        filters: Optional[SearchFilters] = None,
        limit: int = None,
        similarity_threshold: float = None,
    ) -> List[ScoredRecord]:
        """Similarity search followed by visibility/attribute post-filtering.

        Filtering happens after the store applies `limit`, so fewer than
        `limit` results may come back even when more matching records exist.
        """
        filters = filters or SearchFilters()
        limit = settings.TOP_K_RESULTS if limit is None else limit
        threshold = settings.SIMILARITY_THRESHOLD if similarity_threshold is None else similarity_threshold

        query_embedding = await self.embedder.embed(query_text)
        candidates = await self.store.similarity_query(query_embedding, threshold, limit)
        results = [record for record in candidates if filters.matches(record.metadata)]

        logger.info(
            f"Vector search query: '{query_text[:80]}' returned {len(candidates)} candidates, "
            f"{len(results)} after filtering (threshold={threshold})"
        )
        return results

    async def update(
        self,
        record_id: str,
        content: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Patch a record; the embedder only runs when the content actually changed."""
        existing = await self.store.get(record_id)
        if existing is None:
            return False

        embedding = None
        new_metadata = dict(metadata) if metadata is not None else None
        if content is not None and content != existing.content:
            result = await self.embedder.embed_with_info(content)
            embedding = result.vector
            new_metadata = dict(new_metadata if new_metadata is not None else existing.metadata)
            new_metadata["embeddingProvider"] = result.provider
            new_metadata["embeddingIsFallback"] = result.is_fallback
        elif content == existing.content:
            content = None

        if content is None and embedding is None and new_metadata is None:
            return True

        return await self.store.update(record_id, content=content, embedding=embedding, metadata=new_metadata)

    async def delete(self, record_id: str) -> bool:
        deleted = await self.store.delete(record_id)
        if deleted:
            logger.info(f"Deleted document {record_id}")
        return deleted

    async def get_by_id(self, record_id: str) -> Optional[VectorRecord]:
        return await self.store.get(record_id)

    async def find_by_source(self, bucket: str, file_path: str) -> Optional[VectorRecord]:
        return await self.store.find_by_source(bucket, file_path)
