"""Indexed document endpoints."""
import logging

from fastapi import APIRouter, Depends, HTTPException

from bzr_portal.api.deps import get_vector_index
from bzr_portal.schemas.document import (
    DocumentResponse,
    DocumentUpdate,
    SearchRequest,
    SearchResponse,
    SearchResult,
)
from bzr_portal.services.vector_store import SearchFilters, VectorIndex

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post("/search", response_model=SearchResponse)
async def search_documents(
    request: SearchRequest,
    index: VectorIndex = Depends(get_vector_index),
):
    """Similarity search with owner/visibility and attribute filters."""
    filters = SearchFilters(
        user_id=request.user_id,
        include_public=request.include_public,
        category=request.category,
        folder=request.folder,
        file_types=request.file_types,
        tags=request.tags,
    )
    records = await index.search(
        request.query,
        filters=filters,
        limit=request.limit,
        similarity_threshold=request.similarity_threshold,
    )
    results = [
        SearchResult(id=record.id, content=record.content, metadata=record.metadata, similarity=record.similarity)
        for record in records
    ]
    return SearchResponse(results=results, total=len(results))


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: str,
    index: VectorIndex = Depends(get_vector_index),
):
    """Get a specific document."""
    record = await index.get_by_id(document_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Document not found")
    return DocumentResponse(
        id=record.id,
        content=record.content,
        metadata=record.metadata,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


@router.patch("/{document_id}")
async def update_document(
    document_id: str,
    update: DocumentUpdate,
    index: VectorIndex = Depends(get_vector_index),
):
    """Update content and/or metadata of a document."""
    if not await index.update(document_id, content=update.content, metadata=update.metadata):
        raise HTTPException(status_code=404, detail="Document not found")
    return {"id": document_id, "updated": True}


@router.delete("/{document_id}")
async def delete_document(
    document_id: str,
    index: VectorIndex = Depends(get_vector_index),
):
    """Delete a document."""
    if not await index.delete(document_id):
        raise HTTPException(status_code=404, detail="Document not found")
    return {"id": document_id, "deleted": True}
