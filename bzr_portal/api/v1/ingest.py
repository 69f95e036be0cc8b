"""Document ingestion endpoints."""
import logging

from fastapi import APIRouter, Depends

from bzr_portal.api.deps import get_ingestion_service
from bzr_portal.schemas.ingest import (
    BatchIngestRequest,
    BatchIngestResponse,
    IngestMetadataIn,
    IngestRequest,
    IngestResponse,
)
from bzr_portal.services.ingestion import BatchItem, IngestMetadata, IngestionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ingest", tags=["ingest"])


def _to_metadata(metadata: IngestMetadataIn) -> IngestMetadata:
    return IngestMetadata(
        owner_user_id=metadata.owner_user_id,
        is_public=metadata.is_public,
        category=metadata.category,
        folder=metadata.folder,
        tags=list(metadata.tags),
        original_filename=metadata.original_filename,
    )


@router.post("", response_model=IngestResponse)
async def ingest_document(
    request: IngestRequest,
    ingestion: IngestionService = Depends(get_ingestion_service),
):
    """Extract, embed and index one stored object."""
    document_id = await ingestion.ingest_one(request.bucket, request.key, _to_metadata(request.metadata))
    return IngestResponse(document_id=document_id, key=request.key)


@router.post("/batch", response_model=BatchIngestResponse)
async def ingest_batch(
    request: BatchIngestRequest,
    ingestion: IngestionService = Depends(get_ingestion_service),
):
    """Ingest several objects; per-item failures are reported, not raised."""
    items = [
        BatchItem(bucket=document.bucket, key=document.key, metadata=_to_metadata(document.metadata))
        for document in request.documents
    ]
    result = await ingestion.ingest_batch(items)
    return BatchIngestResponse(
        total=result.total,
        successful=result.successful,
        failed=result.failed,
        errors=result.errors,
        document_ids=result.document_ids,
    )
