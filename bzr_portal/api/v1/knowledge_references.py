"""Knowledge reference migration endpoint."""
import logging

from fastapi import APIRouter, Depends

from bzr_portal.api.deps import get_knowledge_reference_service
from bzr_portal.schemas.knowledge_reference import MigrationResponse
from bzr_portal.services.knowledge_references import KnowledgeReferenceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/knowledge-references", tags=["knowledge-references"])


@router.post("/migrate", response_model=MigrationResponse)
async def migrate_knowledge_references(
    service: KnowledgeReferenceService = Depends(get_knowledge_reference_service),
):
    """Download every active reference into the knowledge base bucket and index it."""
    stats = await service.migrate_all()
    return MigrationResponse(**stats)
