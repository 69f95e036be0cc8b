"""API v1 router."""
from fastapi import APIRouter
from bzr_portal.api.v1 import chat, documents, health, ingest, knowledge_references, uploads

router = APIRouter(prefix="/v1")

router.include_router(ingest.router)
router.include_router(chat.router)
router.include_router(documents.router)
router.include_router(uploads.router)
router.include_router(knowledge_references.router)
router.include_router(health.router)
