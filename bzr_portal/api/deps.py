"""API dependencies for FastAPI endpoints."""
from functools import lru_cache

from bzr_portal.services.assistant import BZRAssistant
from bzr_portal.services.document_queue import DocumentQueue, document_queue
from bzr_portal.services.ingestion import IngestionService
from bzr_portal.services.knowledge_references import KnowledgeReferenceService, knowledge_reference_service
from bzr_portal.services.rate_limiter import RateLimiter, rate_limiter
from bzr_portal.services.storage import StorageGateway, storage_gateway
from bzr_portal.services.vector_store import VectorIndex


@lru_cache
def get_vector_index() -> VectorIndex:
    return VectorIndex()


@lru_cache
def get_ingestion_service() -> IngestionService:
    return IngestionService(index=get_vector_index())


@lru_cache
def get_assistant() -> BZRAssistant:
    return BZRAssistant(index=get_vector_index())


def get_storage() -> StorageGateway:
    return storage_gateway


def get_document_queue() -> DocumentQueue:
    return document_queue


def get_rate_limiter() -> RateLimiter:
    return rate_limiter


def get_knowledge_reference_service() -> KnowledgeReferenceService:
    return knowledge_reference_service
