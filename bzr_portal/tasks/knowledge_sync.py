import asyncio
import logging

from bzr_portal.tasks.celery_app import celery_app
from bzr_portal.services.knowledge_references import KnowledgeReferenceService

logger = logging.getLogger(__name__)


@celery_app.task(name="bzr_portal.tasks.knowledge_sync.migrate_knowledge_references")
def migrate_knowledge_references():
    """Scheduled task that mirrors active knowledge references into the knowledge base."""
    try:
        # Always create a fresh event loop for Celery tasks
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            return loop.run_until_complete(_async_migrate_references())
        finally:
            loop.close()
    except Exception as e:
        logger.error(f"Failed to migrate knowledge references in Celery task: {e}", exc_info=True)
        return None


async def _async_migrate_references() -> dict:
    service = KnowledgeReferenceService()
    stats = await service.migrate_all()
    if stats["failed"]:
        for error in stats["errors"]:
            logger.warning(f"Reference '{error['title']}' failed: {error['error']}")
    return stats
