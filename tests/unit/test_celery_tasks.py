"""Unit tests for Celery tasks."""
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from bzr_portal.tasks.celery_app import _crontab_from_expression, celery_app
from bzr_portal.tasks.knowledge_sync import _async_migrate_references, migrate_knowledge_references

STATS = {"total": 2, "processed": 2, "successful": 1, "failed": 1,
         "errors": [{"title": "Zakon", "error": "timeout"}], "success": False}


@pytest.mark.unit
@pytest.mark.celery
class TestCeleryTasks:
    """Test cases for Celery tasks."""

    @patch('bzr_portal.tasks.knowledge_sync._async_migrate_references', new_callable=AsyncMock)
    def test_migrate_task_runs_in_fresh_loop(self, mock_async_migrate):
        """The task runs the async body and returns its stats."""
        mock_async_migrate.return_value = STATS

        result = migrate_knowledge_references()

        assert result == STATS
        mock_async_migrate.assert_awaited_once()

    @patch('bzr_portal.tasks.knowledge_sync._async_migrate_references', new_callable=AsyncMock)
    def test_migrate_task_logs_errors(self, mock_async_migrate):
        """Failures are logged and the task returns None."""
        mock_async_migrate.side_effect = RuntimeError("database unavailable")

        assert migrate_knowledge_references() is None

    @pytest.mark.asyncio
    async def test_async_body_uses_service(self):
        service = MagicMock()
        service.migrate_all = AsyncMock(return_value=STATS)

        with patch('bzr_portal.tasks.knowledge_sync.KnowledgeReferenceService', return_value=service):
            stats = await _async_migrate_references()

        assert stats == STATS

    def test_task_registered_and_scheduled(self):
        assert "bzr_portal.tasks.knowledge_sync.migrate_knowledge_references" in celery_app.tasks
        schedule = celery_app.conf.beat_schedule["migrate-knowledge-references"]
        assert schedule["task"] == "bzr_portal.tasks.knowledge_sync.migrate_knowledge_references"

    def test_crontab_from_expression(self):
        schedule = _crontab_from_expression("30 3 * * 1")

        assert schedule.minute == {30}
        assert schedule.hour == {3}
        assert schedule.day_of_week == {1}
