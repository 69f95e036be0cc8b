"""Unit tests for metrics collector."""
import json
import logging
import pytest
import time
from bzr_portal.core.metrics import MetricsCollector, RequestMetrics, track_question


@pytest.mark.unit
class TestMetricsCollector:
    """Test cases for MetricsCollector."""

    def test_metrics_collector_initialization(self, sample_user_id):
        """Test MetricsCollector initialization."""
        collector = MetricsCollector(sample_user_id, "Šta je BZR?")

        assert collector.metrics.user_id == sample_user_id
        assert collector.metrics.question == "Šta je BZR?"
        assert collector.metrics.trace_id

    def test_end_retrieval(self, sample_user_id):
        """Test retrieval timing."""
        collector = MetricsCollector(sample_user_id, "pitanje")

        collector.start_retrieval()
        time.sleep(0.01)  # Small delay
        collector.end_retrieval(5)

        assert collector.metrics.retrieved_docs_count == 5
        assert collector.metrics.retrieval_time_ms > 0

    def test_end_llm(self, sample_user_id):
        """Test LLM timing."""
        collector = MetricsCollector(sample_user_id, "pitanje")

        collector.start_llm()
        time.sleep(0.01)  # Small delay
        collector.end_llm()

        assert collector.metrics.llm_time_ms > 0

    def test_end_without_start_is_ignored(self):
        collector = MetricsCollector()

        collector.end_retrieval(3)
        collector.end_llm()

        assert collector.metrics.retrieval_time_ms is None
        assert collector.metrics.llm_time_ms is None

    def test_finish(self, sample_user_id):
        """Test finishing metrics collection."""
        collector = MetricsCollector(sample_user_id, "pitanje")

        collector.start_retrieval()
        collector.end_retrieval(3)
        collector.start_llm()
        collector.end_llm()

        metrics = collector.finish(100)

        assert isinstance(metrics, RequestMetrics)
        assert metrics.retrieved_docs_count == 3
        assert metrics.response_length == 100
        assert metrics.total_time_ms is not None

    @pytest.mark.asyncio
    async def test_track_question_emits_json(self, sample_user_id, caplog):
        caplog.set_level(logging.INFO, logger="bzr_portal.core.metrics")

        async with track_question(sample_user_id, "Šta je BZR?") as collector:
            collector.metrics.rejected_off_topic = True

        lines = [r.getMessage() for r in caplog.records if r.getMessage().startswith("METRICS: ")]
        assert len(lines) == 1
        payload = json.loads(lines[0][len("METRICS: "):])
        assert payload["user_id"] == sample_user_id
        assert payload["question"] == "Šta je BZR?"
        assert payload["rejected_off_topic"] is True
        assert payload["total_time_ms"] is not None
