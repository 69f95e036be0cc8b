"""
Latency tracking for assistant questions and document ingestion.
"""
import time
import logging
import uuid
from typing import Dict, Any, Optional
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
import json

logger = logging.getLogger(__name__)


@dataclass
class RequestMetrics:
    """Metrics for a single assistant question."""
    trace_id: str
    user_id: Optional[str] = None

    # Timing breakdowns
    start_time: float = field(default_factory=time.time)
    retrieval_time_ms: Optional[float] = None
    llm_time_ms: Optional[float] = None
    total_time_ms: Optional[float] = None

    # Request details
    question: Optional[str] = None
    retrieved_docs_count: int = 0
    response_length: int = 0
    rejected_off_topic: bool = False
    blog_draft_created: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dictionary for logging."""
        return {
            "trace_id": self.trace_id,
            "user_id": self.user_id,
            "question": self.question[:100] if self.question else None,
            "retrieval_time_ms": self.retrieval_time_ms,
            "llm_time_ms": self.llm_time_ms,
            "total_time_ms": self.total_time_ms,
            "retrieved_docs_count": self.retrieved_docs_count,
            "response_length": self.response_length,
            "rejected_off_topic": self.rejected_off_topic,
            "blog_draft_created": self.blog_draft_created,
        }

    def emit(self, level: str = "INFO"):
        """Emit metrics as structured JSON log."""
        log_message = json.dumps(self.to_dict(), ensure_ascii=False)

        if level == "INFO":
            logger.info(f"METRICS: {log_message}")
        elif level == "WARNING":
            logger.warning(f"METRICS: {log_message}")
        else:
            logger.error(f"METRICS: {log_message}")


class MetricsCollector:
    """Collects timings across the answer graph nodes."""

    def __init__(self, user_id: Optional[str] = None, question: Optional[str] = None):
        self.metrics = RequestMetrics(
            trace_id=str(uuid.uuid4()),
            user_id=user_id,
            question=question
        )
        self._retrieval_start: Optional[float] = None
        self._llm_start: Optional[float] = None

    def start_retrieval(self):
        """Mark start of retrieval."""
        self._retrieval_start = time.time()

    def end_retrieval(self, doc_count: int = 0):
        """Mark end of retrieval."""
        if self._retrieval_start:
            self.metrics.retrieval_time_ms = (time.time() - self._retrieval_start) * 1000
            self.metrics.retrieved_docs_count = doc_count

    def start_llm(self):
        """Mark start of LLM generation."""
        self._llm_start = time.time()

    def end_llm(self):
        """Mark end of LLM generation."""
        if self._llm_start:
            self.metrics.llm_time_ms = (time.time() - self._llm_start) * 1000

    def finish(self, response_length: int = 0):
        """Finish metrics collection."""
        self.metrics.total_time_ms = (time.time() - self.metrics.start_time) * 1000
        self.metrics.response_length = response_length
        return self.metrics


@asynccontextmanager
async def track_question(user_id: Optional[str] = None, question: Optional[str] = None):
    """Context manager that emits metrics when the question is answered."""
    collector = MetricsCollector(user_id, question)
    try:
        yield collector
    finally:
        collector.finish(collector.metrics.response_length)
        collector.metrics.emit()
