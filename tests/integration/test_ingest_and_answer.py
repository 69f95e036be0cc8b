"""End-to-end pipeline with in-memory storage and index, no remote providers."""
import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from bzr_portal.services.assistant import AnswerContext, BZRAssistant
from bzr_portal.services.blog import ExistingCoverage
from bzr_portal.services.document_queue import DocumentQueue
from bzr_portal.services.ingestion import IngestMetadata, IngestionService
from bzr_portal.services.topic_filter import check_question
from bzr_portal.services.vector_store import SearchFilters

BUCKET = "bzr-knowledge-base-bucket"
SAFETY_RULES = (
    "Pravila bezbednosti: evakuacija se sprovodi preko obeleženih izlaza, "
    "a zbirno mesto je parking ispred zgrade."
)


@pytest.fixture
def storage(make_storage):
    return make_storage({
        (BUCKET, "propisi/safety-rules.txt"): (SAFETY_RULES.encode("utf-8"), "text/plain"),
        (BUCKET, "propisi/ppe.txt"): ("Lična zaštitna oprema se izdaje besplatno.".encode("utf-8"), "text/plain"),
    })


@pytest.fixture
def ingestion(storage, fallback_embedder, vector_index):
    return IngestionService(storage=storage, embedder=fallback_embedder, index=vector_index)


@pytest.mark.integration
class TestIngestAndAnswer:
    """Ingest, search and answer against the hash fallback."""

    @pytest.mark.asyncio
    async def test_exact_text_recall_under_fallback(self, ingestion, vector_index):
        target = await ingestion.ingest_one(BUCKET, "propisi/safety-rules.txt", IngestMetadata(is_public=True))
        await ingestion.ingest_one(BUCKET, "propisi/ppe.txt", IngestMetadata(is_public=True))

        results = await vector_index.search(SAFETY_RULES, SearchFilters())

        assert results[0].id == target
        assert "evakuacija" in results[0].content
        assert results[0].metadata["embeddingIsFallback"] is True
        assert results[0].metadata["filename"] == "safety-rules.txt"

    @pytest.mark.asyncio
    async def test_paraphrased_fire_question_under_fallback(self, ingestion, vector_index):
        """The topic check admits the question, but the hash fallback cannot match a paraphrase."""
        question = "Šta da radim u slučaju požara?"
        target = await ingestion.ingest_one(BUCKET, "propisi/safety-rules.txt", IngestMetadata(is_public=True))

        assert check_question(question, "free") is True

        results = await vector_index.search(question, SearchFilters())

        assert target not in [record.id for record in results]

    @pytest.mark.asyncio
    async def test_private_upload_invisible_to_other_users(self, ingestion, vector_index):
        await ingestion.ingest_one(BUCKET, "propisi/safety-rules.txt", IngestMetadata(owner_user_id="alice"))

        assert await vector_index.search(SAFETY_RULES, SearchFilters(user_id="bob")) == []
        assert len(await vector_index.search(SAFETY_RULES, SearchFilters(user_id="alice"))) == 1

    @pytest.mark.asyncio
    async def test_queued_upload_then_answer(self, ingestion, vector_index):
        queue = DocumentQueue(ingestion=ingestion)
        job_id = queue.enqueue(
            "propisi/safety-rules.txt", "text/plain", "safety-rules.txt", owner_user_id="u1", bucket=BUCKET
        )
        await queue.start()
        await asyncio.wait_for(queue.wait_idle(), timeout=5)
        await queue.stop()

        job = queue.get_job(job_id)
        assert job.status == "completed"

        llm = MagicMock()
        llm.complete = AsyncMock(return_value="Evakuacija se sprovodi preko obeleženih izlaza.")
        blog = MagicMock()
        blog.coverage_threshold = 3
        blog.find_existing_coverage = AsyncMock(return_value=ExistingCoverage())
        assistant = BZRAssistant(index=vector_index, llm=llm, blog=blog)

        result = await assistant.answer(SAFETY_RULES, AnswerContext(user_id="u1"))

        assert result.rejected_off_topic is False
        assert [source["id"] for source in result.sources] == [job.result["documentId"]]
        assert "Dokument 1: safety-rules.txt" in llm.complete.call_args[0][1]
