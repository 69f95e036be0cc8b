from typing import Dict, Any, List
import logging

from bzr_portal.core.config import settings
from bzr_portal.services.assistant.state import AssistantState
from bzr_portal.services.blog import BlogService
from bzr_portal.services.llm import LLMService
from bzr_portal.services.topic_filter import check_question, OFF_TOPIC_MESSAGE
from bzr_portal.services.vector_store import SearchFilters, VectorIndex

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Nije moguće generisati odgovor. Molimo pokušajte ponovo."

SYSTEM_PROMPT = """Ti si prijateljski i stručni AI asistent "BZR Savetnik" koji pomaže sa pitanjima o bezbednosti i zdravlju na radu prema propisima Republike Srbije.

STIL KOMUNIKACIJE:
- Uvek odgovaraj ljubazno, pristupačno i sa empatijom kao da razgovaraš sa kolegom iz struke
- Koristi jednostavan i razumljiv jezik, ali zadrži stručnu terminologiju gde je potrebno
- Obraćaj se direktno korisniku koristeći "Vi" formu iz poštovanja

FORMAT ODGOVORA:
- Započni sa jasnim, direktnim odgovorom na pitanje
- Organizuj složenije odgovore u kratke pasuse sa podnaslovima gde je to potrebno
- Ako citiraš propise, jasno navedi član i zakon

SADRŽAJ:
- Odgovaraj na srpskom jeziku, koristi pismo (ćirilicu/latinicu) kojim je korisnik postavio pitanje
- Koristi relevantni kontekst iz baze znanja kao primarni izvor informacija
- Ako nemaš dovoljno informacija, priznaj to i predloži koja dodatna dokumentacija bi mogla biti relevantna
- Nikada ne izmišljaj zakone, članove ili rokove
"""

MAX_LINKED_POSTS = 3


class AssistantNodes:
    def __init__(self, index: VectorIndex, llm: LLMService, blog: BlogService):
        self.index = index
        self.llm = llm
        self.blog = blog

    async def check_topic(self, state: AssistantState) -> Dict[str, Any]:
        """Free-tier questions must be about workplace safety."""
        allowed = check_question(state["question"], state.get("subscription", "free"))
        if allowed:
            return {"rejected_off_topic": False}

        metrics = state.get("metrics")
        if metrics is not None:
            metrics.metrics.rejected_off_topic = True
        return {"rejected_off_topic": True, "response": OFF_TOPIC_MESSAGE}

    async def find_existing_content(self, state: AssistantState) -> Dict[str, Any]:
        """Look for published posts that already answer the question."""
        try:
            coverage = await self.blog.find_existing_coverage(state["question"])
        except Exception as e:
            logger.error(f"Error searching existing blog posts, continuing without them: {e}", exc_info=True)
            return {"existing_posts": [], "coverage_sufficient": False}

        posts = [
            {
                "id": str(post.id),
                "title": post.title,
                "slug": post.slug,
                "excerpt": post.excerpt,
                "url": f"/blog/{post.slug}",
                "match": "keyword",
            }
            for post in coverage.posts
        ]
        logger.info(f"find_existing_content: {len(posts)} posts, sufficient={coverage.sufficient}")
        return {"existing_posts": posts, "coverage_sufficient": coverage.sufficient}

    async def retrieve_context(self, state: AssistantState) -> Dict[str, Any]:
        filters = SearchFilters(
            user_id=state.get("user_id"),
            include_public=state.get("allow_public_docs", True),
        )
        metrics = state.get("metrics")
        if metrics is not None:
            metrics.start_retrieval()

        try:
            records = await self.index.search(
                state["question"],
                filters=filters,
                limit=settings.TOP_K_RESULTS,
                similarity_threshold=settings.SIMILARITY_THRESHOLD,
            )
        except Exception as e:
            logger.error(f"Error retrieving context, answering without documents: {e}", exc_info=True)
            records = []

        if metrics is not None:
            metrics.end_retrieval(len(records))

        documents = [
            {
                "id": record.id,
                "content": record.content,
                "filename": record.metadata.get("filename", "Nepoznat dokument"),
                "category": record.metadata.get("category"),
                "similarity": record.similarity,
                "metadata": record.metadata,
            }
            for record in records
        ]

        existing_posts = list(state.get("existing_posts") or [])
        for document in documents:
            if document["category"] == "blog":
                existing_posts.append({
                    "id": document["id"],
                    "title": document["metadata"].get("title") or document["filename"],
                    "slug": document["metadata"].get("slug"),
                    "excerpt": document["content"][:150],
                    "url": f"/blog/{document['metadata']['slug']}" if document["metadata"].get("slug") else None,
                    "match": "vector",
                })

        coverage_sufficient = state.get("coverage_sufficient", False) or (
            len(existing_posts) >= self.blog.coverage_threshold
        )
        return {
            "retrieved_documents": documents,
            "existing_posts": existing_posts,
            "coverage_sufficient": coverage_sufficient,
        }

    def build_context(self, state: AssistantState) -> str:
        context = ""
        linked = [post for post in (state.get("existing_posts") or []) if post.get("url")][:MAX_LINKED_POSTS]
        if linked:
            context += "Relevantni postojeći blog postovi:\n\n"
            for i, post in enumerate(linked, start=1):
                context += f"Blog {i} - {post['title']}:\n{post.get('excerpt') or ''}\nLink: {post['url']}\n\n"
            context += (
                "VAŽNO: Na početku odgovora naglasi da na portalu već postoje članci na ovu temu, "
                "navedi ih kao linkove, a zatim ukratko odgovori na pitanje.\n\n"
            )

        documents: List[Dict[str, Any]] = state.get("retrieved_documents") or []
        if documents:
            context += "Relevantni kontekst iz baze znanja:\n\n"
            for i, document in enumerate(documents, start=1):
                content = document["content"][:settings.CONTEXT_CHARS_PER_DOCUMENT]
                context += f"Dokument {i}: {document['filename']}\n{content}\n\n"
        return context

    async def generate_answer(self, state: AssistantState) -> Dict[str, Any]:
        context = self.build_context(state)
        metrics = state.get("metrics")
        if metrics is not None:
            metrics.start_llm()

        try:
            response = await self.llm.complete(
                SYSTEM_PROMPT,
                context,
                state["question"],
                history=state.get("history") or [],
            )
            failed = False
        except Exception as e:
            # Provider details stay in the logs
            logger.error(f"Answer generation failed: {e}", exc_info=True)
            response = GENERIC_FAILURE_MESSAGE
            failed = True

        if metrics is not None:
            metrics.end_llm()
            metrics.metrics.response_length = len(response)
        return {"response": response, "answer_failed": failed}

    def should_draft(self, state: AssistantState) -> bool:
        return (
            bool(state.get("create_blog_draft"))
            and not state.get("coverage_sufficient", False)
            and not state.get("answer_failed", False)
        )

    async def draft_blog_post(self, state: AssistantState) -> Dict[str, Any]:
        """Store the answer as a post awaiting approval. Never publishes."""
        try:
            draft_id = await self.blog.create_draft_from_answer(
                question=state["question"],
                answer=state["response"],
                user_id=state.get("user_id"),
            )
        except Exception as e:
            logger.error(f"Failed to create blog draft: {e}", exc_info=True)
            return {"blog_draft_id": None}

        metrics = state.get("metrics")
        if metrics is not None:
            metrics.metrics.blog_draft_created = True
        return {"blog_draft_id": draft_id}
