from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage
from langgraph.graph import StateGraph, END

from bzr_portal.core.metrics import track_question
from bzr_portal.services.assistant.nodes import AssistantNodes
from bzr_portal.services.assistant.state import AssistantState
from bzr_portal.services.blog import BlogService, blog_service
from bzr_portal.services.llm import LLMService, llm_service
from bzr_portal.services.vector_store import VectorIndex


@dataclass
class AnswerContext:
    user_id: Optional[str] = None
    subscription: str = "free"
    allow_public_docs: bool = True
    create_blog_draft: bool = False
    history: List[Dict[str, str]] = field(default_factory=list)  # [{"role": "user"|"assistant", "content": ...}]


@dataclass
class AnswerResult:
    text: str
    sources: List[Dict[str, Any]] = field(default_factory=list)
    relevant_existing_content: List[Dict[str, Any]] = field(default_factory=list)
    blog_draft_id: Optional[str] = None
    rejected_off_topic: bool = False


def _to_messages(history: List[Dict[str, str]]) -> List[BaseMessage]:
    messages = []
    for item in history:
        if item.get("role") == "assistant":
            messages.append(AIMessage(content=item.get("content", "")))
        else:
            messages.append(HumanMessage(content=item.get("content", "")))
    return messages


class BZRAssistant:
    def __init__(
        self,
        index: Optional[VectorIndex] = None,
        llm: Optional[LLMService] = None,
        blog: Optional[BlogService] = None,
    ):
        self.nodes = AssistantNodes(index or VectorIndex(), llm or llm_service, blog or blog_service)
        self.graph = self._build_graph()

    def _build_graph(self):
        """Build the LangGraph workflow"""
        workflow = StateGraph(AssistantState)

        workflow.add_node("check_topic", self.nodes.check_topic)
        workflow.add_node("find_existing_content", self.nodes.find_existing_content)
        workflow.add_node("retrieve_context", self.nodes.retrieve_context)
        workflow.add_node("generate_answer", self.nodes.generate_answer)
        workflow.add_node("draft_blog_post", self.nodes.draft_blog_post)

        workflow.set_entry_point("check_topic")

        workflow.add_conditional_edges(
            "check_topic",
            lambda state: "reject" if state.get("rejected_off_topic") else "continue",
            {
                "reject": END,
                "continue": "find_existing_content"
            }
        )
        workflow.add_edge("find_existing_content", "retrieve_context")
        workflow.add_edge("retrieve_context", "generate_answer")
        workflow.add_conditional_edges(
            "generate_answer",
            lambda state: "draft" if self.nodes.should_draft(state) else "done",
            {
                "draft": "draft_blog_post",
                "done": END
            }
        )
        workflow.add_edge("draft_blog_post", END)

        return workflow.compile()

    async def answer(self, question: str, context: Optional[AnswerContext] = None) -> AnswerResult:
        """Answer a question from indexed documents and existing blog posts."""
        context = context or AnswerContext()

        async with track_question(context.user_id, question) as metrics:
            initial_state: AssistantState = {
                "question": question,
                "user_id": context.user_id,
                "subscription": context.subscription,
                "allow_public_docs": context.allow_public_docs,
                "create_blog_draft": context.create_blog_draft,
                "history": _to_messages(context.history),
                "existing_posts": [],
                "coverage_sufficient": False,
                "retrieved_documents": [],
                "response": None,
                "answer_failed": False,
                "blog_draft_id": None,
                "rejected_off_topic": False,
                "metrics": metrics,
            }

            result = await self.graph.ainvoke(initial_state)

        sources = [
            {
                "id": document["id"],
                "filename": document["filename"],
                "category": document.get("category"),
                "similarity": document["similarity"],
            }
            for document in result.get("retrieved_documents") or []
        ]
        return AnswerResult(
            text=result.get("response") or "",
            sources=sources,
            relevant_existing_content=result.get("existing_posts") or [],
            blog_draft_id=result.get("blog_draft_id"),
            rejected_off_topic=bool(result.get("rejected_off_topic")),
        )
