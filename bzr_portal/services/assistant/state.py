from typing import TypedDict, List, Optional, Dict, Any
from langchain_core.messages import BaseMessage


class AssistantState(TypedDict, total=False):
    """State schema for the BZR assistant graph"""
    # Input
    question: str
    user_id: Optional[str]
    subscription: str
    allow_public_docs: bool
    create_blog_draft: bool

    # Conversation history
    history: List[BaseMessage]

    # Existing blog coverage
    existing_posts: List[Dict[str, Any]]
    coverage_sufficient: bool

    # RAG context
    retrieved_documents: List[Dict[str, Any]]

    # Generation
    response: Optional[str]
    answer_failed: bool
    blog_draft_id: Optional[str]

    # Metadata
    rejected_off_topic: bool
    metrics: Any  # MetricsCollector for the request, if any
