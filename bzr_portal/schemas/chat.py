"""Chat request and response schemas."""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone


class ChatMessage(BaseModel):
    """Chat message schema."""
    role: str = Field(..., description="Message role: user or assistant")
    content: str = Field(..., description="Message content")


class ChatRequest(BaseModel):
    """Question for the BZR assistant."""
    question: str = Field(..., min_length=1, description="User question")
    user_id: Optional[str] = Field(None, alias="userId", description="User ID")
    allow_public_docs: bool = Field(True, alias="allowPublicDocs", description="Also search public documents")
    subscription: str = Field("free", pattern="^(free|pro)$", description="Subscription tier")
    create_blog_draft: bool = Field(False, alias="createBlogDraft", description="Draft a blog post from the answer")
    history: List[ChatMessage] = Field(default_factory=list, description="Previous turns of the conversation")

    class Config:
        populate_by_name = True


class ChatResponse(BaseModel):
    """Assistant answer schema."""
    answer: str = Field(..., description="Assistant response")
    sources: List[Dict[str, Any]] = Field(default_factory=list, description="Documents used as context")
    relevant_existing_content: List[Dict[str, Any]] = Field(default_factory=list, alias="relevantExistingContent")
    blog_draft_id: Optional[str] = Field(None, alias="blogDraftId")
    rejected_off_topic: bool = Field(False, alias="rejectedOffTopic")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias="createdAt")

    class Config:
        populate_by_name = True
