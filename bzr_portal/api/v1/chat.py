"""Assistant question endpoint."""
import logging

from fastapi import APIRouter, Depends, HTTPException

from bzr_portal.api.deps import get_assistant, get_rate_limiter
from bzr_portal.schemas.chat import ChatRequest, ChatResponse
from bzr_portal.services.assistant import AnswerContext, BZRAssistant
from bzr_portal.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("", response_model=ChatResponse)
async def ask_question(
    request: ChatRequest,
    assistant: BZRAssistant = Depends(get_assistant),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Answer a workplace-safety question from the knowledge base."""
    if request.user_id:
        is_allowed, error_msg, retry_after = await limiter.check_rate_limit(request.user_id, request.subscription)
        if not is_allowed:
            raise HTTPException(
                status_code=429,
                detail=error_msg,
                headers={"Retry-After": str(retry_after)} if retry_after else None,
            )

    result = await assistant.answer(
        request.question,
        AnswerContext(
            user_id=request.user_id,
            subscription=request.subscription,
            allow_public_docs=request.allow_public_docs,
            create_blog_draft=request.create_blog_draft,
            history=[message.model_dump() for message in request.history],
        ),
    )

    return ChatResponse(
        answer=result.text,
        sources=result.sources,
        relevant_existing_content=result.relevant_existing_content,
        blog_draft_id=result.blog_draft_id,
        rejected_off_topic=result.rejected_off_topic,
    )
