"""Chat completion with provider fallback (OpenRouter, then Gemini)."""
import asyncio
import logging
from typing import List, Optional

import httpx
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from bzr_portal.core.config import settings
from bzr_portal.core.exceptions import LLMUnavailableError

logger = logging.getLogger(__name__)


def build_user_message(context: str, question: str) -> str:
    if not context:
        return question
    return f"--- Kontekst ---\n{context}\n\n--- Pitanje korisnika ---\n{question}"


class OpenRouterChatProvider:
    name = "openrouter"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.OPENROUTER_API_KEY
        self.model = model or settings.OPENROUTER_CHAT_MODEL
        self._llm: Optional[ChatOpenAI] = None

    def is_available(self) -> bool:
        return bool(self.api_key)

    @property
    def llm(self) -> ChatOpenAI:
        if self._llm is None:
            self._llm = ChatOpenAI(
                model=self.model,
                temperature=settings.TEMPERATURE,
                max_tokens=settings.MAX_TOKENS,
                openai_api_key=self.api_key,
                openai_api_base=settings.OPENROUTER_BASE_URL,
                default_headers={
                    "HTTP-Referer": settings.OPENROUTER_REFERER,
                    "X-Title": "BZR Portal",
                },
            )
        return self._llm

    async def complete(self, system_prompt: str, user_message: str, history: List[BaseMessage]) -> str:
        messages = [SystemMessage(content=system_prompt), *history, HumanMessage(content=user_message)]
        response = await self.llm.ainvoke(messages)
        return response.content


class GeminiChatProvider:
    name = "gemini"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.model = model or settings.GEMINI_CHAT_MODEL

    def is_available(self) -> bool:
        return bool(self.api_key)

    async def complete(self, system_prompt: str, user_message: str, history: List[BaseMessage]) -> str:
        contents = []
        for message in history:
            role = "model" if isinstance(message, AIMessage) else "user"
            contents.append({"role": role, "parts": [{"text": message.content}]})
        contents.append({"role": "user", "parts": [{"text": user_message}]})

        url = f"{settings.GEMINI_BASE_URL.rstrip('/')}/models/{self.model}:generateContent"
        async with httpx.AsyncClient(timeout=settings.LLM_TIMEOUT_SECONDS) as client:
            response = await client.post(
                url,
                params={"key": self.api_key},
                json={
                    "systemInstruction": {"parts": [{"text": system_prompt}]},
                    "contents": contents,
                    "generationConfig": {
                        "temperature": settings.TEMPERATURE,
                        "maxOutputTokens": settings.MAX_TOKENS,
                    },
                },
            )
            response.raise_for_status()
            payload = response.json()

        candidates = payload.get("candidates") or []
        if not candidates:
            raise ValueError("Gemini returned no candidates")
        parts = candidates[0].get("content", {}).get("parts", [])
        return "".join(part.get("text", "") for part in parts)


class LLMService:
    """Tries each configured chat provider in order until one answers."""

    def __init__(self, providers: Optional[list] = None, timeout_seconds: Optional[float] = None):
        self.providers = providers if providers is not None else [OpenRouterChatProvider(), GeminiChatProvider()]
        self.timeout_seconds = timeout_seconds or settings.LLM_TIMEOUT_SECONDS

    async def complete(
        self,
        system_prompt: str,
        context: str,
        question: str,
        history: Optional[List[BaseMessage]] = None,
    ) -> str:
        user_message = build_user_message(context, question)
        errors = {}
        for provider in self.providers:
            if not provider.is_available():
                continue
            try:
                answer = await asyncio.wait_for(
                    provider.complete(system_prompt, user_message, history or []),
                    timeout=self.timeout_seconds
                )
            except asyncio.TimeoutError:
                errors[provider.name] = "timeout"
                logger.warning(f"LLM provider {provider.name} timed out after {self.timeout_seconds}s")
                continue
            except Exception as e:
                errors[provider.name] = str(e)
                logger.warning(f"LLM provider {provider.name} failed: {e}")
                continue

            if answer and answer.strip():
                return answer
            errors[provider.name] = "empty response"
            logger.warning(f"LLM provider {provider.name} returned an empty response")

        raise LLMUnavailableError(f"No LLM provider produced an answer: {errors or 'none configured'}")


llm_service = LLMService()
