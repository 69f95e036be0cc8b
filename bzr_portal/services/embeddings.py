"""Embedding generation through a prioritized chain of providers.

Providers are tried in the order configured in ``EMBEDDING_PROVIDERS``. The
first success wins; every failure is logged and the next provider is tried.
When all of them fail, a deterministic hash-based vector is returned (unless
``EMBEDDING_FALLBACK_ENABLED`` is off) so ingestion keeps working offline.
Whatever the source, vectors always have ``VECTOR_DIMENSION`` components.
"""
import asyncio
import hashlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import httpx
import numpy as np
from langchain_openai import OpenAIEmbeddings

from bzr_portal.core.config import settings
from bzr_portal.core.exceptions import EmbeddingUnavailableError
from bzr_portal.services.cache import CacheService, cache_service

logger = logging.getLogger(__name__)

FALLBACK_PROVIDER_NAME = "hash-fallback"


@dataclass
class EmbeddingResult:
    vector: List[float]
    provider: str
    is_fallback: bool = False
    truncated: bool = False


class EmbeddingProvider(ABC):
    """One remote embedding backend."""

    name: str = "unknown"

    @abstractmethod
    def is_available(self) -> bool:
        """True when the provider is configured (API key present)."""

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """Return the raw vector produced by the backend."""


class OpenRouterEmbeddingProvider(EmbeddingProvider):
    """OpenAI-compatible embeddings endpoint exposed by OpenRouter."""

    name = "openrouter"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, base_url: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.OPENROUTER_API_KEY
        self.model = model or settings.OPENROUTER_EMBEDDING_MODEL
        self.base_url = base_url or settings.OPENROUTER_BASE_URL
        self._embeddings: Optional[OpenAIEmbeddings] = None

    def is_available(self) -> bool:
        return bool(self.api_key)

    @property
    def embeddings(self) -> OpenAIEmbeddings:
        if self._embeddings is None:
            self._embeddings = OpenAIEmbeddings(
                model=self.model,
                openai_api_key=self.api_key,
                openai_api_base=self.base_url,
                check_embedding_ctx_length=False,  # no tiktoken lookup for non-OpenAI hosts
                default_headers={
                    "HTTP-Referer": settings.OPENROUTER_REFERER,
                    "X-Title": "BZR Portal",
                },
            )
        return self._embeddings

    async def embed(self, text: str) -> List[float]:
        return await self.embeddings.aembed_query(text)


class OpenAIEmbeddingProvider(OpenRouterEmbeddingProvider):
    """Direct OpenAI embeddings."""

    name = "openai"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        super().__init__(
            api_key=api_key if api_key is not None else settings.OPENAI_API_KEY,
            model=model or settings.OPENAI_EMBEDDING_MODEL,
        )

    @property
    def embeddings(self) -> OpenAIEmbeddings:
        if self._embeddings is None:
            self._embeddings = OpenAIEmbeddings(
                model=self.model,
                openai_api_key=self.api_key
            )
        return self._embeddings


class GeminiEmbeddingProvider(EmbeddingProvider):
    """Google Gemini ``embedText`` REST endpoint."""

    name = "gemini"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, base_url: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.model = model or settings.GEMINI_EMBEDDING_MODEL
        self.base_url = (base_url or settings.GEMINI_BASE_URL).rstrip("/")

    def is_available(self) -> bool:
        return bool(self.api_key)

    async def embed(self, text: str) -> List[float]:
        url = f"{self.base_url}/models/{self.model}:embedText"
        async with httpx.AsyncClient() as client:
            response = await client.post(url, params={"key": self.api_key}, json={"text": text})
            response.raise_for_status()
            payload = response.json()

        values = (payload.get("embedding") or {}).get("values")
        if not values:
            raise ValueError("Gemini response did not contain embedding values")
        return values


PROVIDER_TYPES = {
    "openrouter": OpenRouterEmbeddingProvider,
    "gemini": GeminiEmbeddingProvider,
    "openai": OpenAIEmbeddingProvider,
}


def build_providers(names: Optional[str] = None) -> List[EmbeddingProvider]:
    """Instantiate providers from a comma separated list, keeping its order."""
    providers = []
    for name in (names if names is not None else settings.EMBEDDING_PROVIDERS).split(","):
        name = name.strip().lower()
        if not name:
            continue
        provider_type = PROVIDER_TYPES.get(name)
        if provider_type is None:
            logger.warning(f"Unknown embedding provider '{name}' in EMBEDDING_PROVIDERS, skipping")
            continue
        providers.append(provider_type())
    return providers


def normalize_dimension(vector: Sequence[float], dimension: int) -> List[float]:
    """Pad with trailing zeros or truncate so the vector has exactly `dimension` components."""
    values = [float(v) for v in vector]
    if len(values) > dimension:
        return values[:dimension]
    if len(values) < dimension:
        return values + [0.0] * (dimension - len(values))
    return values


def fallback_embedding(text: str, dimension: int) -> List[float]:
    """Deterministic unit-length pseudo-embedding derived from a hash of the text.

    Identical texts map to identical vectors, so exact-text lookups still
    match; there is no semantic similarity between different texts.
    """
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    seed = int.from_bytes(digest[:4], "big") or 1
    vector = np.sin(seed * np.arange(1, dimension + 1, dtype=np.float64)) * 0.5
    norm = np.linalg.norm(vector)
    if norm == 0:
        vector = np.full(dimension, 1.0)
        norm = np.linalg.norm(vector)
    return (vector / norm).tolist()


class EmbeddingService:
    """Runs the provider chain and applies truncation, caching and the fallback."""

    def __init__(
        self,
        providers: Optional[List[EmbeddingProvider]] = None,
        cache: Optional[CacheService] = cache_service,
        dimension: Optional[int] = None,
        fallback_enabled: Optional[bool] = None,
        max_chars: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.providers = providers if providers is not None else build_providers()
        self.cache = cache
        self.dimension = dimension or settings.VECTOR_DIMENSION
        self.fallback_enabled = settings.EMBEDDING_FALLBACK_ENABLED if fallback_enabled is None else fallback_enabled
        self.max_chars = max_chars or settings.EMBEDDING_MAX_CHARS
        self.timeout_seconds = timeout_seconds or settings.EMBEDDING_TIMEOUT_SECONDS

    async def embed(self, text: str) -> List[float]:
        result = await self.embed_with_info(text)
        return result.vector

    async def embed_with_info(self, text: str) -> EmbeddingResult:
        truncated = len(text) > self.max_chars
        if truncated:
            logger.info(f"Truncating embedding input from {len(text)} to {self.max_chars} characters")
            text = text[:self.max_chars]

        errors: Dict[str, str] = {}
        for provider in self.providers:
            if not provider.is_available():
                logger.debug(f"Embedding provider {provider.name} not configured, skipping")
                continue

            if self.cache is not None:
                cached = await self.cache.get_embedding(text, model=provider.name)
                if cached:
                    logger.debug(f"Cache hit for {provider.name} embedding: {text[:50]}...")
                    return EmbeddingResult(
                        vector=normalize_dimension(cached, self.dimension),
                        provider=provider.name,
                        truncated=truncated
                    )

            try:
                raw = await asyncio.wait_for(provider.embed(text), timeout=self.timeout_seconds)
            except asyncio.TimeoutError:
                errors[provider.name] = f"timed out after {self.timeout_seconds}s"
                logger.warning(f"Embedding provider {provider.name} timed out after {self.timeout_seconds}s")
                continue
            except Exception as e:
                errors[provider.name] = str(e)
                logger.warning(f"Embedding provider {provider.name} failed: {e}")
                continue

            vector = normalize_dimension(raw, self.dimension)
            if len(raw) != self.dimension:
                logger.info(f"Normalized {provider.name} embedding from {len(raw)} to {self.dimension} dimensions")
            if self.cache is not None:
                await self.cache.set_embedding(text, vector, model=provider.name)
            return EmbeddingResult(vector=vector, provider=provider.name, truncated=truncated)

        if not self.fallback_enabled:
            raise EmbeddingUnavailableError(f"All embedding providers failed: {errors or 'none configured'}")

        logger.warning(
            f"All embedding providers failed ({errors or 'none configured'}), "
            f"using deterministic hash fallback; semantic search quality is degraded"
        )
        return EmbeddingResult(
            vector=fallback_embedding(text, self.dimension),
            provider=FALLBACK_PROVIDER_NAME,
            is_fallback=True,
            truncated=truncated
        )


embedding_service = EmbeddingService()
