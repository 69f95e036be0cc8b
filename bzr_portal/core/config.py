"""Application configuration from environment variables."""
import os
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App Configuration
    APP_NAME: str = "bzr-portal"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    API_VERSION: str = "v1"
    LOG_LEVEL: str = "INFO"

    # FastAPI
    HOST: str = "0.0.0.0"
    PORT: int = int(os.getenv("PORT", "8000"))

    # PostgreSQL (Supabase exposes a regular Postgres connection)
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "bzr_portal"
    POSTGRES_USER: str = "bzr_user"
    POSTGRES_PASSWORD: str = "bzr_password"
    DATABASE_URL: Optional[str] = None

    # Redis
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_URL: Optional[str] = None

    def get_database_url(self) -> str:
        """Get or construct database URL from components."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:"
            f"{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:"
            f"{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    def get_redis_url(self) -> str:
        """Get or construct Redis URL from components."""
        if self.REDIS_URL:
            return self.REDIS_URL
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/1"
    KNOWLEDGE_SYNC_SCHEDULE: str = "0 3 * * *"

    # LLM / embedding providers
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-3-small"
    OPENROUTER_API_KEY: Optional[str] = None
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    OPENROUTER_CHAT_MODEL: str = "anthropic/claude-3.5-sonnet"
    OPENROUTER_EMBEDDING_MODEL: str = "openai/text-embedding-3-small"
    OPENROUTER_REFERER: str = "https://bzr-portal.replit.app"
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_CHAT_MODEL: str = "gemini-1.5-pro"
    GEMINI_EMBEDDING_MODEL: str = "embedding-001"
    MAX_TOKENS: int = 2000
    TEMPERATURE: float = 0.7
    LLM_TIMEOUT_SECONDS: float = 60.0

    # Embedding chain
    EMBEDDING_PROVIDERS: str = "openrouter,gemini"  # Comma separated, in priority order
    EMBEDDING_MAX_CHARS: int = 12000
    EMBEDDING_TIMEOUT_SECONDS: float = 30.0
    EMBEDDING_FALLBACK_ENABLED: bool = True
    EMBEDDING_CACHE_TTL_SECONDS: int = 3600

    # Wasabi (S3 compatible)
    WASABI_ACCESS_KEY_ID: Optional[str] = None
    WASABI_SECRET_ACCESS_KEY: Optional[str] = None
    WASABI_REGION: str = "eu-central-1"
    WASABI_ENDPOINT: str = "https://s3.eu-central-1.wasabisys.com"
    WASABI_KNOWLEDGE_BASE_BUCKET: str = "bzr-knowledge-base-bucket"
    WASABI_USER_DOCUMENTS_BUCKET: str = "bzr-user-documents-bucket"

    # Vector Search
    VECTOR_DIMENSION: int = 1536
    TOP_K_RESULTS: int = 5
    SIMILARITY_THRESHOLD: float = 0.7
    CONTEXT_CHARS_PER_DOCUMENT: int = 1500

    # Ingestion: "insert" always creates a new record, "upsert" replaces the record for the same bucket/key
    INGEST_DUPLICATE_POLICY: str = "insert"

    # Upload queue: finished jobs kept in memory for status lookups
    UPLOAD_FINISHED_JOB_RETENTION: int = 1000

    # Assistant
    FREE_DAILY_QUESTION_LIMIT: int = 3
    BLOG_COVERAGE_THRESHOLD: int = 3  # Existing posts needed before no new draft is created

    class Config:
        """Pydantic config."""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
