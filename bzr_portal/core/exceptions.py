"""Exception hierarchy for the document pipeline.

Every error raised by the pipeline derives from BZRPortalError so the API
layer can map the whole family in one place. Unsupported document formats
are not errors: the extractor embeds a sentinel text instead.
"""
from typing import Optional


class BZRPortalError(Exception):
    """Base exception for pipeline errors."""

    def __init__(self, message: str = "Unexpected pipeline error", provider_name: Optional[str] = None):
        self.message = message
        self.provider_name = provider_name
        super().__init__(message)

    def __str__(self) -> str:
        if self.provider_name:
            return f"[{self.provider_name}] {self.message}"
        return self.message


class ExtractionError(BZRPortalError):
    """Raised when a document cannot be parsed (corrupt or mislabeled file)."""

    def __init__(self, message: str, filename: Optional[str] = None, content_type: Optional[str] = None):
        self.filename = filename
        self.content_type = content_type
        super().__init__(message)


class OCRNotSupportedError(ExtractionError, NotImplementedError):
    """Raised for image documents: no OCR backend is wired yet."""


class EmbeddingUnavailableError(BZRPortalError):
    """Raised when every embedding provider failed and the fallback is disabled."""


class IndexUnavailableError(BZRPortalError):
    """Raised when the vector backing store rejects a read or write."""


class StorageError(BZRPortalError):
    """Base class for object storage failures."""


class StorageUnavailableError(StorageError):
    """Raised when object storage cannot be reached or refuses the request."""


class ObjectNotFoundError(StorageError):
    """Raised when the requested bucket/key does not exist."""

    def __init__(self, bucket: str, key: str):
        self.bucket = bucket
        self.key = key
        super().__init__(f"Object not found: {bucket}/{key}", provider_name="s3")


class LLMUnavailableError(BZRPortalError):
    """Raised when no LLM provider produced an answer."""


class IngestionError(BZRPortalError):
    """Raised by single-document ingestion, naming the stage that failed."""

    def __init__(self, stage: str, key: str, cause: Exception):
        self.stage = stage
        self.key = key
        self.cause = cause
        super().__init__(f"Ingestion of '{key}' failed during {stage}: {cause}")
