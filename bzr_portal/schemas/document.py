"""Document search and management schemas."""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime


class SearchRequest(BaseModel):
    """Similarity search over indexed documents."""
    query: str = Field(..., min_length=1)
    user_id: Optional[str] = Field(None, alias="userId")
    include_public: bool = Field(True, alias="includePublic")
    category: Optional[str] = None
    folder: Optional[str] = None
    file_types: Optional[List[str]] = Field(None, alias="fileTypes")
    tags: Optional[List[str]] = None
    limit: int = Field(5, ge=1, le=50)
    similarity_threshold: float = Field(0.7, ge=0.0, le=1.0, alias="similarityThreshold")

    class Config:
        populate_by_name = True


class SearchResult(BaseModel):
    id: str
    content: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    similarity: float


class SearchResponse(BaseModel):
    results: List[SearchResult] = Field(..., description="Matching documents, most similar first")
    total: int


class DocumentResponse(BaseModel):
    """Indexed document schema."""
    id: str = Field(..., description="Document ID")
    content: str = Field(..., description="Extracted text")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Document metadata")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    class Config:
        populate_by_name = True


class DocumentUpdate(BaseModel):
    """Content changes trigger re-embedding; metadata-only patches do not."""
    content: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
