"""Ingestion request and response schemas."""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict


class IngestMetadataIn(BaseModel):
    """Ownership and classification attached to an ingested document."""
    owner_user_id: Optional[str] = Field(None, alias="userId", description="Owner of the document")
    is_public: bool = Field(False, alias="isPublic", description="Visible to every user")
    category: Optional[str] = Field(None, description="Document category")
    folder: Optional[str] = Field(None, description="Folder inside the user's storage")
    tags: List[str] = Field(default_factory=list, description="Free-form tags")
    original_filename: Optional[str] = Field(None, alias="originalFilename", description="Filename shown to users")

    class Config:
        populate_by_name = True


class IngestRequest(BaseModel):
    """Single document ingestion request."""
    bucket: str = Field(..., description="Storage bucket")
    key: str = Field(..., description="Object key inside the bucket")
    metadata: IngestMetadataIn = Field(default_factory=IngestMetadataIn)


class IngestResponse(BaseModel):
    document_id: str = Field(..., alias="documentId")
    key: str

    class Config:
        populate_by_name = True


class BatchIngestRequest(BaseModel):
    documents: List[IngestRequest] = Field(..., description="Documents to ingest")


class BatchIngestError(BaseModel):
    key: str
    error: str


class BatchIngestResponse(BaseModel):
    total: int
    successful: int
    failed: int
    errors: List[BatchIngestError] = Field(default_factory=list)
    document_ids: Dict[str, List[str]] = Field(default_factory=dict, alias="documentIds")

    class Config:
        populate_by_name = True
