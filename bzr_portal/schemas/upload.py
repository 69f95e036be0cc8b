"""Upload queue schemas."""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any


class UploadAccepted(BaseModel):
    job_id: str = Field(..., alias="jobId")
    file_path: str = Field(..., alias="filePath")
    status: str = "queued"

    class Config:
        populate_by_name = True


class JobStatus(BaseModel):
    id: str
    file_path: str = Field(..., alias="filePath")
    mime_type: str = Field(..., alias="mimeType")
    original_filename: str = Field(..., alias="originalFilename")
    owner_user_id: Optional[str] = Field(None, alias="ownerUserId")
    bucket: str
    progress: int = Field(..., ge=0, le=100)
    status: str
    error: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
    created_at: str = Field(..., alias="createdAt")
    updated_at: str = Field(..., alias="updatedAt")

    class Config:
        populate_by_name = True
