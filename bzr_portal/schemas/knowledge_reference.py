"""Knowledge reference migration schemas."""
from pydantic import BaseModel, Field
from typing import List


class MigrationError(BaseModel):
    title: str
    error: str


class MigrationResponse(BaseModel):
    success: bool
    total: int
    processed: int
    successful: int
    failed: int
    errors: List[MigrationError] = Field(default_factory=list)
