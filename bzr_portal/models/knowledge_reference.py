from sqlalchemy import Column, String, Text, DateTime, Boolean
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
import uuid

from bzr_portal.core.database import Base


class KnowledgeReference(Base):
    """External regulation/guide link that gets mirrored into the knowledge base bucket."""
    __tablename__ = "knowledge_references"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(500), nullable=False)
    url = Column(Text, nullable=False)
    category = Column(String(100))
    is_active = Column(Boolean, default=True, index=True)
    document_id = Column(UUID(as_uuid=True))  # vector_documents.id once indexed
    storage_key = Column(String(1024))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
