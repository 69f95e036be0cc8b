from sqlalchemy import Column, String, Text, DateTime, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
import uuid

from bzr_portal.core.database import Base


BLOG_STATUSES = ("draft", "pending_approval", "published", "rejected")


class BlogPost(Base):
    """Blog post, either written by an editor or drafted by the assistant."""
    __tablename__ = "blog_posts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    content = Column(Text, nullable=False)
    excerpt = Column(Text)
    image_url = Column(String(1024))
    category = Column(String(100), index=True)
    tags = Column(JSON, default=list)
    author_id = Column(String(255))
    original_question = Column(Text)
    status = Column(String(20), default="draft", index=True)  # draft, pending_approval, published, rejected
    call_to_action = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
