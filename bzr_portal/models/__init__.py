from bzr_portal.models.vector_document import VectorDocument
from bzr_portal.models.blog_post import BlogPost, BLOG_STATUSES
from bzr_portal.models.knowledge_reference import KnowledgeReference

__all__ = ["VectorDocument", "BlogPost", "BLOG_STATUSES", "KnowledgeReference"]
