"""Blog post search and drafting of posts from assistant answers."""
import logging
import random
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from sqlalchemy import select

from bzr_portal.core.config import settings
from bzr_portal.core.database import get_async_session
from bzr_portal.models.blog_post import BlogPost
from bzr_portal.services.serbian_text import transliterate_cyrillic

logger = logging.getLogger(__name__)

STOP_WORDS = {
    'i', 'u', 'na', 'za', 'sa', 'od', 'do', 'je', 'su', 'koji', 'šta', 'kako',
    'da', 'li', 'ne', 'to', 'a', 'ali', 'ili',
}

SEARCH_KEYWORDS = {
    'bzr', 'bezbednost', 'zdravlje', 'rad', 'zakon', 'pravilnik', 'propisi', 'rizik',
    'opasnost', 'zaštita', 'obuka', 'instrukcije', 'mere',
}

TITLE_PREFIXES = [
    "Vodič: ",
    "Ključno za znati: ",
    "Stručni savet: ",
    "Važno za bezbednost: ",
    "Kako pravilno: ",
]

CATEGORY_IMAGES = {
    'bezbednost': 'https://images.unsplash.com/photo-1599059813005-11265ba4b4ce?q=80&w=800',
    'regulative': 'https://images.unsplash.com/photo-1589391886645-d51941baf7fb?q=80&w=800',
    'zaštita-zdravlja': 'https://images.unsplash.com/photo-1576091160550-2173dba999ef?q=80&w=800',
    'procedure': 'https://images.unsplash.com/photo-1507925921958-8a62f3d1a50d?q=80&w=800',
    'procena-rizika': 'https://images.unsplash.com/photo-1454165804606-c3d57bc86b40?q=80&w=800',
    'obuke-zaposlenih': 'https://images.unsplash.com/photo-1515187029135-18ee286d815b?q=80&w=800',
    'novosti': 'https://images.unsplash.com/photo-1504711434969-e33886168f5c?q=80&w=800',
    'saveti': 'https://images.unsplash.com/photo-1521790361543-f645cf042ec4?q=80&w=800',
    'propisi': 'https://images.unsplash.com/photo-1589829545856-d10d557cf95f?q=80&w=800',
    'general': 'https://images.unsplash.com/photo-1590402494610-2c378a9114c6?q=80&w=800',
}

DEFAULT_TAGS = ['bezbednost', 'bzr', 'zaštita']

CALL_TO_ACTION = "Želite li više informacija o bezbednosti i zdravlju na radu? Kontaktirajte nas!"

HIGH_RELEVANCE_SCORE = 0.5
RELAXED_RELEVANCE_SCORE = 0.3


def create_slug(title: str, max_length: int = 100) -> str:
    """URL slug: Latin script, lower case, dashes for whitespace, nothing but word characters."""
    slug = transliterate_cyrillic(title or "").lower().strip()
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"[^\w\-]+", "", slug)
    slug = re.sub(r"-{2,}", "-", slug)
    return slug.strip("-")[:max_length]


def generate_unique_slug(base_slug: str, existing_slugs: Sequence[str]) -> str:
    existing = set(existing_slugs)
    if base_slug not in existing:
        return base_slug

    counter = 1
    while f"{base_slug}-{counter}" in existing:
        counter += 1
    return f"{base_slug}-{counter}"


def create_excerpt(text: str, max_length: int = 150) -> str:
    """Short teaser cut at a sentence boundary where possible."""
    if len(text) <= max_length:
        return text

    sentences = re.split(r"(?<=[.!?])\s+", text)
    excerpt = sentences[0]
    i = 1
    while len(excerpt) < 100 and i < len(sentences):
        excerpt += " " + sentences[i]
        i += 1

    if len(excerpt) < 50:
        return text[:max_length] + "..."
    if len(excerpt) > max_length:
        return excerpt[:max_length] + "..."
    return excerpt + "..."


def generate_title(question: str, choice: Callable[[list], str] = random.choice) -> str:
    """Short questions become the title as-is; long ones are condensed to their key words."""
    words = question.split()
    if len(words) <= 8:
        return question[:1].upper() + question[1:]

    key_words = " ".join([word for word in words if len(word) > 3][:5])
    title = key_words[:1].upper() + key_words[1:]
    if len(title) < 20:
        title = choice(TITLE_PREFIXES) + title
    return title


def image_for_category(category: Optional[str]) -> str:
    return CATEGORY_IMAGES.get(category or "general", CATEGORY_IMAGES['general'])


def extract_keywords(query: str) -> List[str]:
    normalized = re.sub(r"[.,?!;:\"'()\[\]{}]", " ", query.lower())
    words = re.sub(r"\s+", " ", normalized).strip().split(" ")

    keywords = []
    for word in words:
        if (len(word) > 3 and word not in STOP_WORDS) or word in SEARCH_KEYWORDS:
            if word not in keywords:
                keywords.append(word)
    return keywords


def relevance_score(post: BlogPost, keywords: List[str], query: str) -> float:
    """Weighted phrase and keyword overlap, normalized to [0, 1]."""
    title = (post.title or "").lower()
    content = (post.content or "").lower()
    excerpt = (post.excerpt or "").lower()
    category = (post.category or "").lower()
    tags = [tag.lower() for tag in (post.tags or [])]
    phrase = query.lower()

    score = 0.0
    if phrase in title:
        score += 0.7
    if phrase in content:
        score += 0.5
    if phrase in excerpt:
        score += 0.6

    for keyword in keywords:
        if keyword in title:
            score += 0.3
        if any(keyword in tag for tag in tags):
            score += 0.2
        if keyword in category:
            score += 0.2
        if keyword in content:
            score += 0.1

    max_possible = 0.7 + 0.5 + 0.6 + len(keywords) * (0.3 + 0.2 + 0.2 + 0.1)
    return min(score / max(1.0, max_possible), 1.0)


@dataclass
class ExistingCoverage:
    posts: List[BlogPost] = field(default_factory=list)
    sufficient: bool = False


class BlogService:
    def __init__(self, session_factory=get_async_session, coverage_threshold: Optional[int] = None):
        self.session_factory = session_factory
        self.coverage_threshold = coverage_threshold or settings.BLOG_COVERAGE_THRESHOLD

    async def _published_posts(self) -> List[BlogPost]:
        async with self.session_factory() as session:
            result = await session.execute(select(BlogPost).where(BlogPost.status == "published"))
            return list(result.scalars().all())

    def rank_posts(self, posts: List[BlogPost], query: str, min_score: float) -> List[BlogPost]:
        keywords = extract_keywords(query)
        scored = [(relevance_score(post, keywords, query), post) for post in posts]
        relevant = [item for item in scored if item[0] >= min_score]
        relevant.sort(key=lambda item: item[0], reverse=True)
        return [post for _, post in relevant]

    async def find_existing_coverage(self, query: str) -> ExistingCoverage:
        """Published posts answering the query, and whether there are enough to skip a new draft."""
        posts = await self._published_posts()
        if not posts:
            return ExistingCoverage()

        strong = self.rank_posts(posts, query, HIGH_RELEVANCE_SCORE)
        if len(strong) >= self.coverage_threshold:
            return ExistingCoverage(posts=strong, sufficient=True)

        relaxed = self.rank_posts(posts, query, RELAXED_RELEVANCE_SCORE)
        if len(relaxed) >= self.coverage_threshold:
            return ExistingCoverage(posts=relaxed, sufficient=True)

        return ExistingCoverage(posts=strong, sufficient=False)

    async def create_draft_from_answer(
        self,
        question: str,
        answer: str,
        user_id: Optional[str] = None,
        category: str = "general",
        tags: Optional[List[str]] = None,
    ) -> str:
        """Save the answer as a post awaiting editor approval; returns its id."""
        title = generate_title(question)
        base_slug = create_slug(title)

        async with self.session_factory() as session:
            result = await session.execute(
                select(BlogPost.slug).where(BlogPost.slug.like(f"{base_slug}%"))
            )
            slug = generate_unique_slug(base_slug, list(result.scalars().all()))

            post = BlogPost(
                title=title,
                slug=slug,
                content=answer,
                excerpt=create_excerpt(answer, 150),
                image_url=image_for_category(category),
                category=category,
                tags=list(tags or []) + DEFAULT_TAGS,
                author_id=user_id,
                original_question=question,
                status="pending_approval",
                call_to_action=CALL_TO_ACTION,
            )
            session.add(post)
            await session.commit()
            await session.refresh(post)

        logger.info(f"Created blog draft {post.id} '{title}' awaiting approval")
        return str(post.id)


blog_service = BlogService()
