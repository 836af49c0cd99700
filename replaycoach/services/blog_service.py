import math
from collections import Counter
from datetime import datetime
from typing import Dict, List
from sqlalchemy import func
from replaycoach.database import get_db
from replaycoach.errors import DuplicateEntry, NotFound, ValidationFailed
from replaycoach.models import BlogPost
from replaycoach.schemas import AdminBlogQuery, BlogPostCreate, BlogPostQuery, BlogPostUpdate
from replaycoach.utils.logger import get_logger
from replaycoach.utils.validators import slugify

logger = get_logger(__name__)

SORT_COLUMNS = {
    'createdAt': BlogPost.created_at,
    'updatedAt': BlogPost.updated_at,
    'publishedAt': BlogPost.published_at,
    'title': BlogPost.title,
}


def pagination(page: int, limit: int, total: int) -> Dict:
    total_pages = math.ceil(total / limit) if total else 0
    return {
        'page': page,
        'limit': limit,
        'total': total,
        'totalPages': total_pages,
        'hasMore': page < total_pages,
    }


def make_excerpt(content: str, length: int = 160) -> str:
    text = ' '.join(content.split())
    if len(text) <= length:
        return text
    return text[:length].rsplit(' ', 1)[0] + '…'


class BlogService:
    """Public blog reads and admin post management"""

    # Public

    def list_published(self, query: BlogPostQuery) -> Dict:
        with get_db() as db:
            posts = db.query(BlogPost).filter(BlogPost.published == True).order_by(  # noqa: E712
                func.coalesce(BlogPost.published_at, BlogPost.created_at).desc()
            ).all()

            if query.tag:
                posts = [p for p in posts if query.tag in (p.tags or [])]

            offset = (query.page - 1) * query.limit
            page = posts[offset:offset + query.limit]
            return {
                'posts': [p.to_dict(include_content=False) for p in page],
                'pagination': pagination(query.page, query.limit, len(posts)),
            }

    def get_tags(self) -> Dict:
        with get_db() as db:
            counts = Counter()
            for (tags,) in db.query(BlogPost.tags).filter(BlogPost.published == True).all():  # noqa: E712
                counts.update(tags or [])

            tags = sorted(counts, key=str.lower)
            return {'tags': tags, 'counts': dict(counts)}

    def get_published(self, slug: str) -> Dict:
        with get_db() as db:
            post = db.query(BlogPost).filter_by(slug=slug, published=True).first()
            if not post:
                raise NotFound("Blog post not found")
            return post.to_dict()

    def sitemap_entries(self) -> List[Dict]:
        with get_db() as db:
            posts = db.query(BlogPost.slug, BlogPost.updated_at).filter(
                BlogPost.published == True  # noqa: E712
            ).order_by(BlogPost.updated_at.desc()).all()
            return [{'slug': slug, 'updatedAt': updated_at} for slug, updated_at in posts]

    # Admin

    def list_posts(self, query: AdminBlogQuery) -> Dict:
        with get_db() as db:
            q = db.query(BlogPost)
            if query.published != 'all':
                q = q.filter(BlogPost.published == (query.published == 'true'))

            total = q.count()
            column = SORT_COLUMNS[query.sort]
            q = q.order_by(column.asc() if query.order == 'asc' else column.desc(), BlogPost.id.desc())
            posts = q.offset((query.page - 1) * query.limit).limit(query.limit).all()

            return {
                'posts': [p.to_dict(include_content=False) for p in posts],
                'pagination': pagination(query.page, query.limit, total),
            }

    def get_post(self, post_id: int) -> Dict:
        with get_db() as db:
            post = db.get(BlogPost, post_id)
            if not post:
                raise NotFound("Blog post not found")
            return post.to_dict()

    def _check_slug_free(self, db, slug: str, exclude_id: int = None):
        q = db.query(BlogPost).filter(BlogPost.slug == slug)
        if exclude_id is not None:
            q = q.filter(BlogPost.id != exclude_id)
        if q.first():
            raise DuplicateEntry("A post with this slug already exists")

    def create_post(self, data: BlogPostCreate, now: datetime = None) -> Dict:
        now = now or datetime.utcnow()
        slug = data.slug or slugify(data.title)
        if not slug:
            raise ValidationFailed("Could not derive a slug from the title")

        with get_db() as db:
            self._check_slug_free(db, slug)

            post = BlogPost(
                title=data.title,
                slug=slug,
                content=data.content,
                excerpt=data.excerpt or make_excerpt(data.content),
                tags=data.tags,
                published=data.published,
                published_at=now if data.published else None
            )
            db.add(post)
            db.flush()

            logger.info(f"Blog post {post.id} created ({slug}, published={post.published})")
            return post.to_dict()

    def update_post(self, post_id: int, data: BlogPostUpdate, now: datetime = None) -> Dict:
        """Partial update; first publish stamps published_at, unpublish clears it"""
        now = now or datetime.utcnow()
        with get_db() as db:
            post = db.get(BlogPost, post_id)
            if not post:
                raise NotFound("Blog post not found")

            fields = data.model_fields_set
            if 'slug' in fields and data.slug and data.slug != post.slug:
                self._check_slug_free(db, data.slug, exclude_id=post.id)
                post.slug = data.slug
            if 'title' in fields and data.title:
                post.title = data.title
            if 'content' in fields and data.content:
                post.content = data.content
            if 'excerpt' in fields:
                post.excerpt = data.excerpt or make_excerpt(post.content)
            if 'tags' in fields and data.tags is not None:
                post.tags = data.tags
            if 'published' in fields and data.published is not None:
                if data.published and not post.published:
                    post.published_at = post.published_at or now
                elif not data.published:
                    post.published_at = None
                post.published = data.published

            db.flush()
            logger.info(f"Blog post {post.id} updated: {sorted(fields)}")
            return post.to_dict()

    def delete_post(self, post_id: int):
        with get_db() as db:
            post = db.get(BlogPost, post_id)
            if not post:
                raise NotFound("Blog post not found")
            db.delete(post)
            logger.info(f"Blog post {post_id} deleted")
