from sqlalchemy import Column, String, DateTime, Boolean, Text, JSON
from .base import BaseModel, isoformat


class BlogPost(BaseModel):
    __tablename__ = 'blog_posts'

    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False)
    content = Column(Text, nullable=False)
    excerpt = Column(Text)
    tags = Column(JSON, nullable=False, default=list)
    published = Column(Boolean, nullable=False, default=False, index=True)
    published_at = Column(DateTime, index=True)

    def to_dict(self, include_content=True):
        data = {
            'id': self.id,
            'title': self.title,
            'slug': self.slug,
            'excerpt': self.excerpt,
            'tags': list(self.tags or []),
            'published': self.published,
            'publishedAt': isoformat(self.published_at or self.created_at),
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }
        if include_content:
            data['content'] = self.content
        return data
