import pytest
from datetime import datetime, timedelta
from replaycoach.errors import DuplicateEntry, NotFound
from replaycoach.schemas import AdminBlogQuery, BlogPostCreate, BlogPostQuery, BlogPostUpdate
from replaycoach.services.blog_service import BlogService, make_excerpt
from replaycoach.utils.validators import slugify


@pytest.fixture
def blog_service():
    return BlogService()


def publish(service, title, tags=(), when=None):
    return service.create_post(
        BlogPostCreate(title=title, content=f'{title} body', tags=list(tags), published=True),
        now=when
    )


class TestBlogPublishing:
    """Test admin post management"""

    def test_slug_from_title(self, blog_service):
        post = blog_service.create_post(BlogPostCreate(title='Why You Lose Team Fights!', content='...'))
        assert post['slug'] == 'why-you-lose-team-fights'
        assert slugify('  Tank -- Tips  ') == 'tank-tips'

    def test_duplicate_slug(self, blog_service):
        blog_service.create_post(BlogPostCreate(title='Tank tips', content='...'))
        with pytest.raises(DuplicateEntry):
            blog_service.create_post(BlogPostCreate(title='Tank Tips', content='again'))

    def test_publish_sets_date_once(self, blog_service):
        draft = blog_service.create_post(BlogPostCreate(title='Draft', content='...'))
        with pytest.raises(NotFound):
            blog_service.get_published('draft')

        first = datetime(2030, 1, 1, 12, 0)
        post = blog_service.update_post(draft['id'], BlogPostUpdate(published=True), now=first)
        assert post['published'] is True
        assert post['publishedAt'] == first.isoformat()

        # Editing a published post keeps its date
        post = blog_service.update_post(
            draft['id'], BlogPostUpdate(title='Final', published=True), now=first + timedelta(days=1)
        )
        assert post['title'] == 'Final'
        assert post['publishedAt'] == first.isoformat()

        post = blog_service.update_post(draft['id'], BlogPostUpdate(published=False))
        assert post['published'] is False
        assert blog_service.list_published(BlogPostQuery())['posts'] == []

    def test_update_slug_conflict(self, blog_service):
        blog_service.create_post(BlogPostCreate(title='One', content='...'))
        two = blog_service.create_post(BlogPostCreate(title='Two', content='...'))
        with pytest.raises(DuplicateEntry):
            blog_service.update_post(two['id'], BlogPostUpdate(slug='one'))

    def test_excerpt_defaults_to_content(self, blog_service):
        post = blog_service.create_post(BlogPostCreate(title='Long', content='word ' * 100))
        assert post['excerpt'].endswith('…')
        assert len(post['excerpt']) <= 161
        assert make_excerpt('short text') == 'short text'

    def test_admin_list_filters(self, blog_service):
        publish(blog_service, 'Live')
        blog_service.create_post(BlogPostCreate(title='Hidden', content='...'))

        assert blog_service.list_posts(AdminBlogQuery())['pagination']['total'] == 2
        drafts = blog_service.list_posts(AdminBlogQuery(published='false'))['posts']
        assert [p['title'] for p in drafts] == ['Hidden']

    def test_delete(self, blog_service):
        post = publish(blog_service, 'Gone')
        blog_service.delete_post(post['id'])
        with pytest.raises(NotFound):
            blog_service.get_post(post['id'])


class TestPublicBlog:
    """Test published post listing"""

    def test_newest_first_with_pagination(self, blog_service):
        start = datetime(2030, 1, 1)
        for day in range(3):
            publish(blog_service, f'Post {day}', when=start + timedelta(days=day))

        result = blog_service.list_published(BlogPostQuery(limit=2))
        assert [p['title'] for p in result['posts']] == ['Post 2', 'Post 1']
        assert 'content' not in result['posts'][0]
        assert result['pagination'] == {'page': 1, 'limit': 2, 'total': 3, 'totalPages': 2, 'hasMore': True}

        second = blog_service.list_published(BlogPostQuery(limit=2, page=2))
        assert [p['title'] for p in second['posts']] == ['Post 0']

    def test_tag_filter_and_tags(self, blog_service):
        publish(blog_service, 'Tanking', tags=['Tank', 'fundamentals'])
        publish(blog_service, 'Healing', tags=['Support', 'fundamentals'])
        blog_service.create_post(BlogPostCreate(title='Secret', content='...', tags=['Hidden']))

        tank_posts = blog_service.list_published(BlogPostQuery(tag='Tank'))['posts']
        assert [p['title'] for p in tank_posts] == ['Tanking']

        tags = blog_service.get_tags()
        assert tags['tags'] == ['fundamentals', 'Support', 'Tank']
        assert tags['counts']['fundamentals'] == 2

    def test_sitemap_entries(self, blog_service):
        publish(blog_service, 'Listed')
        blog_service.create_post(BlogPostCreate(title='Unlisted', content='...'))

        assert [e['slug'] for e in blog_service.sitemap_entries()] == ['listed']
