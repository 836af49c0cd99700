import time
from threading import Lock
from xml.sax.saxutils import escape
from flask import Blueprint, Response, abort, render_template, request
from config.config import Config
from replaycoach.errors import NotFound
from replaycoach.schemas import BlogPostQuery
from replaycoach.services.blog_service import BlogService
from replaycoach.utils.logger import get_logger

bp = Blueprint('site', __name__)
logger = get_logger(__name__)
blog_service = BlogService()

STATIC_PAGES = [
    ('/', 'weekly', '1.0'),
    ('/pricing', 'monthly', '0.9'),
    ('/blog', 'daily', '0.8'),
]

ROBOTS_DISALLOW = ['/admin/', '/api/', '/checkout/']


class SitemapCache:
    """Rendered sitemap kept for a fixed number of seconds"""

    def __init__(self, ttl_seconds: int, clock=time.time):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._xml = None
        self._expires_at = 0
        self._lock = Lock()

    def get(self, build):
        with self._lock:
            now = self.clock()
            if self._xml is None or now >= self._expires_at:
                self._xml = build()
                self._expires_at = now + self.ttl_seconds
            return self._xml

    def clear(self):
        with self._lock:
            self._xml = None


sitemap_cache = SitemapCache(Config.SITEMAP_CACHE_SECONDS)


def build_sitemap() -> str:
    base = Config.APP_URL.rstrip('/')
    urls = [
        f"  <url><loc>{escape(base + path)}</loc><changefreq>{freq}</changefreq><priority>{priority}</priority></url>"
        for path, freq, priority in STATIC_PAGES
    ]
    for entry in blog_service.sitemap_entries():
        lastmod = entry['updatedAt'].date().isoformat()
        urls.append(
            f"  <url><loc>{escape(base + '/blog/' + entry['slug'])}</loc>"
            f"<lastmod>{lastmod}</lastmod><changefreq>monthly</changefreq><priority>0.7</priority></url>"
        )

    logger.info(f"Built sitemap with {len(urls)} urls")
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">\n'
        + '\n'.join(urls)
        + '\n</urlset>\n'
    )


@bp.route('/sitemap.xml')
def sitemap():
    response = Response(sitemap_cache.get(build_sitemap), mimetype='application/xml')
    response.headers['Cache-Control'] = f"public, max-age={Config.SITEMAP_CACHE_SECONDS}"
    return response


@bp.route('/robots.txt')
def robots():
    lines = ['User-agent: *', 'Allow: /']
    lines += [f"Disallow: {path}" for path in ROBOTS_DISALLOW]
    lines += ['', f"Sitemap: {Config.APP_URL.rstrip('/')}/sitemap.xml", '']
    return Response('\n'.join(lines), mimetype='text/plain')


# Pages

@bp.route('/')
def home():
    return render_template('home.html', packages=Config.COACHING_PACKAGES)


@bp.route('/pricing')
def pricing():
    return render_template('pricing.html', packages=Config.COACHING_PACKAGES)


@bp.route('/blog')
def blog_index():
    page = max(1, request.args.get('page', 1, type=int) or 1)
    query = BlogPostQuery(page=page, tag=request.args.get('tag') or None)
    result = blog_service.list_published(query)
    return render_template(
        'blog_index.html',
        posts=result['posts'],
        pagination=result['pagination'],
        tag=query.tag,
        tags=blog_service.get_tags()['tags']
    )


@bp.route('/blog/<slug>')
def blog_post(slug):
    try:
        post = blog_service.get_published(slug)
    except NotFound:
        abort(404)
    return render_template('blog_post.html', post=post)


@bp.route('/checkout/success')
def checkout_success():
    return render_template('checkout_success.html', session_id=request.args.get('session_id'))


@bp.route('/checkout/cancel')
def checkout_cancel():
    return render_template('checkout_cancel.html')
