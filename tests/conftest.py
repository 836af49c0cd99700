import os
import tempfile

# Settings are read at import time, so point them at throw-away locations first
_tmp_dir = tempfile.mkdtemp(prefix='replaycoach-tests-')
os.environ['DATABASE_URL'] = f"sqlite:///{os.path.join(_tmp_dir, 'test.db')}"
os.environ['LOG_FILE'] = os.path.join(_tmp_dir, 'test.log')
os.environ['FLASK_ENV'] = 'testing'
os.environ['REMINDER_SCHEDULER_ENABLED'] = 'false'
os.environ['BUSINESS_TIMEZONE'] = 'America/New_York'
os.environ['STRIPE_WEBHOOK_SECRET'] = 'whsec_test'
os.environ['STRIPE_PRICE_ID_REVIEW_ASYNC'] = 'price_review_async'
os.environ['STRIPE_PRICE_ID_VOD_REVIEW'] = 'price_vod_review'
os.environ['STRIPE_PRICE_ID_LIVE_COACHING'] = 'price_live_coaching'
os.environ['ADMIN_DISCORD_USER_ID'] = '1000'
os.environ['ADMIN_EMAIL'] = 'coach@example.com'
os.environ['DISCORD_BOT_TOKEN'] = ''
os.environ['SENDGRID_API_KEY'] = ''

import pytest  # noqa: E402
from replaycoach.database import drop_db, init_db  # noqa: E402


@pytest.fixture(autouse=True)
def database():
    """Fresh tables for every test"""
    init_db()
    yield
    drop_db()


@pytest.fixture
def app():
    from replaycoach.main import create_app
    from replaycoach.routes import auth, public

    app = create_app('testing')
    public.contact_limiter.reset()
    public.friend_code_limiter.reset()
    auth.login_limiter.reset()
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers():
    from replaycoach.utils.security import generate_token
    token = generate_token({'admin_id': 1, 'email': 'coach@example.com', 'role': 'admin'})
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def submission_data():
    """Factory for a valid replay submission body (camelCase, as the browser sends it)"""
    def build(**overrides):
        data = {
            'email': 'Player@Example.com',
            'discordTag': 'player#1234',
            'coachingType': 'review-async',
            'rank': 'Gold',
            'role': 'Tank',
            'hero': 'Reinhardt',
            'replays': [{'code': 'abc123', 'mapName': "King's Row", 'notes': 'Lost the last fight'}],
        }
        data.update(overrides)
        return data
    return build
