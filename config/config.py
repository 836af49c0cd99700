import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    DATABASE_URL = os.environ.get('DATABASE_URL') or 'sqlite:///replaycoach.db'
    SQLALCHEMY_DATABASE_URI = DATABASE_URL

    # API Keys
    STRIPE_SECRET_KEY = os.environ.get('STRIPE_SECRET_KEY')
    STRIPE_WEBHOOK_SECRET = os.environ.get('STRIPE_WEBHOOK_SECRET')
    SENDGRID_API_KEY = os.environ.get('SENDGRID_API_KEY')
    SENDGRID_FROM_EMAIL = os.environ.get('SENDGRID_FROM_EMAIL', 'coaching@replaycoach.gg')

    # Discord (OAuth link + bot DMs)
    DISCORD_CLIENT_ID = os.environ.get('DISCORD_CLIENT_ID')
    DISCORD_CLIENT_SECRET = os.environ.get('DISCORD_CLIENT_SECRET')
    DISCORD_REDIRECT_URI = os.environ.get('DISCORD_REDIRECT_URI')
    DISCORD_BOT_TOKEN = os.environ.get('DISCORD_BOT_TOKEN')
    DISCORD_GUILD_ID = os.environ.get('DISCORD_GUILD_ID')
    DISCORD_API_URL = 'https://discord.com/api/v10'
    DISCORD_OAUTH_STATE_MINUTES = 10
    DISCORD_LINK_DAYS = 7

    # Application Settings
    APP_URL = os.environ.get('APP_URL', 'http://localhost:5000')
    BUSINESS_TIMEZONE = os.environ.get('BUSINESS_TIMEZONE', 'America/New_York')
    SESSION_LENGTH_MINUTES = 60
    BOOKING_LEAD_MINUTES = 15

    # Admin Settings
    ADMIN_EMAIL = os.environ.get('ADMIN_EMAIL')
    ADMIN_DISCORD_USER_ID = os.environ.get('ADMIN_DISCORD_USER_ID')

    # Rate Limiting
    CONTACT_RATE_LIMIT = int(os.environ.get('CONTACT_RATE_LIMIT', '5'))
    CONTACT_RATE_WINDOW_SECONDS = 60 * 60
    LOGIN_RATE_LIMIT = 5
    LOGIN_RATE_WINDOW_SECONDS = 15 * 60

    # Token Settings
    ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24 * 30  # 30 days

    # Reminders
    REMINDER_SCHEDULER_ENABLED = os.environ.get('REMINDER_SCHEDULER_ENABLED', 'true').lower() == 'true'
    REMINDER_INTERVAL_MINUTES = 5
    REMINDER_WINDOW_MINUTES = 5

    # Sitemap
    SITEMAP_CACHE_SECONDS = 60 * 60

    # Coaching packages (prices in dollars)
    COACHING_PACKAGES = {
        'review-async': {
            'name': 'Review on My Time',
            'description': 'Async VOD review - submit your replay codes and get a detailed video review',
            'price': 25,
            'price_id': os.environ.get('STRIPE_PRICE_ID_REVIEW_ASYNC'),
            'requires_schedule': False,
        },
        'vod-review': {
            'name': 'VOD Review',
            'description': 'Live VOD review session - watch together as we analyze your gameplay',
            'price': 40,
            'price_id': os.environ.get('STRIPE_PRICE_ID_VOD_REVIEW'),
            'requires_schedule': True,
        },
        'live-coaching': {
            'name': 'Live Coaching',
            'description': 'Real-time coaching while you play',
            'price': 50,
            'price_id': os.environ.get('STRIPE_PRICE_ID_LIVE_COACHING'),
            'requires_schedule': True,
        },
    }

    # Logging
    LOG_FILE = os.environ.get('LOG_FILE', 'logs/replaycoach.log')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    DEBUG = True
    TESTING = True
    REMINDER_SCHEDULER_ENABLED = False


class ProductionConfig(Config):
    DEBUG = False
    TESTING = False
    SESSION_COOKIE_SECURE = True


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}
