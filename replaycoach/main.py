import os
from flask import Flask
from config.config import config
from replaycoach.database import init_db
from replaycoach.errors import register_error_handlers
from replaycoach.routes import admin, auth, public, site, webhooks
from replaycoach.services.reminder_service import ReminderScheduler
from replaycoach.utils.logger import get_logger

logger = get_logger(__name__)


def create_app(config_name: str = None) -> Flask:
    """Application factory"""
    config_name = config_name or os.environ.get('FLASK_ENV', 'default')
    app_config = config.get(config_name, config['default'])

    app = Flask(__name__)
    app.config.from_object(app_config)

    init_db()

    app.register_blueprint(public.bp, url_prefix='/api')
    app.register_blueprint(auth.bp, url_prefix='/api/auth')
    app.register_blueprint(admin.bp, url_prefix='/api/admin')
    app.register_blueprint(webhooks.bp, url_prefix='/api/webhooks')
    app.register_blueprint(site.bp)
    register_error_handlers(app)

    if app.config.get('REMINDER_SCHEDULER_ENABLED'):
        scheduler = ReminderScheduler()
        scheduler.start()
        app.extensions['reminder_scheduler'] = scheduler

    @app.route('/api/health')
    def health():
        return {'status': 'ok'}

    logger.info(f"Replay Coach started ({config_name})")
    return app
