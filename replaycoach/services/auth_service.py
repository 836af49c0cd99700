from datetime import timedelta
from typing import Dict, Optional
from replaycoach.database import DatabaseManager
from replaycoach.errors import DuplicateEntry, IntegrationError, NotFound, Unauthorized, ValidationFailed
from replaycoach.integrations import DiscordClient
from replaycoach.integrations.discord_client import format_discord_username
from replaycoach.models import Admin
from replaycoach.utils.security import (
    hash_password, verify_password, generate_token, generate_secure_token, sign_cookie, read_cookie
)
from config.config import Config
from replaycoach.utils.logger import get_logger

logger = get_logger(__name__)

OAUTH_STATE_COOKIE = 'discord_oauth_state'
DISCORD_LINK_COOKIE = 'discord_link'


class AuthService:
    """Service for admin authentication"""

    def __init__(self):
        self.admin_db = DatabaseManager(Admin)

    def authenticate(self, email: str, password: str) -> Dict:
        """Check credentials and issue an access token"""
        admin = self.admin_db.get_by(email=email.lower())

        if not admin or not verify_password(password, admin.password_hash):
            logger.warning(f"Failed admin login for {email}")
            raise Unauthorized("Invalid email or password")

        token = generate_token({
            'admin_id': admin.id,
            'email': admin.email,
            'role': 'admin'
        })

        logger.info(f"Admin {admin.id} logged in")
        return {'token': token, 'admin': admin.to_dict()}

    def create_admin(self, email: str, password: str, name: str = None) -> Dict:
        email = email.lower()
        if self.admin_db.get_by(email=email):
            raise DuplicateEntry("An admin with this email already exists")

        admin = self.admin_db.create(email=email, password_hash=hash_password(password), name=name)
        logger.info(f"Created admin {admin.id}")
        return admin.to_dict()

    def get_admin(self, admin_id: int) -> Dict:
        admin = self.admin_db.get(admin_id)
        if not admin:
            raise NotFound("Admin not found")
        return admin.to_dict()


def safe_return_path(value: Optional[str]) -> str:
    """Only same-site relative paths are allowed after the OAuth round trip"""
    if not value or not value.startswith('/') or value.startswith('//') or '\\' in value:
        return '/'
    return value


class DiscordAuthService:
    """Links a visitor's Discord account through OAuth for submission attribution.

    Nothing is stored server side: the CSRF state and the resulting identity
    both travel in signed cookies.
    """

    def __init__(self):
        self.discord = DiscordClient()

    def start(self, return_to: str = None) -> Dict:
        """Begin the OAuth flow.

        Returns:
            {'url': consent screen URL, 'cookie': signed state cookie value,
             'maxAge': cookie lifetime in seconds}
        """
        if not self.discord.oauth_configured:
            raise IntegrationError("Discord login is not configured")

        state = generate_secure_token()
        lifetime = timedelta(minutes=Config.DISCORD_OAUTH_STATE_MINUTES)
        cookie = sign_cookie('discord_state', {
            'state': state,
            'returnTo': safe_return_path(return_to)
        }, lifetime)

        return {
            'url': self.discord.get_authorize_url(state),
            'cookie': cookie,
            'maxAge': int(lifetime.total_seconds()),
        }

    def complete(self, code: str, state: str, state_cookie: str) -> Dict:
        """Finish the OAuth flow and build the link cookie.

        Returns:
            {'returnTo', 'cookie', 'maxAge', 'identity'}
        """
        stored = read_cookie('discord_state', state_cookie)
        if not stored or not state or stored.get('state') != state:
            raise ValidationFailed("Invalid or expired OAuth state")
        if not code:
            raise ValidationFailed("Missing authorization code")

        token = self.discord.exchange_code(code)
        if not token or not token.get('access_token'):
            raise IntegrationError("Failed to exchange Discord authorization code")

        user = self.discord.get_current_user(token['access_token'])
        if not user or not user.get('id'):
            raise IntegrationError("Failed to fetch Discord user")

        if self.discord.guild_id and not self.discord.add_guild_member(user['id'], token['access_token']):
            logger.warning(f"Could not add Discord user {user['id']} to the coaching server")

        identity = {
            'discordId': str(user['id']),
            'discordUsername': format_discord_username(user),
        }
        lifetime = timedelta(days=Config.DISCORD_LINK_DAYS)
        logger.info(f"Discord account {identity['discordId']} linked")

        return {
            'returnTo': stored.get('returnTo') or '/',
            'cookie': sign_cookie('discord_link', identity, lifetime),
            'maxAge': int(lifetime.total_seconds()),
            'identity': identity,
        }

    @staticmethod
    def read_identity(cookie: Optional[str]) -> Optional[Dict]:
        """Linked Discord identity from the link cookie, None when not linked"""
        payload = read_cookie('discord_link', cookie)
        if not payload or not payload.get('discordId'):
            return None
        return {
            'discordId': payload['discordId'],
            'discordUsername': payload.get('discordUsername'),
        }
