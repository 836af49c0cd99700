import requests
from typing import Dict, Optional
from urllib.parse import urlencode
from config.config import Config
from replaycoach.utils.logger import get_logger

logger = get_logger(__name__)

AUTHORIZE_URL = "https://discord.com/api/oauth2/authorize"
REQUEST_TIMEOUT = 10


class DiscordClient:
    """Wrapper for the Discord REST API: OAuth account linking and bot direct messages"""

    def __init__(self):
        self.base_url = Config.DISCORD_API_URL
        self.client_id = Config.DISCORD_CLIENT_ID
        self.client_secret = Config.DISCORD_CLIENT_SECRET
        self.redirect_uri = Config.DISCORD_REDIRECT_URI
        self.bot_token = Config.DISCORD_BOT_TOKEN
        self.guild_id = Config.DISCORD_GUILD_ID

        if not self.bot_token:
            logger.warning("Discord bot token not configured")

    @property
    def oauth_configured(self) -> bool:
        return bool(self.client_id and self.client_secret and self.redirect_uri)

    def _make_request(self, method: str, endpoint: str, headers: Dict = None,
                      json: Dict = None, data: Dict = None) -> Optional[Dict]:
        """Make API request to Discord"""
        url = f"{self.base_url}{endpoint}"

        try:
            response = requests.request(
                method=method,
                url=url,
                headers=headers or {},
                json=json,
                data=data,
                timeout=REQUEST_TIMEOUT
            )
            response.raise_for_status()
            if response.status_code == 204 or not response.content:
                return {}
            return response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Discord API error on {method} {endpoint}: {str(e)}")
            if getattr(e, 'response', None) is not None:
                logger.error(f"Response: {e.response.text}")
            return None

    def _bot_headers(self) -> Dict:
        return {
            'Authorization': f"Bot {self.bot_token}",
            'Content-Type': 'application/json'
        }

    # OAuth

    def get_authorize_url(self, state: str) -> str:
        """Build the consent screen URL for the identify (+ guilds.join) scopes"""
        scopes = ['identify']
        if self.guild_id:
            scopes.append('guilds.join')

        params = {
            'client_id': self.client_id,
            'redirect_uri': self.redirect_uri,
            'response_type': 'code',
            'scope': ' '.join(scopes),
            'state': state,
        }
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    def exchange_code(self, code: str) -> Optional[Dict]:
        """Exchange an authorization code for an access token"""
        return self._make_request(
            'POST',
            '/oauth2/token',
            headers={'Content-Type': 'application/x-www-form-urlencoded'},
            data={
                'client_id': self.client_id,
                'client_secret': self.client_secret,
                'grant_type': 'authorization_code',
                'code': code,
                'redirect_uri': self.redirect_uri,
            }
        )

    def get_current_user(self, access_token: str) -> Optional[Dict]:
        """Fetch the user the access token belongs to"""
        return self._make_request(
            'GET',
            '/users/@me',
            headers={'Authorization': f"Bearer {access_token}"}
        )

    def add_guild_member(self, user_id: str, access_token: str) -> bool:
        """Add the user to the coaching server so the bot can DM them"""
        if not self.guild_id or not self.bot_token:
            return False

        result = self._make_request(
            'PUT',
            f"/guilds/{self.guild_id}/members/{user_id}",
            headers=self._bot_headers(),
            json={'access_token': access_token}
        )
        return result is not None

    # Bot messages

    def send_direct_message(self, user_id: str, content: str) -> Dict:
        """Send a DM from the bot. Never raises.

        Returns:
            {'success': bool, 'error': str or None}
        """
        if not self.bot_token:
            return {'success': False, 'error': 'Discord bot token not configured'}
        if not user_id:
            return {'success': False, 'error': 'No Discord user to message'}

        channel = self._make_request(
            'POST',
            '/users/@me/channels',
            headers=self._bot_headers(),
            json={'recipient_id': str(user_id)}
        )
        if not channel or not channel.get('id'):
            return {'success': False, 'error': 'Could not open a DM channel with the Discord user'}

        message = self._make_request(
            'POST',
            f"/channels/{channel['id']}/messages",
            headers=self._bot_headers(),
            json={'content': content[:2000]}
        )
        if message is None:
            return {'success': False, 'error': 'Discord rejected the message'}

        return {'success': True, 'error': None}


def format_discord_username(user: Dict) -> str:
    """username#1234 for legacy accounts, plain username otherwise"""
    username = user.get('username') or ''
    discriminator = user.get('discriminator')
    if discriminator and discriminator != '0':
        return f"{username}#{discriminator}"
    return username
