import pytest
from datetime import timedelta
from unittest.mock import patch
from replaycoach.database import DatabaseManager
from replaycoach.errors import DuplicateEntry, IntegrationError, Unauthorized, ValidationFailed
from replaycoach.models import Admin
from replaycoach.services.auth_service import AuthService, DiscordAuthService, safe_return_path
from replaycoach.utils.security import read_cookie, sign_cookie, verify_token


@pytest.fixture
def auth_service():
    """Create auth service instance"""
    return AuthService()


@pytest.fixture
def discord_auth():
    service = DiscordAuthService()
    service.discord.client_id = 'client'
    service.discord.client_secret = 'secret'
    service.discord.redirect_uri = 'https://coach.example.com/api/auth/discord/callback'
    service.discord.guild_id = None
    return service


class TestAuthService:
    """Test admin authentication"""

    def test_authenticate_admin(self, auth_service):
        admin = auth_service.create_admin('Coach@Example.com', 'SecurePass123', 'Coach')
        assert admin['email'] == 'coach@example.com'

        result = auth_service.authenticate('coach@example.com', 'SecurePass123')
        assert result['admin']['id'] == admin['id']

        payload = verify_token(result['token'])
        assert payload['admin_id'] == admin['id']
        assert payload['role'] == 'admin'

    def test_wrong_password(self, auth_service):
        auth_service.create_admin('coach@example.com', 'SecurePass123')

        with pytest.raises(Unauthorized) as exc:
            auth_service.authenticate('coach@example.com', 'wrong')
        assert exc.value.message == 'Invalid email or password'

    def test_unknown_email(self, auth_service):
        with pytest.raises(Unauthorized):
            auth_service.authenticate('nobody@example.com', 'SecurePass123')

    def test_duplicate_admin(self, auth_service):
        auth_service.create_admin('coach@example.com', 'SecurePass123')
        with pytest.raises(DuplicateEntry):
            auth_service.create_admin('COACH@example.com', 'OtherPass123')
        assert DatabaseManager(Admin).count() == 1


class TestSignedCookies:
    """Test purpose-bound signed cookies"""

    def test_round_trip(self):
        value = sign_cookie('discord_link', {'discordId': '1'}, timedelta(minutes=5))
        assert read_cookie('discord_link', value)['discordId'] == '1'

    def test_purpose_mismatch(self):
        value = sign_cookie('discord_state', {'state': 'x'}, timedelta(minutes=5))
        assert read_cookie('discord_link', value) is None

    def test_expired_or_tampered(self):
        expired = sign_cookie('discord_link', {'discordId': '1'}, timedelta(seconds=-1))
        assert read_cookie('discord_link', expired) is None
        assert read_cookie('discord_link', 'not-a-token') is None
        assert read_cookie('discord_link', None) is None


class TestDiscordAuth:
    """Test Discord account linking"""

    @pytest.mark.parametrize('value, expected', [
        ('/pricing', '/pricing'),
        ('/submit?type=vod-review', '/submit?type=vod-review'),
        ('https://evil.example.com', '/'),
        ('//evil.example.com', '/'),
        ('/\\evil.example.com', '/'),
        (None, '/'),
    ])
    def test_return_path(self, value, expected):
        assert safe_return_path(value) == expected

    def test_start_requires_configuration(self, discord_auth):
        discord_auth.discord.client_id = None
        with pytest.raises(IntegrationError):
            discord_auth.start('/')

    def test_start(self, discord_auth):
        result = discord_auth.start('/pricing')

        state = read_cookie('discord_state', result['cookie'])
        assert state['returnTo'] == '/pricing'
        assert f"state={state['state']}" in result['url']
        assert 'scope=identify' in result['url']
        assert result['maxAge'] == 600

    @patch('replaycoach.integrations.discord_client.DiscordClient.get_current_user')
    @patch('replaycoach.integrations.discord_client.DiscordClient.exchange_code')
    def test_complete(self, mock_exchange, mock_user, discord_auth):
        mock_exchange.return_value = {'access_token': 'token'}
        mock_user.return_value = {'id': '555', 'username': 'player', 'discriminator': '0042'}
        started = discord_auth.start('/submit')
        state = read_cookie('discord_state', started['cookie'])['state']

        result = discord_auth.complete('code', state, started['cookie'])

        assert result['returnTo'] == '/submit'
        assert result['identity'] == {'discordId': '555', 'discordUsername': 'player#0042'}
        assert DiscordAuthService.read_identity(result['cookie']) == result['identity']
        assert result['maxAge'] == 7 * 24 * 60 * 60

    def test_complete_rejects_state_mismatch(self, discord_auth):
        started = discord_auth.start('/')
        with pytest.raises(ValidationFailed):
            discord_auth.complete('code', 'other-state', started['cookie'])
        with pytest.raises(ValidationFailed):
            discord_auth.complete('code', 'anything', None)

    @patch('replaycoach.integrations.discord_client.DiscordClient.exchange_code')
    def test_complete_exchange_failure(self, mock_exchange, discord_auth):
        mock_exchange.return_value = None
        started = discord_auth.start('/')
        state = read_cookie('discord_state', started['cookie'])['state']

        with pytest.raises(IntegrationError):
            discord_auth.complete('code', state, started['cookie'])
