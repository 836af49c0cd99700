from urllib.parse import urlencode
from flask import Blueprint, current_app, request, jsonify, redirect, session
from config.config import Config
from replaycoach.errors import ValidationFailed, handle_api_error
from replaycoach.middleware.auth import require_auth
from replaycoach.schemas import LoginRequest
from replaycoach.services.auth_service import (
    AuthService, DiscordAuthService, DISCORD_LINK_COOKIE, OAUTH_STATE_COOKIE
)
from replaycoach.utils.rate_limiter import RateLimiter
from replaycoach.utils.logger import get_logger

bp = Blueprint('auth', __name__)
logger = get_logger(__name__)
auth_service = AuthService()
discord_auth_service = DiscordAuthService()

login_limiter = RateLimiter(
    Config.LOGIN_RATE_LIMIT,
    Config.LOGIN_RATE_WINDOW_SECONDS,
    key_prefix='login',
    message='Too many login attempts. Please try again later.'
)


def set_cookie(response, name, value, max_age):
    response.set_cookie(
        name,
        value,
        max_age=max_age,
        httponly=True,
        samesite='Lax',
        secure=current_app.config.get('SESSION_COOKIE_SECURE', False)
    )


def with_query(path: str, **params) -> str:
    separator = '&' if '?' in path else '?'
    return f"{path}{separator}{urlencode(params)}"


@bp.route('/login', methods=['POST'])
def login():
    """Login admin"""
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationFailed("Email and password are required")

        login_limiter.hit((data.get('email') or '').strip().lower())
        credentials = LoginRequest.model_validate(data)

        result = auth_service.authenticate(credentials.email, credentials.password)
        login_limiter.reset(credentials.email)
        session['token'] = result['token']

        return jsonify({'success': True, **result}), 200

    except Exception as e:
        return handle_api_error(e, 'log in')


@bp.route('/logout', methods=['POST'])
def logout():
    """Forget the session token; bearer tokens are discarded client-side"""
    session.pop('token', None)
    return jsonify({'success': True, 'message': 'Logged out'}), 200


@bp.route('/session', methods=['GET'])
@require_auth
def current_session(current_admin):
    try:
        admin = auth_service.get_admin(current_admin['admin_id'])
        return jsonify({'success': True, 'authenticated': True, 'admin': admin}), 200

    except Exception as e:
        return handle_api_error(e, 'get session')


# Discord account linking

@bp.route('/discord/authorize', methods=['GET'])
def discord_authorize():
    try:
        result = discord_auth_service.start(request.args.get('returnTo'))
        response = redirect(result['url'])
        set_cookie(response, OAUTH_STATE_COOKIE, result['cookie'], result['maxAge'])
        return response

    except Exception as e:
        return handle_api_error(e, 'start Discord login')


@bp.route('/discord/callback', methods=['GET'])
def discord_callback():
    """Discord redirects here; failures go back to the site with ?discord=error"""
    if request.args.get('error'):
        logger.info(f"Discord authorization declined: {request.args.get('error')}")
        response = redirect(with_query('/', discord='error'))
        response.delete_cookie(OAUTH_STATE_COOKIE)
        return response

    try:
        result = discord_auth_service.complete(
            request.args.get('code'),
            request.args.get('state'),
            request.cookies.get(OAUTH_STATE_COOKIE)
        )
    except Exception as e:
        logger.warning(f"Discord login failed: {str(e)}")
        response = redirect(with_query('/', discord='error'))
        response.delete_cookie(OAUTH_STATE_COOKIE)
        return response

    response = redirect(with_query(result['returnTo'], discord='connected'))
    response.delete_cookie(OAUTH_STATE_COOKIE)
    set_cookie(response, DISCORD_LINK_COOKIE, result['cookie'], result['maxAge'])
    return response


@bp.route('/discord/status', methods=['GET'])
def discord_status():
    identity = DiscordAuthService.read_identity(request.cookies.get(DISCORD_LINK_COOKIE))
    if not identity:
        return jsonify({'success': True, 'connected': False}), 200
    return jsonify({'success': True, 'connected': True, **identity}), 200


@bp.route('/discord/disconnect', methods=['POST'])
def discord_disconnect():
    response = jsonify({'success': True, 'connected': False})
    response.delete_cookie(DISCORD_LINK_COOKIE)
    return response, 200
