from functools import wraps
from flask import request, jsonify, session
from replaycoach.utils.security import verify_token
from replaycoach.utils.logger import get_logger

logger = get_logger(__name__)


def get_request_token():
    """Bearer token from the Authorization header, else the one stored at login"""
    auth_header = request.headers.get('Authorization')
    if auth_header:
        parts = auth_header.split()
        if len(parts) != 2 or parts[0] != 'Bearer':
            return None
        return parts[1]
    return session.get('token')


def require_auth(f):
    """Decorator to require an admin token"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = get_request_token()
        if not token:
            return jsonify({'success': False, 'error': 'Unauthorized'}), 401

        payload = verify_token(token)
        if not payload or payload.get('role') != 'admin':
            logger.info(f"Rejected admin request to {request.path}")
            return jsonify({'success': False, 'error': 'Unauthorized'}), 401

        # Add admin info to kwargs
        return f(current_admin=payload, *args, **kwargs)

    return decorated_function
