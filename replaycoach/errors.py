from flask import jsonify
from pydantic import ValidationError
from replaycoach.utils.logger import get_logger

logger = get_logger(__name__)


class ApiError(Exception):
    """Base error carrying the HTTP status and a user-facing message"""
    status_code = 500

    def __init__(self, message: str, status_code: int = None, details=None, extra: dict = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        self.extra = extra or {}

    def to_dict(self):
        body = {'success': False, 'error': self.message}
        if self.details:
            body['details'] = self.details
        body.update(self.extra)
        return body


class ValidationFailed(ApiError):
    status_code = 400


class Unauthorized(ApiError):
    status_code = 401

    def __init__(self, message: str = 'Unauthorized', **kwargs):
        super().__init__(message, **kwargs)


class NotFound(ApiError):
    status_code = 404


class Conflict(ApiError):
    """Business rule violation, e.g. overlapping slots or an existing payment"""
    status_code = 400


class DuplicateEntry(ApiError):
    status_code = 409


class RateLimited(ApiError):
    status_code = 429

    def __init__(self, message: str, retry_after: int, limit: int = None, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after
        self.limit = limit


class IntegrationError(ApiError):
    """External provider failure; the provider's message is only logged"""
    status_code = 500


def validation_details(error: ValidationError):
    """Flatten pydantic errors into [{field, message}]"""
    details = []
    for item in error.errors():
        field = '.'.join(str(part) for part in item.get('loc', ()))
        message = item.get('msg', 'Invalid value')
        if message.startswith('Value error, '):
            message = message[len('Value error, '):]
        details.append({'field': field, 'message': message})
    return details


def handle_api_error(error: Exception, action: str):
    """Build the JSON error envelope for an exception raised inside a route"""
    if isinstance(error, ValidationError):
        logger.info(f"Validation failed while trying to {action}")
        return jsonify({
            'success': False,
            'error': 'Validation failed',
            'details': validation_details(error)
        }), 400

    if isinstance(error, RateLimited):
        logger.warning(f"Rate limit hit while trying to {action}")
        response = jsonify(error.to_dict())
        response.headers['Retry-After'] = str(error.retry_after)
        if error.limit is not None:
            response.headers['X-RateLimit-Limit'] = str(error.limit)
            response.headers['X-RateLimit-Remaining'] = '0'
        return response, error.status_code

    if isinstance(error, IntegrationError):
        logger.error(f"Integration failure while trying to {action}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    if isinstance(error, ApiError):
        logger.info(f"Failed to {action}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    logger.exception(f"Error while trying to {action}: {str(error)}")
    return jsonify({'success': False, 'error': 'Internal server error'}), 500


def register_error_handlers(app):
    """Give Flask-level errors the same JSON envelope as route errors"""

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'success': False, 'error': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({'success': False, 'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def internal_error(e):
        logger.error(f"Unhandled server error: {str(e)}")
        return jsonify({'success': False, 'error': 'Internal server error'}), 500
