from .logger import setup_logger, get_logger, mask_code
from .security import hash_password, verify_password, generate_token, verify_token
from .validators import validate_email, validate_time, validate_slug, slugify

__all__ = [
    'setup_logger', 'get_logger', 'mask_code',
    'hash_password', 'verify_password', 'generate_token', 'verify_token',
    'validate_email', 'validate_time', 'validate_slug', 'slugify'
]
