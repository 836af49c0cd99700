import logging
import os
from logging.handlers import RotatingFileHandler
from config.config import Config


def setup_logger(name='replaycoach'):
    """Set up application logger with file and console handlers"""
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO))

    # Module import can run this more than once (reloads, test collection)
    if logger.handlers:
        return logger

    log_dir = os.path.dirname(Config.LOG_FILE)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir)

    # File handler with rotation
    file_handler = RotatingFileHandler(
        Config.LOG_FILE,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10
    )
    file_handler.setLevel(logging.INFO)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    return logger


def get_logger(name=None):
    """Get logger instance under the application namespace"""
    if not name:
        return logging.getLogger('replaycoach')
    if name == 'replaycoach' or name.startswith('replaycoach.'):
        return logging.getLogger(name)
    return logging.getLogger(f'replaycoach.{name}')


def mask_code(code: str) -> str:
    """Partially mask a secret-ish value for log output"""
    if not code:
        return ''
    return code[:3] + '***'


# Create default logger
logger = setup_logger()
