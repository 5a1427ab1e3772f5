"""
PageTrainer Configuration Module

Configuration classes with values loaded from environment variables.
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_list(name: str, default: str = '') -> list:
    """Comma separated environment variable as a list."""
    raw = os.environ.get(name, default)
    return [item.strip() for item in raw.split(',') if item.strip()]


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


class BaseConfig:
    """Base configuration with safe defaults."""

    APP_NAME = 'PageTrainer'
    APP_VERSION = '1.0.0'

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Transport
    SCANNER_TIMEOUT = int(os.environ.get('SCANNER_TIMEOUT', 30))
    SCANNER_CONCURRENT_REQUESTS = int(os.environ.get('SCANNER_CONCURRENT_REQUESTS', 10))
    SCANNER_DELAY_BETWEEN_REQUESTS = float(os.environ.get('SCANNER_DELAY', 0.5))  # seconds
    SCANNER_VERIFY_SSL = _env_bool('SCANNER_VERIFY_SSL', True)

    # Crawl frontier
    SCANNER_MAX_PAGES = int(os.environ.get('SCANNER_MAX_PAGES', 100))
    SCANNER_LINK_COUNT_LIMIT = int(os.environ.get('SCANNER_LINK_COUNT_LIMIT', 0))  # 0 = unlimited

    # Training
    TRAINER_MAX_TRAININGS_PER_URL = int(os.environ.get('TRAINER_MAX_TRAININGS_PER_URL', 25))
    TRAINER_FINGERPRINT = _env_bool('TRAINER_FINGERPRINT', True)

    # Redundancy and exclusion rules
    TRAINER_REDUNDANT_PATTERNS = _env_list('TRAINER_REDUNDANT_PATTERNS')
    TRAINER_EXCLUDE_PATTERNS = _env_list('TRAINER_EXCLUDE_PATTERNS', r'logout,signout,log-out,sign-out')
    TRAINER_EXCLUDE_EXTENSIONS = _env_list(
        'TRAINER_EXCLUDE_EXTENSIONS',
        '.css,.js,.jpg,.jpeg,.png,.gif,.svg,.ico,.woff,.woff2,.ttf,.eot,.pdf,.zip,.gz,.mp3,.mp4'
    )
    TRAINER_ALLOWED_CONTENT_TYPES = _env_list('TRAINER_ALLOWED_CONTENT_TYPES')
    TRAINER_DENIED_CONTENT_TYPES = _env_list('TRAINER_DENIED_CONTENT_TYPES')
    TRAINER_MAX_RESPONSE_SIZE = int(os.environ.get('TRAINER_MAX_RESPONSE_SIZE', 5 * 1024 * 1024))


class DevelopmentConfig(BaseConfig):
    """Development configuration."""

    LOG_LEVEL = 'DEBUG'


class TestingConfig(BaseConfig):
    """Testing configuration."""

    LOG_LEVEL = 'DEBUG'

    SCANNER_TIMEOUT = 5
    SCANNER_DELAY_BETWEEN_REQUESTS = 0.0
    SCANNER_MAX_PAGES = 10

    TRAINER_FINGERPRINT = False
    TRAINER_REDUNDANT_PATTERNS = []
    TRAINER_EXCLUDE_PATTERNS = []


class ProductionConfig(BaseConfig):
    """Production configuration."""

    LOG_LEVEL = 'WARNING'


# Configuration dictionary for easy access
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': BaseConfig
}
