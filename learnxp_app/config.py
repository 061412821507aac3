# File: learnxp_app/config.py
# Application configuration, read from the environment (.env supported)

import os
from dotenv import load_dotenv

load_dotenv()

# Project root (the directory holding learnxp_app/)
BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))

# SQLite database path used when SQLALCHEMY_DATABASE_URI is not set
DATABASE_PATH = os.path.join(BASE_DIR, "database", "learnxp.db")


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """LearnXP application configuration."""

    SECRET_KEY = os.environ.get('SECRET_KEY')
    if not SECRET_KEY:
        # Fallback for development, though env is preferred
        SECRET_KEY = 'dev-secret-key-replace-in-production'

    SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI') or f'sqlite:///{DATABASE_PATH}'
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'connect_args': {'timeout': 30},
    }
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_DIR = os.environ.get('LOG_DIR') or os.path.join(BASE_DIR, 'logs')
    LOG_TO_FILE = _env_flag('LOG_TO_FILE', True)
    LOG_JSON = _env_flag('LOG_JSON', False)

    # Calendar date used for daily activity when a user has no timezone set
    SYSTEM_TIMEZONE = os.environ.get('SYSTEM_TIMEZONE', 'UTC')

    # Reward pipeline
    RATE_TABLE_CACHE_SECONDS = int(os.environ.get('RATE_TABLE_CACHE_SECONDS', 300))
    ROLLUP_MAX_RETRIES = int(os.environ.get('ROLLUP_MAX_RETRIES', 3))
    BACKGROUND_TASKS_ASYNC = _env_flag('BACKGROUND_TASKS_ASYNC', True)

    # Integrity audit
    SCHEDULER_ENABLED = _env_flag('SCHEDULER_ENABLED', True)
    INTEGRITY_AUDIT_HOUR = int(os.environ.get('INTEGRITY_AUDIT_HOUR', 3))
    VERIFY_ALL_TIME_BUDGET_SECONDS = float(os.environ.get('VERIFY_ALL_TIME_BUDGET_SECONDS', 20))

    SKP_HISTORY_PAGE_SIZE = 20

    @classmethod
    def init_app(cls, app):
        """Create the directories the app writes to."""
        if cls.SQLALCHEMY_DATABASE_URI == f'sqlite:///{DATABASE_PATH}':
            os.makedirs(os.path.dirname(DATABASE_PATH), exist_ok=True)
        if cls.LOG_TO_FILE:
            os.makedirs(cls.LOG_DIR, exist_ok=True)
