"""Core database models for LearnXP.

Module-owned tables live in ``modules/<name>/models.py``; they are
registered with the metadata by ``core.bootstrap.initialize_database``.
"""

from ..core.extensions import db

from .user import User
from .app_settings import AppSettings

__all__ = ['db', 'User', 'AppSettings']
