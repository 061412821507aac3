"""Key-value application settings, used for admin overrides of code defaults."""

from __future__ import annotations

from typing import Any, List

from sqlalchemy.sql import func

from ..core.extensions import db


class AppSettings(db.Model):
    """Unified key-value store for runtime-editable settings.

    A row overrides the code-level default of the same key.
    """

    __tablename__ = 'app_settings'

    key = db.Column(db.String(100), primary_key=True)
    value = db.Column(db.JSON, nullable=False)

    # Categorization
    category = db.Column(db.String(50), default='system')  # 'system', 'rate_table'

    # Metadata
    data_type = db.Column(db.String(50), default='int')  # 'int', 'float', 'json'
    description = db.Column(db.Text)

    # Audit
    updated_at = db.Column(db.DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    updated_by = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=True)

    updater = db.relationship('User', foreign_keys=[updated_by], lazy=True)

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """Get a setting value by key, or ``default`` when the row is missing."""
        setting = db.session.get(cls, key)
        if setting is not None and setting.value is not None:
            return setting.value
        return default

    @classmethod
    def set(cls, key: str, value: Any, category: str = None,
            data_type: str = None, description: str = None,
            user_id: int = None) -> 'AppSettings':
        """Set or update a setting. The caller commits."""
        setting = db.session.get(cls, key)
        if setting is None:
            setting = cls(
                key=key,
                value=value,
                category=category or 'system',
                data_type=data_type or 'int',
                description=description,
                updated_by=user_id
            )
            db.session.add(setting)
        else:
            setting.value = value
            if category is not None:
                setting.category = category
            if data_type is not None:
                setting.data_type = data_type
            if description is not None:
                setting.description = description
            if user_id is not None:
                setting.updated_by = user_id
        return setting

    @classmethod
    def get_by_category(cls, category: str) -> List['AppSettings']:
        """Get all settings in a category."""
        return cls.query.filter_by(category=category).all()

    def __repr__(self) -> str:
        return f'<AppSettings {self.key}={self.value}>'
