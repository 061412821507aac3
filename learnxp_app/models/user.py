"""User model: the identity every ledger row hangs off."""

from __future__ import annotations

from flask_login import UserMixin
from sqlalchemy.sql import func
from werkzeug.security import check_password_hash, generate_password_hash

from ..core.extensions import db


class User(UserMixin, db.Model):
    """Application user model."""

    __tablename__ = 'users'

    ROLE_ADMIN = 'admin'
    ROLE_USER = 'user'
    ROLE_LABELS = {
        ROLE_ADMIN: 'Administrator',
        ROLE_USER: 'Learner',
    }

    user_id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    user_role = db.Column(db.String(50), default=ROLE_USER, nullable=False)
    timezone = db.Column(db.String(50), default='UTC')
    # Issued by the external auth service, accepted as a bearer token
    api_token = db.Column(db.String(128), unique=True, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())
    last_seen = db.Column(db.DateTime(timezone=True))

    def get_id(self):
        return str(self.user_id)

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self) -> bool:
        return self.user_role == self.ROLE_ADMIN

    def to_dict(self) -> dict[str, object]:
        return {
            'user_id': self.user_id,
            'username': self.username,
            'email': self.email,
            'user_role': self.user_role,
            'timezone': self.timezone,
        }

    def __repr__(self) -> str:
        return f'<User {self.username}>'
