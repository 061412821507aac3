from sqlalchemy.sql import func

from ...core.extensions import db


class SKPTransaction(db.Model):
    """
    Append-only SKP ledger entry.

    ``source`` encodes the event type and originating id (``quiz_12``,
    ``course_40``, ``course_complete_py101``, ``streak_12days_v3``). It is
    unique per user, so replaying the same event cannot credit twice.
    """
    __tablename__ = 'skp_transactions'

    DIRECTION_EARNED = 'earned'
    DIRECTION_SPENT = 'spent'

    transaction_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=False, index=True)
    direction = db.Column(db.String(10), nullable=False, default=DIRECTION_EARNED)
    amount = db.Column(db.Integer, nullable=False)
    source = db.Column(db.String(200), nullable=False)
    description = db.Column(db.String(500))
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        db.UniqueConstraint('user_id', 'source', name='_user_skp_source_uc'),
        db.CheckConstraint('amount > 0', name='ck_skp_amount_positive'),
    )

    def to_dict(self):
        return {
            'transaction_id': self.transaction_id,
            'direction': self.direction,
            'amount': self.amount,
            'source': self.source,
            'description': self.description,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<SKPTransaction {self.user_id} {self.direction} {self.amount} {self.source}>'


class UserBadge(db.Model):
    """Badge earned by a user, one row per badge code."""
    __tablename__ = 'user_badges'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=False)
    badge_code = db.Column(db.String(150), nullable=False)
    title = db.Column(db.String(255))
    course_id = db.Column(db.String(100), nullable=True)
    earned_at = db.Column(db.DateTime(timezone=True), server_default=func.now())

    __table_args__ = (db.UniqueConstraint('user_id', 'badge_code', name='_user_badge_uc'),)

    def to_dict(self):
        return {
            'id': self.id,
            'badge_code': self.badge_code,
            'title': self.title,
            'course_id': self.course_id,
            'earned_at': self.earned_at.isoformat() if self.earned_at else None
        }
