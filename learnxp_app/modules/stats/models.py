"""
Stats Module Models
Denormalized running totals per user, per category, per subcategory and per day.

Every row carries ``row_version`` as the mapper version counter, so a
read-modify-write that lost a race fails with StaleDataError instead of
silently overwriting the other writer.
"""
from datetime import datetime, timezone

from ...core.extensions import db


def _utcnow():
    return datetime.now(timezone.utc)


class UserXPStats(db.Model):
    """Global totals for one user."""
    __tablename__ = 'user_xp_stats'

    user_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), primary_key=True)

    # XP partitions: total_xp == quiz_xp + course_xp + bonus_xp
    total_xp = db.Column(db.Integer, nullable=False, default=0)
    quiz_xp = db.Column(db.Integer, nullable=False, default=0)
    course_xp = db.Column(db.Integer, nullable=False, default=0)
    bonus_xp = db.Column(db.Integer, nullable=False, default=0)

    # SKP earned by source, plus spent; balance = total_skp - skp_spent
    total_skp = db.Column(db.Integer, nullable=False, default=0)
    quiz_skp = db.Column(db.Integer, nullable=False, default=0)
    course_skp = db.Column(db.Integer, nullable=False, default=0)
    bonus_skp = db.Column(db.Integer, nullable=False, default=0)
    streak_skp = db.Column(db.Integer, nullable=False, default=0)
    skp_spent = db.Column(db.Integer, nullable=False, default=0)

    quiz_sessions_completed = db.Column(db.Integer, nullable=False, default=0)
    course_sessions_completed = db.Column(db.Integer, nullable=False, default=0)
    quiz_questions_answered = db.Column(db.Integer, nullable=False, default=0)
    quiz_questions_correct = db.Column(db.Integer, nullable=False, default=0)
    quiz_average_accuracy = db.Column(db.Float, nullable=False, default=0.0)

    wisdom_cards_total = db.Column(db.Integer, nullable=False, default=0)
    badges_total = db.Column(db.Integer, nullable=False, default=0)

    last_activity_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
    row_version = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {'version_id_col': row_version}

    @property
    def skp_balance(self) -> int:
        return (self.total_skp or 0) - (self.skp_spent or 0)

    def to_dict(self):
        return {
            'total_xp': self.total_xp,
            'quiz_xp': self.quiz_xp,
            'course_xp': self.course_xp,
            'bonus_xp': self.bonus_xp,
            'total_skp': self.total_skp,
            'quiz_skp': self.quiz_skp,
            'course_skp': self.course_skp,
            'bonus_skp': self.bonus_skp,
            'streak_skp': self.streak_skp,
            'skp_spent': self.skp_spent,
            'skp_balance': self.skp_balance,
            'quiz_sessions_completed': self.quiz_sessions_completed,
            'course_sessions_completed': self.course_sessions_completed,
            'quiz_questions_answered': self.quiz_questions_answered,
            'quiz_questions_correct': self.quiz_questions_correct,
            'quiz_average_accuracy': self.quiz_average_accuracy,
            'wisdom_cards_total': self.wisdom_cards_total,
            'badges_total': self.badges_total,
            'last_activity_at': self.last_activity_at.isoformat() if self.last_activity_at else None,
        }

    def __repr__(self):
        return f'<UserXPStats {self.user_id} xp={self.total_xp} skp={self.total_skp}>'


class UserCategoryXPStats(db.Model):
    """Totals restricted to one category."""
    __tablename__ = 'user_category_xp_stats'

    stat_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=False)
    category_id = db.Column(db.String(100), nullable=False)

    total_xp = db.Column(db.Integer, nullable=False, default=0)
    quiz_xp = db.Column(db.Integer, nullable=False, default=0)
    course_xp = db.Column(db.Integer, nullable=False, default=0)
    quiz_sessions_completed = db.Column(db.Integer, nullable=False, default=0)
    course_sessions_completed = db.Column(db.Integer, nullable=False, default=0)
    quiz_questions_answered = db.Column(db.Integer, nullable=False, default=0)
    quiz_questions_correct = db.Column(db.Integer, nullable=False, default=0)
    quiz_average_accuracy = db.Column(db.Float, nullable=False, default=0.0)

    last_activity_at = db.Column(db.DateTime(timezone=True), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
    row_version = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {'version_id_col': row_version}
    __table_args__ = (
        db.UniqueConstraint('user_id', 'category_id', name='_user_category_xp_uc'),
    )

    def to_dict(self):
        return {
            'category_id': self.category_id,
            'total_xp': self.total_xp,
            'quiz_xp': self.quiz_xp,
            'course_xp': self.course_xp,
            'quiz_sessions_completed': self.quiz_sessions_completed,
            'course_sessions_completed': self.course_sessions_completed,
            'quiz_questions_answered': self.quiz_questions_answered,
            'quiz_questions_correct': self.quiz_questions_correct,
            'quiz_average_accuracy': self.quiz_average_accuracy,
        }


class UserSubcategoryXPStats(db.Model):
    """Totals restricted to one subcategory."""
    __tablename__ = 'user_subcategory_xp_stats'

    stat_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=False)
    subcategory_id = db.Column(db.String(100), nullable=False)
    category_id = db.Column(db.String(100), nullable=True)

    total_xp = db.Column(db.Integer, nullable=False, default=0)
    quiz_xp = db.Column(db.Integer, nullable=False, default=0)
    course_xp = db.Column(db.Integer, nullable=False, default=0)
    quiz_sessions_completed = db.Column(db.Integer, nullable=False, default=0)
    course_sessions_completed = db.Column(db.Integer, nullable=False, default=0)
    quiz_questions_answered = db.Column(db.Integer, nullable=False, default=0)
    quiz_questions_correct = db.Column(db.Integer, nullable=False, default=0)
    quiz_average_accuracy = db.Column(db.Float, nullable=False, default=0.0)

    last_activity_at = db.Column(db.DateTime(timezone=True), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
    row_version = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {'version_id_col': row_version}
    __table_args__ = (
        db.UniqueConstraint('user_id', 'subcategory_id', name='_user_subcategory_xp_uc'),
    )

    def to_dict(self):
        return {
            'subcategory_id': self.subcategory_id,
            'category_id': self.category_id,
            'total_xp': self.total_xp,
            'quiz_xp': self.quiz_xp,
            'course_xp': self.course_xp,
            'quiz_sessions_completed': self.quiz_sessions_completed,
            'course_sessions_completed': self.course_sessions_completed,
            'quiz_questions_answered': self.quiz_questions_answered,
            'quiz_questions_correct': self.quiz_questions_correct,
            'quiz_average_accuracy': self.quiz_average_accuracy,
        }


class DailyActivityRecord(db.Model):
    """
    One row per user and calendar day. The streak is read from here:
    a day counts when it has at least one quiz or course session.
    """
    __tablename__ = 'daily_activity_records'

    record_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=False)
    activity_date = db.Column(db.Date, nullable=False)

    quiz_sessions = db.Column(db.Integer, nullable=False, default=0)
    course_sessions = db.Column(db.Integer, nullable=False, default=0)
    total_xp_earned = db.Column(db.Integer, nullable=False, default=0)
    quiz_xp_earned = db.Column(db.Integer, nullable=False, default=0)
    course_xp_earned = db.Column(db.Integer, nullable=False, default=0)
    bonus_xp_earned = db.Column(db.Integer, nullable=False, default=0)
    questions_answered = db.Column(db.Integer, nullable=False, default=0)
    questions_correct = db.Column(db.Integer, nullable=False, default=0)
    time_spent_seconds = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
    row_version = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {'version_id_col': row_version}
    __table_args__ = (
        db.UniqueConstraint('user_id', 'activity_date', name='_user_activity_date_uc'),
        db.Index('ix_daily_activity_user_date', 'user_id', 'activity_date'),
    )

    @property
    def has_activity(self) -> bool:
        return (self.quiz_sessions or 0) + (self.course_sessions or 0) > 0

    def to_dict(self):
        return {
            'date': self.activity_date.isoformat(),
            'quiz_sessions': self.quiz_sessions,
            'course_sessions': self.course_sessions,
            'total_xp_earned': self.total_xp_earned,
            'quiz_xp_earned': self.quiz_xp_earned,
            'course_xp_earned': self.course_xp_earned,
            'bonus_xp_earned': self.bonus_xp_earned,
            'questions_answered': self.questions_answered,
            'questions_correct': self.questions_correct,
            'time_spent_seconds': self.time_spent_seconds,
        }

    def __repr__(self):
        return f'<DailyActivityRecord {self.user_id} {self.activity_date}>'
