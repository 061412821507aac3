from datetime import datetime, timezone

from ...core.extensions import db


def _utcnow():
    return datetime.now(timezone.utc)


class SessionRecord(db.Model):
    """
    One quiz session or one course-session attempt.

    Written once as 'recorded', then finalized exactly once with its
    priced reward. ``first_completion_key`` is only set on the record
    that won the first completion of a unit; the unique constraint on
    (user_id, first_completion_key) makes that claim at-most-once.
    """
    __tablename__ = 'session_records'

    KIND_QUIZ = 'quiz'
    KIND_COURSE = 'course'

    STATUS_RECORDED = 'recorded'
    STATUS_FINALIZED = 'finalized'

    record_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=False, index=True)
    kind = db.Column(db.String(20), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=STATUS_RECORDED)

    # Classification (quiz sessions spanning several categories leave these empty)
    category_id = db.Column(db.String(100), nullable=True)
    subcategory_id = db.Column(db.String(100), nullable=True)
    difficulty = db.Column(db.String(30), nullable=False, default='basic')
    difficulty_clamped = db.Column(db.Boolean, nullable=False, default=False)

    # Course unit (course sessions only)
    course_id = db.Column(db.String(100), nullable=True)
    genre_id = db.Column(db.String(100), nullable=True)
    theme_id = db.Column(db.String(100), nullable=True)
    unit_session_id = db.Column(db.String(100), nullable=True)
    unit_key = db.Column(db.String(420), nullable=True, index=True)
    quiz_correct = db.Column(db.Boolean, nullable=True)
    client_first_completion_hint = db.Column(db.Boolean, nullable=True)

    # Performance
    total_questions = db.Column(db.Integer, nullable=False, default=0)
    correct_answers = db.Column(db.Integer, nullable=False, default=0)
    accuracy_rate = db.Column(db.Float, nullable=False, default=0.0)
    duration_seconds = db.Column(db.Integer, nullable=False, default=0)
    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    ended_at = db.Column(db.DateTime(timezone=True), nullable=True)
    activity_date = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False, index=True)

    # Reward, written by the single finalize step
    rate_table_version = db.Column(db.Integer, nullable=True)
    base_xp = db.Column(db.Integer, nullable=False, default=0)
    bonus_xp = db.Column(db.Integer, nullable=False, default=0)
    earned_xp = db.Column(db.Integer, nullable=False, default=0)
    earned_skp = db.Column(db.Integer, nullable=False, default=0)
    wisdom_cards_awarded = db.Column(db.Integer, nullable=False, default=0)
    is_first_completion = db.Column(db.Boolean, nullable=False, default=False)
    first_completion_key = db.Column(db.String(420), nullable=True)
    finalized_at = db.Column(db.DateTime(timezone=True), nullable=True)

    answers = db.relationship('AnswerRecord', backref='session_record', lazy='dynamic')

    __table_args__ = (
        db.UniqueConstraint('user_id', 'first_completion_key', name='uq_session_first_completion'),
        db.Index('ix_session_records_user_kind', 'user_id', 'kind'),
    )

    @property
    def is_finalized(self) -> bool:
        return self.status == self.STATUS_FINALIZED

    def to_dict(self) -> dict:
        return {
            'record_id': self.record_id,
            'kind': self.kind,
            'status': self.status,
            'category_id': self.category_id,
            'subcategory_id': self.subcategory_id,
            'difficulty': self.difficulty,
            'unit_key': self.unit_key,
            'total_questions': self.total_questions,
            'correct_answers': self.correct_answers,
            'accuracy_rate': self.accuracy_rate,
            'duration_seconds': self.duration_seconds,
            'activity_date': self.activity_date.isoformat() if self.activity_date else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'base_xp': self.base_xp,
            'bonus_xp': self.bonus_xp,
            'earned_xp': self.earned_xp,
            'earned_skp': self.earned_skp,
            'wisdom_cards_awarded': self.wisdom_cards_awarded,
            'is_first_completion': self.is_first_completion,
        }

    def __repr__(self):
        return f'<SessionRecord {self.record_id} {self.kind} user={self.user_id} xp={self.earned_xp}>'


class AnswerRecord(db.Model):
    """One answered question; its XP is fixed at insert time."""
    __tablename__ = 'answer_records'

    answer_id = db.Column(db.Integer, primary_key=True)
    record_id = db.Column(db.Integer, db.ForeignKey('session_records.record_id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=False, index=True)

    question_id = db.Column(db.String(100), nullable=False)
    user_answer = db.Column(db.Text, nullable=True)
    is_correct = db.Column(db.Boolean, nullable=False, default=False)
    is_timeout = db.Column(db.Boolean, nullable=False, default=False)
    time_spent_seconds = db.Column(db.Integer, nullable=False, default=0)

    category_id = db.Column(db.String(100), nullable=False)
    subcategory_id = db.Column(db.String(100), nullable=False)
    difficulty = db.Column(db.String(30), nullable=False)
    difficulty_clamped = db.Column(db.Boolean, nullable=False, default=False)

    earned_xp = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            'answer_id': self.answer_id,
            'record_id': self.record_id,
            'question_id': self.question_id,
            'is_correct': self.is_correct,
            'category_id': self.category_id,
            'subcategory_id': self.subcategory_id,
            'difficulty': self.difficulty,
            'earned_xp': self.earned_xp,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
