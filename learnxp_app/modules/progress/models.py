from datetime import datetime, timezone

from ...core.extensions import db


def _utcnow():
    return datetime.now(timezone.utc)


class ProgressMarker(db.Model):
    """
    Per (user, learning unit) completion flag.

    Goes from not-completed to completed at most once and is never reset.
    """
    __tablename__ = 'progress_markers'

    marker_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=False, index=True)
    course_id = db.Column(db.String(100), nullable=False)
    genre_id = db.Column(db.String(100), nullable=False)
    theme_id = db.Column(db.String(100), nullable=False)
    session_id = db.Column(db.String(100), nullable=False)
    unit_key = db.Column(db.String(420), nullable=False)

    completed = db.Column(db.Boolean, nullable=False, default=False)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        db.UniqueConstraint('user_id', 'course_id', 'genre_id', 'theme_id', 'session_id',
                            name='uq_progress_marker_unit'),
        db.Index('ix_progress_markers_user_course', 'user_id', 'course_id'),
    )

    def __repr__(self):
        return f'<ProgressMarker user={self.user_id} {self.unit_key} completed={self.completed}>'


class ThemeCompletion(db.Model):
    """Marker written once every unit of a theme is complete."""
    __tablename__ = 'theme_completions'

    completion_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=False, index=True)
    course_id = db.Column(db.String(100), nullable=False)
    genre_id = db.Column(db.String(100), nullable=False)
    theme_id = db.Column(db.String(100), nullable=False)
    completed_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        db.UniqueConstraint('user_id', 'course_id', 'genre_id', 'theme_id', name='uq_theme_completion'),
    )


class CourseCompletion(db.Model):
    """
    Course-level completion marker. The row that wins the unique
    constraint is the one that carries the completion bonus.
    """
    __tablename__ = 'course_completions'

    completion_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=False, index=True)
    course_id = db.Column(db.String(100), nullable=False)
    completion_bonus_xp = db.Column(db.Integer, nullable=False, default=0)
    completion_bonus_skp = db.Column(db.Integer, nullable=False, default=0)
    badges_awarded = db.Column(db.Integer, nullable=False, default=0)
    activity_date = db.Column(db.Date, nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        db.UniqueConstraint('user_id', 'course_id', name='uq_course_completion'),
    )

    def to_dict(self):
        return {
            'course_id': self.course_id,
            'completion_bonus_xp': self.completion_bonus_xp,
            'completion_bonus_skp': self.completion_bonus_skp,
            'badges_awarded': self.badges_awarded,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
        }
