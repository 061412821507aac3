from sqlalchemy.sql import func

from ...core.extensions import db


class LearningCourse(db.Model):
    """A course as published by the content catalog."""

    __tablename__ = 'learning_courses'

    course_id = db.Column(db.String(100), primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    difficulty = db.Column(db.String(30), nullable=False, default='basic')
    badge_title = db.Column(db.String(255))
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())

    units = db.relationship('LearningUnit', backref='course', lazy='dynamic',
                            cascade='all, delete-orphan')

    def __repr__(self):
        return f'<LearningCourse {self.course_id} ({self.difficulty})>'


class LearningUnit(db.Model):
    """The smallest completable piece: course > genre > theme > session."""

    __tablename__ = 'learning_units'

    unit_id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.String(100), db.ForeignKey('learning_courses.course_id'), nullable=False, index=True)
    genre_id = db.Column(db.String(100), nullable=False)
    theme_id = db.Column(db.String(100), nullable=False)
    session_id = db.Column(db.String(100), nullable=False)
    category_id = db.Column(db.String(100), nullable=False)
    subcategory_id = db.Column(db.String(100), nullable=False)

    __table_args__ = (
        db.UniqueConstraint('course_id', 'genre_id', 'theme_id', 'session_id', name='uq_learning_unit'),
    )

    def __repr__(self):
        return f'<LearningUnit {self.course_id}/{self.genre_id}/{self.theme_id}/{self.session_id}>'
