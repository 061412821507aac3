"""
Catalog Interface - public API used by other modules.

Nothing outside this module queries catalog tables directly.
"""
from typing import List, Optional

from flask import current_app

from ...core.extensions import db
from .models import LearningCourse, LearningUnit


class CatalogInterface:
    """Read-only lookups against the content catalog."""

    DEFAULT_DIFFICULTY = 'basic'

    @staticmethod
    def get_course(course_id: str) -> Optional[LearningCourse]:
        return db.session.get(LearningCourse, course_id) if course_id else None

    @staticmethod
    def get_course_difficulty(course_id: str) -> str:
        """Difficulty string as stored by the catalog; unknown courses price as basic."""
        course = CatalogInterface.get_course(course_id)
        if course is None:
            current_app.logger.warning(
                f"Course '{course_id}' not found in catalog, pricing at '{CatalogInterface.DEFAULT_DIFFICULTY}'"
            )
            return CatalogInterface.DEFAULT_DIFFICULTY
        return course.difficulty or CatalogInterface.DEFAULT_DIFFICULTY

    @staticmethod
    def list_course_units(course_id: str) -> List[LearningUnit]:
        return LearningUnit.query.filter_by(course_id=course_id).all()

    @staticmethod
    def list_theme_units(course_id: str, genre_id: str, theme_id: str) -> List[LearningUnit]:
        return LearningUnit.query.filter_by(
            course_id=course_id, genre_id=genre_id, theme_id=theme_id
        ).all()
