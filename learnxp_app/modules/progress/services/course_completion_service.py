# File: learnxp_app/modules/progress/services/course_completion_service.py
"""
Course / theme completion.

A theme or course counts as complete when every unit the catalog lists
for it has a completed progress marker. The course bonus is paid by
whichever request wins the CourseCompletion unique constraint.
"""
from typing import Dict

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ....core.error_handlers import PersistenceError, ValidationError
from ....core.extensions import db
from ....models.user import User
from ....utils.time_utils import user_today
from ...catalog.interface import CatalogInterface
from ...gamification.interface import GamificationInterface
from ...learning_history.schemas import UnitKey
from ...rate_table.interface import RateTableInterface
from ...stats.interface import SCOPE_DAILY, SCOPE_GLOBAL, ScopeUpdate, StatsDelta, StatsInterface
from ..models import CourseCompletion, ThemeCompletion
from .completion_service import CompletionService


def _unit_keys(units) -> set:
    return {UnitKey(u.course_id, u.genre_id, u.theme_id, u.session_id).key for u in units}


class CourseCompletionService:

    @staticmethod
    def is_theme_complete(user_id: int, unit: UnitKey) -> bool:
        units = CatalogInterface.list_theme_units(unit.course_id, unit.genre_id, unit.theme_id)
        if not units:
            return False
        return _unit_keys(units) <= CompletionService.completed_unit_keys(user_id, unit.course_id)

    @staticmethod
    def is_course_complete(user_id: int, course_id: str) -> bool:
        units = CatalogInterface.list_course_units(course_id)
        if not units:
            return False
        return _unit_keys(units) <= CompletionService.completed_unit_keys(user_id, course_id)

    @staticmethod
    def record_theme_completion(user_id: int, unit: UnitKey) -> bool:
        """Write the theme marker; False if it already existed."""
        db.session.add(ThemeCompletion(user_id=user_id, course_id=unit.course_id,
                                       genre_id=unit.genre_id, theme_id=unit.theme_id))
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            return False
        current_app.logger.info(
            f"User {user_id} completed theme {unit.course_id}/{unit.genre_id}/{unit.theme_id}"
        )
        return True

    @staticmethod
    def get_completion(user_id: int, course_id: str):
        return CourseCompletion.query.filter_by(user_id=user_id, course_id=course_id).first()

    @staticmethod
    def complete_course(user_id: int, course_id: str) -> Dict[str, int]:
        """
        Pay the course completion bonus exactly once.

        Raises ValidationError if some unit of the course is not complete.
        A repeat call, or the loser of a concurrent pair, gets zeros back.
        """
        if not CourseCompletionService.is_course_complete(user_id, course_id):
            raise ValidationError('Course is not complete yet', errors={'course_id': course_id})

        nothing = {'completion_bonus_xp': 0, 'completion_bonus_skp': 0,
                   'badges_awarded': 0, 'already_completed': True}
        if CourseCompletionService.get_completion(user_id, course_id) is not None:
            return nothing

        rates = RateTableInterface.get_rate_table()
        user = db.session.get(User, user_id)
        activity_date = user_today(user)
        completion = CourseCompletion(
            user_id=user_id,
            course_id=course_id,
            completion_bonus_xp=rates.bonus_xp['course_completion'],
            completion_bonus_skp=rates.skp['course_complete_bonus'],
            badges_awarded=rates.badges_per_course_completion,
            activity_date=activity_date,
        )
        db.session.add(completion)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            current_app.logger.info(f"Course {course_id} completion already claimed for user {user_id}")
            return nothing
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.error(f"Failed to record course completion {course_id}: {exc}", exc_info=True)
            raise PersistenceError(operation='complete_course')

        xp = completion.completion_bonus_xp
        badges = completion.badges_awarded
        StatsInterface.apply_updates(user_id, [
            ScopeUpdate(SCOPE_GLOBAL, StatsDelta(bonus_xp=xp, badges=badges)),
            ScopeUpdate(SCOPE_DAILY, StatsDelta(bonus_xp=xp), key=activity_date),
        ])
        GamificationInterface.credit_course_completion_skp(user_id, course_id, completion.completion_bonus_skp)
        if badges:
            course = CatalogInterface.get_course(course_id)
            GamificationInterface.award_course_badge(user_id, course_id,
                                                     title=(course.badge_title or course.title) if course else None)

        current_app.logger.info(f"User {user_id} completed course {course_id}: +{xp} XP, {badges} badge(s)")
        return {
            'completion_bonus_xp': xp,
            'completion_bonus_skp': completion.completion_bonus_skp,
            'badges_awarded': badges,
            'already_completed': False,
        }

    @staticmethod
    def run_cascade(user_id: int, unit: UnitKey) -> Dict[str, object]:
        """Background follow-up of a first completion: theme marker, then course bonus."""
        result = {'theme_completed': False, 'course_completion': None}
        if CourseCompletionService.is_theme_complete(user_id, unit):
            result['theme_completed'] = CourseCompletionService.record_theme_completion(user_id, unit)
        if CourseCompletionService.is_course_complete(user_id, unit.course_id):
            result['course_completion'] = CourseCompletionService.complete_course(user_id, unit.course_id)
        return result
