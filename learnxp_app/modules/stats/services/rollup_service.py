# File: learnxp_app/modules/stats/services/rollup_service.py
"""
Aggregate rollup updater.

Each scope row is updated with its own fetch / add / commit round-trip.
Scopes are deliberately independent: a failure on one never rolls back
another, and the event log stays the source of truth for the verifier.
"""
from typing import Iterable, List

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ....core.error_handlers import PartialAggregateFailure
from ....core.extensions import db
from ....core.signals import aggregate_update_failed
from ....utils.time_utils import utcnow
from ..models import DailyActivityRecord, UserCategoryXPStats, UserSubcategoryXPStats, UserXPStats
from ..schemas import ScopeUpdate, StatsDelta

SCOPE_GLOBAL = 'global'
SCOPE_CATEGORY = 'category'
SCOPE_SUBCATEGORY = 'subcategory'
SCOPE_DAILY = 'daily'

# delta attribute -> column, per scope
_GLOBAL_COLUMNS = {
    'total_xp': 'total_xp',
    'quiz_xp': 'quiz_xp',
    'course_xp': 'course_xp',
    'bonus_xp': 'bonus_xp',
    'total_skp': 'total_skp',
    'quiz_skp': 'quiz_skp',
    'course_skp': 'course_skp',
    'bonus_skp': 'bonus_skp',
    'streak_skp': 'streak_skp',
    'skp_spent': 'skp_spent',
    'quiz_sessions': 'quiz_sessions_completed',
    'course_sessions': 'course_sessions_completed',
    'questions_answered': 'quiz_questions_answered',
    'questions_correct': 'quiz_questions_correct',
    'wisdom_cards': 'wisdom_cards_total',
    'badges': 'badges_total',
}

_SCOPED_COLUMNS = {
    'quiz_xp': 'quiz_xp',
    'course_xp': 'course_xp',
    'quiz_sessions': 'quiz_sessions_completed',
    'course_sessions': 'course_sessions_completed',
    'questions_answered': 'quiz_questions_answered',
    'questions_correct': 'quiz_questions_correct',
}

_DAILY_COLUMNS = {
    'total_xp': 'total_xp_earned',
    'quiz_xp': 'quiz_xp_earned',
    'course_xp': 'course_xp_earned',
    'bonus_xp': 'bonus_xp_earned',
    'quiz_sessions': 'quiz_sessions',
    'course_sessions': 'course_sessions',
    'questions_answered': 'questions_answered',
    'questions_correct': 'questions_correct',
    'time_spent_seconds': 'time_spent_seconds',
}


def _accuracy(correct: int, answered: int) -> float:
    if not answered:
        return 0.0
    return round(correct * 100 / answered, 2)


class RollupService:
    """Applies reward deltas to the aggregate tables."""

    SCOPES = (SCOPE_GLOBAL, SCOPE_CATEGORY, SCOPE_SUBCATEGORY, SCOPE_DAILY)

    @staticmethod
    def _fetch_or_create(user_id: int, update: ScopeUpdate):
        if update.scope == SCOPE_GLOBAL:
            row = db.session.get(UserXPStats, user_id)
            return row or UserXPStats(user_id=user_id)
        if update.scope == SCOPE_CATEGORY:
            row = UserCategoryXPStats.query.filter_by(user_id=user_id, category_id=update.key).first()
            return row or UserCategoryXPStats(user_id=user_id, category_id=update.key)
        if update.scope == SCOPE_SUBCATEGORY:
            row = UserSubcategoryXPStats.query.filter_by(user_id=user_id, subcategory_id=update.key).first()
            return row or UserSubcategoryXPStats(user_id=user_id, subcategory_id=update.key,
                                                 category_id=update.category_id)
        if update.scope == SCOPE_DAILY:
            row = DailyActivityRecord.query.filter_by(user_id=user_id, activity_date=update.key).first()
            return row or DailyActivityRecord(user_id=user_id, activity_date=update.key)
        raise ValueError(f"Unknown rollup scope '{update.scope}'")

    @staticmethod
    def _columns_for(scope: str) -> dict:
        if scope == SCOPE_GLOBAL:
            return _GLOBAL_COLUMNS
        if scope == SCOPE_DAILY:
            return _DAILY_COLUMNS
        return _SCOPED_COLUMNS

    @staticmethod
    def _add(row, delta: StatsDelta, scope: str) -> None:
        for attr, column in RollupService._columns_for(scope).items():
            amount = getattr(delta, attr)
            if amount:
                setattr(row, column, (getattr(row, column) or 0) + amount)

        if scope in (SCOPE_CATEGORY, SCOPE_SUBCATEGORY):
            row.total_xp = (row.quiz_xp or 0) + (row.course_xp or 0)

        # Derived fields come from the new cumulative counts, never incrementally
        if hasattr(row, 'quiz_average_accuracy'):
            row.quiz_average_accuracy = _accuracy(row.quiz_questions_correct or 0,
                                                  row.quiz_questions_answered or 0)
        if hasattr(row, 'last_activity_at') and (delta.quiz_sessions or delta.course_sessions
                                                  or delta.total_xp):
            row.last_activity_at = utcnow()

    @staticmethod
    def apply_reward(user_id: int, update: ScopeUpdate):
        """
        Fetch (or start from zero), add the delta, commit. A lost race on
        the row version or on the first insert is retried from a fresh read.
        """
        max_retries = current_app.config.get('ROLLUP_MAX_RETRIES', 3)
        attempt = 0
        while True:
            try:
                row = RollupService._fetch_or_create(user_id, update)
                RollupService._add(row, update.delta, update.scope)
                db.session.add(row)
                db.session.commit()
                return row
            except (StaleDataError, IntegrityError) as exc:
                db.session.rollback()
                attempt += 1
                if attempt > max_retries:
                    raise
                current_app.logger.warning(
                    f"Rollup {update.label} for user {user_id} lost a concurrent update "
                    f"({type(exc).__name__}), retry {attempt}/{max_retries}"
                )

    @staticmethod
    def apply_many(user_id: int, updates: Iterable[ScopeUpdate], record_id: int = None) -> List[str]:
        """
        Apply every scope update independently.

        Returns the labels of scopes that failed; those are logged as a
        PartialAggregateFailure and never raised.
        """
        failed = []
        for update in updates:
            if update.delta.is_empty():
                continue
            try:
                RollupService.apply_reward(user_id, update)
            except SQLAlchemyError as exc:
                db.session.rollback()
                current_app.logger.error(
                    f"Rollup {update.label} failed for user {user_id}: {exc}", exc_info=True
                )
                failed.append(update.label)

        if failed:
            failure = PartialAggregateFailure(user_id, failed, record_id=record_id)
            current_app.logger.warning(failure.message)
            aggregate_update_failed.send(None, user_id=user_id, record_id=record_id, failed_scopes=failed)
        return failed
