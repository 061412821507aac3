# File: learnxp_app/modules/progress/services/completion_service.py
from typing import Optional, Set

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ....core.error_handlers import PersistenceError
from ....core.extensions import db
from ....utils.time_utils import utcnow
from ...learning_history.schemas import UnitKey
from ..models import ProgressMarker


class CompletionService:
    """
    First-completion determinator.

    The marker row answers "has this user ever completed this unit"; the
    completed=False -> True transition happens at most once.
    """

    @staticmethod
    def _query(user_id: int, unit: UnitKey):
        return ProgressMarker.query.filter_by(
            user_id=user_id,
            course_id=unit.course_id,
            genre_id=unit.genre_id,
            theme_id=unit.theme_id,
            session_id=unit.session_id,
        )

    @staticmethod
    def get_marker(user_id: int, unit: UnitKey) -> Optional[ProgressMarker]:
        return CompletionService._query(user_id, unit).first()

    @staticmethod
    def touch(user_id: int, unit: UnitKey) -> ProgressMarker:
        """Create the not-completed marker on first attempt; a concurrent create is fine."""
        marker = CompletionService.get_marker(user_id, unit)
        if marker is not None:
            return marker

        marker = ProgressMarker(
            user_id=user_id,
            course_id=unit.course_id,
            genre_id=unit.genre_id,
            theme_id=unit.theme_id,
            session_id=unit.session_id,
            unit_key=unit.key,
            completed=False,
        )
        db.session.add(marker)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            # Race condition: another request created it first
            return CompletionService.get_marker(user_id, unit)
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.error(f"Failed to create progress marker {unit.key}: {exc}", exc_info=True)
            raise PersistenceError(operation='touch_marker')
        return marker

    @staticmethod
    def is_first_completion(user_id: int, unit: UnitKey) -> bool:
        """True unless the marker already says completed. Always reads the store."""
        row = (
            db.session.query(ProgressMarker.completed)
            .filter_by(user_id=user_id, course_id=unit.course_id, genre_id=unit.genre_id,
                       theme_id=unit.theme_id, session_id=unit.session_id)
            .first()
        )
        return row is None or not row[0]

    @staticmethod
    def mark_completed(user_id: int, unit: UnitKey) -> bool:
        """
        Move the marker to completed.

        Returns True only for the call that performed the transition.
        """
        now = utcnow()
        try:
            if CompletionService.get_marker(user_id, unit) is None:
                db.session.add(ProgressMarker(
                    user_id=user_id,
                    course_id=unit.course_id,
                    genre_id=unit.genre_id,
                    theme_id=unit.theme_id,
                    session_id=unit.session_id,
                    unit_key=unit.key,
                    completed=True,
                    completed_at=now,
                ))
                try:
                    db.session.commit()
                    return True
                except IntegrityError:
                    db.session.rollback()

            updated = (
                CompletionService._query(user_id, unit)
                .filter(ProgressMarker.completed == False)  # noqa: E712
                .update({ProgressMarker.completed: True,
                         ProgressMarker.completed_at: now,
                         ProgressMarker.updated_at: now},
                        synchronize_session=False)
            )
            db.session.commit()
            return updated == 1
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.error(f"Failed to mark {unit.key} completed for user {user_id}: {exc}",
                                     exc_info=True)
            raise PersistenceError(operation='mark_completed')

    @staticmethod
    def completed_unit_keys(user_id: int, course_id: str) -> Set[str]:
        rows = (
            db.session.query(ProgressMarker.unit_key)
            .filter_by(user_id=user_id, course_id=course_id, completed=True)
            .all()
        )
        return {row[0] for row in rows}
