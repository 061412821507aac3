# File: learnxp_app/modules/learning_history/services/history_query_service.py
from typing import List

from ..models import AnswerRecord, SessionRecord


class HistoryQueryService:
    """Read-only queries over the event log."""

    @staticmethod
    def get_recent_sessions(user_id: int, limit: int = 5) -> List[SessionRecord]:
        return (
            SessionRecord.query.filter_by(user_id=user_id)
            .order_by(SessionRecord.created_at.desc(), SessionRecord.record_id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_recent_answers(user_id: int, limit: int = 10) -> List[AnswerRecord]:
        return (
            AnswerRecord.query.filter_by(user_id=user_id)
            .order_by(AnswerRecord.created_at.desc(), AnswerRecord.answer_id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_finalized_sessions(user_id: int) -> List[SessionRecord]:
        return (
            SessionRecord.query.filter_by(user_id=user_id, status=SessionRecord.STATUS_FINALIZED)
            .order_by(SessionRecord.record_id)
            .all()
        )

    @staticmethod
    def get_answers_for_sessions(record_ids: List[int]) -> List[AnswerRecord]:
        if not record_ids:
            return []
        return (
            AnswerRecord.query.filter(AnswerRecord.record_id.in_(record_ids))
            .order_by(AnswerRecord.answer_id)
            .all()
        )

    @staticmethod
    def count_unfinalized(user_id: int) -> int:
        return SessionRecord.query.filter_by(user_id=user_id, status=SessionRecord.STATUS_RECORDED).count()

    @staticmethod
    def user_ids_with_activity() -> List[int]:
        rows = SessionRecord.query.with_entities(SessionRecord.user_id).distinct().all()
        return sorted(row[0] for row in rows)
