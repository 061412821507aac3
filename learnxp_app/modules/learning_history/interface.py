"""
Learning History Interface - public API for other modules.
"""
from .services.history_query_service import HistoryQueryService
from .services.history_recorder import HistoryRecorder


class LearningHistoryInterface:

    record_quiz_session = staticmethod(HistoryRecorder.record_quiz_session)
    record_course_session = staticmethod(HistoryRecorder.record_course_session)
    finalize_session = staticmethod(HistoryRecorder.finalize_session)
    parse_answers = staticmethod(HistoryRecorder.parse_answers)

    get_recent_sessions = staticmethod(HistoryQueryService.get_recent_sessions)
    get_recent_answers = staticmethod(HistoryQueryService.get_recent_answers)
