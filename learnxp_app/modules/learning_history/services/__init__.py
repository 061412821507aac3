from .history_recorder import HistoryRecorder
from .history_query_service import HistoryQueryService

__all__ = ['HistoryRecorder', 'HistoryQueryService']
