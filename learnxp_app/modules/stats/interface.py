"""
Stats Interface - public API for other modules.
"""
from .schemas import ScopeUpdate, StatsDelta
from .services.rollup_service import (
    SCOPE_CATEGORY,
    SCOPE_DAILY,
    SCOPE_GLOBAL,
    SCOPE_SUBCATEGORY,
    RollupService,
)
from .services.stats_query_service import StatsQueryService


class StatsInterface:

    @staticmethod
    def apply_updates(user_id, updates, record_id=None):
        """Apply rollups scope by scope; returns the failed scope labels."""
        return RollupService.apply_many(user_id, updates, record_id=record_id)

    @staticmethod
    def get_global_stats(user_id):
        return StatsQueryService.get_global(user_id)

    @staticmethod
    def get_daily_records(user_id, up_to=None, limit=None):
        return StatsQueryService.get_daily_records(user_id, up_to=up_to, limit=limit)

    @staticmethod
    def get_daily_record(user_id, activity_date):
        return StatsQueryService.get_daily_record(user_id, activity_date)


__all__ = [
    'StatsInterface', 'ScopeUpdate', 'StatsDelta',
    'SCOPE_GLOBAL', 'SCOPE_CATEGORY', 'SCOPE_SUBCATEGORY', 'SCOPE_DAILY',
]
