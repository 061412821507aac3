from .rollup_service import RollupService
from .stats_query_service import StatsQueryService

__all__ = ['RollupService', 'StatsQueryService']
