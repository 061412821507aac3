from .rate_table_service import RateTableService

__all__ = ['RateTableService']
