# modules/rate_table/interface.py
from .schemas import RateTable
from .services.rate_table_service import RateTableService


class RateTableInterface:
    """Single entry point other modules use to read reward constants."""

    @staticmethod
    def get_rate_table() -> RateTable:
        return RateTableService.load()

    @staticmethod
    def clear_cache() -> None:
        RateTableService.clear_cache()
