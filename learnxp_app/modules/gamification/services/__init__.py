from .skp_ledger_service import SKPLedgerService
from .streak_bonus_service import StreakBonusService
from .badges_service import BadgeService

__all__ = ['SKPLedgerService', 'StreakBonusService', 'BadgeService']
