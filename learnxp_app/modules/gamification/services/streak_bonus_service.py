# File: learnxp_app/modules/gamification/services/streak_bonus_service.py
"""
Streak Bonus Service
====================
Derives the current streak from daily activity and pays whatever part of
the streak bonus has not been paid yet. Recomputing "due minus paid" on
every call makes repeated triggers harmless.
"""
from typing import Dict

from flask import current_app

from ....core.extensions import db
from ....models.user import User
from ....utils.time_utils import user_today
from ...rate_table.interface import RateTableInterface
from ...stats.interface import StatsInterface
from ..logics.ledger_logic import streak_description, streak_source
from ..logics.streak_logic import calculate_streak_from_dates, new_streak_bonus, streak_bonus_due
from .skp_ledger_service import SKPLedgerService


class StreakBonusService:
    """Service for streak-based SKP bonuses."""

    @staticmethod
    def get_current_streak(user_id: int) -> int:
        user = db.session.get(User, user_id)
        today = user_today(user)
        records = StatsInterface.get_daily_records(user_id, up_to=today)
        return calculate_streak_from_dates(
            [r.activity_date for r in records if r.has_activity], today
        )

    @staticmethod
    def compute_and_award(user_id: int) -> Dict[str, int]:
        """
        Pay the outstanding streak bonus for ``user_id``.

        Returns streak_days, newly_awarded_skp, total_due and already_paid.
        """
        streak_days = StreakBonusService.get_current_streak(user_id)
        result = {'streak_days': streak_days, 'newly_awarded_skp': 0, 'total_due': 0, 'already_paid': 0}
        if streak_days == 0:
            return result

        rates = RateTableInterface.get_rate_table()
        due = streak_bonus_due(streak_days, rates.skp['daily_streak_bonus'], rates.skp['ten_day_streak_bonus'])
        paid = SKPLedgerService.streak_paid_total(user_id)
        owed = new_streak_bonus(due, paid)
        result.update(total_due=due, already_paid=paid)

        if owed > 0:
            entry = SKPLedgerService.credit(
                user_id, owed, streak_source(streak_days, rates.version), streak_description(streak_days)
            )
            if entry is not None:
                result['newly_awarded_skp'] = entry.amount
                current_app.logger.info(
                    f"Streak bonus for user {user_id}: {streak_days} days, +{entry.amount} SKP "
                    f"(due {due}, previously paid {paid})"
                )
        return result

    @staticmethod
    def award_if_active_today(user_id: int) -> Dict[str, int]:
        """Cheaper entry point for course sessions: skip unless today has activity."""
        user = db.session.get(User, user_id)
        today_record = StatsInterface.get_daily_record(user_id, user_today(user))
        if today_record is None or not today_record.has_activity:
            return {'streak_days': 0, 'newly_awarded_skp': 0, 'total_due': 0, 'already_paid': 0}
        return StreakBonusService.compute_and_award(user_id)
