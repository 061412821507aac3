"""
Gamification Interface - public API for other modules.
"""
from .logics.ledger_logic import course_complete_source, course_source, quiz_source
from .services.badges_service import BadgeService
from .services.skp_ledger_service import SKPLedgerService
from .services.streak_bonus_service import StreakBonusService


class GamificationInterface:

    @staticmethod
    def credit_quiz_skp(user_id, record_id, amount):
        return SKPLedgerService.credit(user_id, amount, quiz_source(record_id),
                                       f'Quiz session #{record_id}', record_id=record_id)

    @staticmethod
    def credit_course_skp(user_id, record_id, amount, unit_key):
        return SKPLedgerService.credit(user_id, amount, course_source(record_id),
                                       f'Course session {unit_key}', record_id=record_id)

    @staticmethod
    def credit_course_completion_skp(user_id, course_id, amount):
        return SKPLedgerService.credit(user_id, amount, course_complete_source(course_id),
                                       f'Course completed: {course_id}')

    @staticmethod
    def award_course_badge(user_id, course_id, title=None):
        return BadgeService.award_badge(user_id, f'course_{course_id}', title=title, course_id=course_id)

    @staticmethod
    def get_skp_totals(user_id):
        return SKPLedgerService.get_totals(user_id)

    @staticmethod
    def get_current_streak(user_id):
        return StreakBonusService.get_current_streak(user_id)
