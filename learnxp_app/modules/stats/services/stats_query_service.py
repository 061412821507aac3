# File: learnxp_app/modules/stats/services/stats_query_service.py
from datetime import date
from typing import List, Optional

from ....core.extensions import db
from ...scoring.logics.calculator import calculate_level
from ..models import DailyActivityRecord, UserCategoryXPStats, UserSubcategoryXPStats, UserXPStats


class StatsQueryService:
    """Read side of the aggregate tables."""

    @staticmethod
    def get_global(user_id: int) -> Optional[UserXPStats]:
        return db.session.get(UserXPStats, user_id)

    @staticmethod
    def get_category_rows(user_id: int) -> List[UserCategoryXPStats]:
        return (UserCategoryXPStats.query.filter_by(user_id=user_id)
                .order_by(UserCategoryXPStats.total_xp.desc(), UserCategoryXPStats.category_id)
                .all())

    @staticmethod
    def get_subcategory_rows(user_id: int) -> List[UserSubcategoryXPStats]:
        return (UserSubcategoryXPStats.query.filter_by(user_id=user_id)
                .order_by(UserSubcategoryXPStats.total_xp.desc(), UserSubcategoryXPStats.subcategory_id)
                .all())

    @staticmethod
    def get_daily_records(user_id: int, up_to: Optional[date] = None,
                          limit: Optional[int] = None) -> List[DailyActivityRecord]:
        """Daily rows newest first."""
        query = DailyActivityRecord.query.filter_by(user_id=user_id)
        if up_to is not None:
            query = query.filter(DailyActivityRecord.activity_date <= up_to)
        query = query.order_by(DailyActivityRecord.activity_date.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def get_daily_record(user_id: int, activity_date: date) -> Optional[DailyActivityRecord]:
        return DailyActivityRecord.query.filter_by(user_id=user_id, activity_date=activity_date).first()

    @staticmethod
    def get_xp_overview(user_id: int, rates) -> dict:
        """Global, category and subcategory totals with level information."""
        stats = StatsQueryService.get_global(user_id)
        overall = stats.to_dict() if stats else UserXPStats(user_id=user_id, **_ZERO_GLOBAL).to_dict()
        overall['level'] = calculate_level(overall['total_xp'], rates.levels['overall'])

        categories = []
        for row in StatsQueryService.get_category_rows(user_id):
            item = row.to_dict()
            item['level'] = calculate_level(row.total_xp, rates.levels['category'])
            categories.append(item)

        subcategories = []
        for row in StatsQueryService.get_subcategory_rows(user_id):
            item = row.to_dict()
            item['level'] = calculate_level(row.total_xp, rates.levels['subcategory'])
            subcategories.append(item)

        return {
            'overall': overall,
            'categories': categories,
            'subcategories': subcategories,
        }


_ZERO_GLOBAL = {
    'total_xp': 0, 'quiz_xp': 0, 'course_xp': 0, 'bonus_xp': 0,
    'total_skp': 0, 'quiz_skp': 0, 'course_skp': 0, 'bonus_skp': 0, 'streak_skp': 0, 'skp_spent': 0,
    'quiz_sessions_completed': 0, 'course_sessions_completed': 0,
    'quiz_questions_answered': 0, 'quiz_questions_correct': 0, 'quiz_average_accuracy': 0.0,
    'wisdom_cards_total': 0, 'badges_total': 0,
}
