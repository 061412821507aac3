from flask import jsonify, request
from flask_login import current_user, login_required

from ..rate_table.interface import RateTableInterface
from . import stats_api_bp
from .services.stats_query_service import StatsQueryService


@stats_api_bp.route('/xp-stats', methods=['GET'])
@login_required
def get_xp_stats():
    """XP totals with levels, recent daily activity, streak and SKP balance."""
    from ..gamification.interface import GamificationInterface

    user_id = current_user.user_id
    days = min(max(request.args.get('days', 30, type=int), 1), 365)

    overview = StatsQueryService.get_xp_overview(user_id, RateTableInterface.get_rate_table())
    daily = StatsQueryService.get_daily_records(user_id, limit=days)

    return jsonify({
        'success': True,
        **overview,
        'daily': [row.to_dict() for row in daily],
        'current_streak': GamificationInterface.get_current_streak(user_id),
        'skp': GamificationInterface.get_skp_totals(user_id),
    })
