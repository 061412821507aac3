from flask import jsonify, request
from flask_login import current_user, login_required

from . import gamification_api_bp
from .services.badges_service import BadgeService
from .services.skp_ledger_service import SKPLedgerService
from .services.streak_bonus_service import StreakBonusService


@gamification_api_bp.route('/history', methods=['GET'])
@login_required
def get_skp_history_api():
    """Paginated SKP ledger of the current user, newest first."""
    page = request.args.get('page', 1, type=int)
    per_page = request.args.get('per_page', type=int)

    entries, total = SKPLedgerService.get_history(current_user.user_id, page, per_page)
    return jsonify({
        'success': True,
        'transactions': [entry.to_dict() for entry in entries],
        'total': total,
        'page': page,
        'totals': SKPLedgerService.get_totals(current_user.user_id),
    })


@gamification_api_bp.route('/streak-bonus', methods=['POST'])
@login_required
def award_streak_bonus_api():
    """Manual, synchronous streak bonus check for the current user."""
    result = StreakBonusService.compute_and_award(current_user.user_id)
    return jsonify({'success': True, **result})


@gamification_api_bp.route('/badges', methods=['GET'])
@login_required
def get_badges_api():
    badges = BadgeService.get_user_badges(current_user.user_id)
    return jsonify({'success': True, 'badges': [b.to_dict() for b in badges]})
