from flask import jsonify, request
from flask_login import current_user, login_required

from ...core.error_handlers import AuthorizationError, ValidationError
from . import rate_table_api_bp
from .services.rate_table_service import RateTableService


def _require_admin():
    if not current_user.is_admin:
        raise AuthorizationError('Administrator role required')


@rate_table_api_bp.route('/xp-settings', methods=['GET'])
@login_required
def get_xp_settings():
    """Current rate table, grouped, with defaults."""
    _require_admin()
    return jsonify({'success': True, **RateTableService.get_all_configs()})


@rate_table_api_bp.route('/xp-settings', methods=['POST'])
@login_required
def update_xp_settings():
    _require_admin()
    payload = request.get_json(silent=True) or {}
    changes = payload.get('settings', payload)
    if not isinstance(changes, dict):
        raise ValidationError("'settings' must be an object")

    table = RateTableService.update_rates(changes, user_id=current_user.user_id)
    return jsonify({'success': True, 'message': 'Rate table updated', 'rates': table.to_dict()})
