from flask import current_app, jsonify, request
from flask_login import current_user, login_required

from ...core.error_handlers import AuthorizationError, ValidationError
from . import verification_api_bp
from .services.verifier import VerifierService


@verification_api_bp.route('/xp-verification', methods=['GET'])
@login_required
def verify_xp():
    """
    Read-only integrity report.

    ``?all=1`` checks every user (admin only); ``?user_id=`` checks one
    user (admin, or the caller themselves). Without arguments the caller
    is checked.
    """
    check_all = request.args.get('all', '').lower() in ('1', 'true', 'yes')
    if check_all:
        if not current_user.is_admin:
            raise AuthorizationError('Administrator role required')
        summary = VerifierService.verify_all()
        return jsonify({'success': True, **summary.to_dict()})

    raw_user_id = request.args.get('user_id')
    if raw_user_id in (None, ''):
        user_id = current_user.user_id
    else:
        try:
            user_id = int(raw_user_id)
        except ValueError:
            raise ValidationError('user_id must be an integer', errors={'user_id': raw_user_id})

    if user_id != current_user.user_id and not current_user.is_admin:
        current_app.logger.warning(
            f"User {current_user.user_id} tried to verify the ledger of user {user_id}"
        )
        raise AuthorizationError('You can only verify your own progress')

    report = VerifierService.verify_user(user_id)
    return jsonify({'success': True, 'scope': 'user', **report.to_dict()})
