from flask import jsonify, request
from flask_login import current_user, login_required

from ...core.error_handlers import ValidationError
from . import learning_api_bp
from .services.submission_service import SubmissionService


def _json_payload() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')
    return payload


@learning_api_bp.route('/quiz', methods=['POST'])
@login_required
def submit_quiz_session():
    """Record a finished quiz session and return the XP it earned."""
    result = SubmissionService.submit_quiz_session(current_user, _json_payload())
    return jsonify({'success': True, **result})


@learning_api_bp.route('/course', methods=['POST'])
@login_required
def submit_course_session():
    """Record a finished course session; XP only on the unit's first completion."""
    result = SubmissionService.submit_course_session(current_user, _json_payload())
    return jsonify({'success': True, **result})


@learning_api_bp.route('/course/complete', methods=['POST', 'PUT'])
@login_required
def complete_course():
    payload = _json_payload()
    result = SubmissionService.complete_course(current_user, payload.get('course_id'))
    return jsonify({'success': True, **result})
