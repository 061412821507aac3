"""
Error Handlers for LearnXP

Provides:
- The ledger error taxonomy
- Consistent error response format
- Flask error handlers
"""

from flask import jsonify, request, current_app
from typing import Optional, Dict, Any, Sequence


class LearnXPError(Exception):
    """Base exception class for LearnXP."""

    def __init__(
        self,
        message: str,
        code: str = 'UNKNOWN_ERROR',
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert error to dictionary for JSON response."""
        return {
            'success': False,
            'message': self.message,
            'code': self.code,
            'details': self.details
        }


class NotFoundError(LearnXPError):
    """Resource not found."""

    def __init__(self, message: str = 'Resource not found', resource: str = None):
        super().__init__(
            message=message,
            code='NOT_FOUND',
            status_code=404,
            details={'resource': resource} if resource else None
        )


class ValidationError(LearnXPError):
    """Malformed input. Nothing has been written for the request."""

    def __init__(self, message: str = 'Validation failed', errors: Dict = None):
        super().__init__(
            message=message,
            code='VALIDATION_ERROR',
            status_code=400,
            details={'errors': errors} if errors else None
        )


class AuthError(LearnXPError):
    """Missing or invalid credentials."""

    def __init__(self, message: str = 'Authentication required'):
        super().__init__(
            message=message,
            code='UNAUTHENTICATED',
            status_code=401
        )


class AuthorizationError(LearnXPError):
    """Access denied."""

    def __init__(self, message: str = 'Access denied'):
        super().__init__(
            message=message,
            code='FORBIDDEN',
            status_code=403
        )


class PersistenceError(LearnXPError):
    """The store rejected or could not take the write; the event was not recorded."""

    def __init__(self, message: str = 'Submission was not saved, please retry', operation: str = None):
        details = {'retryable': True}
        if operation:
            details['operation'] = operation
        super().__init__(
            message=message,
            code='PERSISTENCE_ERROR',
            status_code=503,
            details=details
        )


class PartialAggregateFailure(LearnXPError):
    """
    The event was recorded and priced but some rollup scopes were not updated.

    Never raised to the caller: it is logged and left to the verifier.
    """

    def __init__(self, user_id: int, failed_scopes: Sequence[str], record_id: int = None):
        self.user_id = user_id
        self.failed_scopes = list(failed_scopes)
        self.record_id = record_id
        super().__init__(
            message=f"Aggregate update failed for user {user_id} "
                    f"(record {record_id}): {', '.join(self.failed_scopes)}",
            code='PARTIAL_AGGREGATE_FAILURE',
            status_code=200,
            details={'failed_scopes': self.failed_scopes, 'record_id': record_id}
        )


class RaceConflict(LearnXPError):
    """A concurrent request claimed the first completion of the same unit."""

    def __init__(self, user_id: int, unit_key: str):
        self.user_id = user_id
        self.unit_key = unit_key
        super().__init__(
            message=f"First completion of {unit_key} already claimed for user {user_id}",
            code='RACE_CONFLICT',
            status_code=409,
            details={'unit_key': unit_key}
        )


class ConsistencyDrift(LearnXPError):
    """A rollup value that disagrees with the value rebuilt from raw events."""

    def __init__(self, scope: str, field: str, expected, actual, critical: bool, key: str = None):
        self.scope = scope
        self.field = field
        self.expected = expected
        self.actual = actual
        self.critical = critical
        self.key = key
        where = f"{scope}[{key}]" if key is not None else scope
        super().__init__(
            message=f"{where}.{field}: recorded {actual}, rebuilt from events {expected}",
            code='CONSISTENCY_DRIFT',
            status_code=200,
            details={'scope': scope, 'key': key, 'field': field,
                     'expected': expected, 'actual': actual}
        )


def error_response(
    message: str,
    code: str = 'ERROR',
    status_code: int = 400,
    details: Dict = None
) -> tuple:
    """Create a standardized error response."""
    response = {
        'success': False,
        'message': message,
        'code': code
    }
    if details:
        response['details'] = details

    return jsonify(response), status_code


def register_error_handlers(app):
    """Register error handlers with Flask app."""

    @app.errorhandler(LearnXPError)
    def handle_learnxp_error(error):
        if error.status_code >= 500:
            current_app.logger.error(f"{error.code}: {error.message}")
        else:
            current_app.logger.info(f"{error.code}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def handle_not_found(error):
        if request.path.startswith('/api/'):
            return error_response('Endpoint not found', 'NOT_FOUND', 404)
        return error

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        if request.path.startswith('/api/'):
            return error_response('Method not allowed', 'METHOD_NOT_ALLOWED', 405)
        return error

    @app.errorhandler(500)
    def handle_internal_error(error):
        current_app.logger.exception('Internal server error')
        if request.path.startswith('/api/'):
            return error_response('Internal server error', 'SERVER_ERROR', 500)
        return error
