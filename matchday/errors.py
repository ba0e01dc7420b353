"""API error taxonomy.

Services raise these; the handlers registered in ``create_app`` render them
as ``{'success': False, 'message': ..., 'errors': [...]}`` responses.
"""


class ApiError(Exception):
    status_code = 500
    default_message = 'Internal server error'

    def __init__(self, message=None, errors=None):
        self.message = message or self.default_message
        self.errors = list(errors or [])
        super().__init__(self.message)

    def to_dict(self):
        payload = {'success': False, 'message': self.message}
        if self.errors:
            payload['errors'] = self.errors
        return payload


class ValidationError(ApiError):
    status_code = 400
    default_message = 'Validation failed'


class AuthenticationError(ApiError):
    status_code = 401
    default_message = 'Authentication required'


class PermissionDeniedError(ApiError):
    status_code = 403
    default_message = 'Permission denied'


class NotFoundError(ApiError):
    status_code = 404
    default_message = 'Resource not found'


class InvalidStateError(ApiError):
    status_code = 400
    default_message = 'Operation not allowed in the current state'


class ConflictError(ApiError):
    status_code = 400
    default_message = 'Duplicate operation'


class InternalError(ApiError):
    status_code = 500
