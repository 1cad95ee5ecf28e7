import logging

from flask import jsonify
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base class for failures surfaced to callers with a stable code."""

    status_code = 500
    default_code = 'INTERNAL_ERROR'

    def __init__(self, message, code=None, status_code=None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'success': False, 'message': self.message, 'code': self.code}


class ValidationError(ApiError):
    status_code = 400
    default_code = 'VALIDATION_ERROR'

    def __init__(self, message='Validation failed', errors=None, code=None):
        super().__init__(message, code=code)
        # field -> message
        self.errors = errors or {}

    def to_dict(self):
        data = super().to_dict()
        data['errors'] = self.errors
        return data


class NotFoundError(ApiError):
    status_code = 404
    default_code = 'NOT_FOUND'


class ConflictError(ApiError):
    status_code = 409
    default_code = 'CONFLICT'


class ForbiddenError(ApiError):
    status_code = 403
    default_code = 'FORBIDDEN'


class BusinessRuleError(ApiError):
    status_code = 422
    default_code = 'BUSINESS_RULE'


def from_pydantic(exc, message='Validation failed'):
    """Convert a pydantic ValidationError into our ValidationError."""
    errors = {}
    for err in exc.errors():
        field = '.'.join(str(part) for part in err['loc']) or '__root__'
        errors.setdefault(field, err['msg'])
    return ValidationError(message, errors=errors)


def register_error_handlers(app):

    @app.errorhandler(ApiError)
    def handle_api_error(err):
        if err.status_code >= 500:
            logger.error('API error %s: %s', err.code, err.message)
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err):
        logger.warning('Integrity error: %s', err.orig)
        return jsonify({
            'success': False,
            'message': 'A record with these details already exists',
            'code': 'DUPLICATE_ENTRY',
        }), 409

    @app.errorhandler(Exception)
    def handle_unexpected(err):
        if isinstance(err, HTTPException):
            return err
        logger.exception('Unhandled error')
        show_detail = app.debug or app.config.get('PROPAGATE_DETAIL')
        body = {
            'success': False,
            'message': str(err) if show_detail else 'An unexpected error occurred',
            'code': 'INTERNAL_ERROR',
        }
        return jsonify(body), 500
