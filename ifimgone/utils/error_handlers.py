from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from marshmallow import ValidationError

from ifimgone.exceptions import (
    ContactVerificationError,
    ReleaseNotAuthorizedError,
    TrustedContactNotFoundError,
)

# Domain errors whose message is safe to return to the caller
DOMAIN_ERROR_STATUS = {
    ContactVerificationError: 400,
    ReleaseNotAuthorizedError: 403,
    TrustedContactNotFoundError: 404,
}


def _error(message, status, **extra):
    return jsonify({'success': False, 'error': message, **extra}), status


def register_error_handlers(app):
    """Register global error handlers"""

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        current_app.logger.warning(f"Validation error: {e.messages}")
        return _error('Validation failed', 400, errors=e.messages)

    for exc_class, status in DOMAIN_ERROR_STATUS.items():
        app.register_error_handler(exc_class, lambda e, status=status: _error(str(e), status))

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(e):
        current_app.logger.error(f"Database error: {str(e)}")
        return _error('Database operation failed', 500)

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return _error(e.description, e.code, code=e.code)

    @app.errorhandler(Exception)
    def handle_generic_error(e):
        current_app.logger.error(f"Unexpected error: {str(e)}", exc_info=True)
        return _error('An unexpected error occurred', 500)
