from flask import jsonify
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.exceptions import HTTPException
from flask_jwt_extended.exceptions import JWTDecodeError, NoAuthorizationError, InvalidHeaderError
from vendorvault.exceptions import (
    ConfirmationExpiredError,
    DomainError,
    PaymentVerificationError,
    ProviderError,
)


def register_error_handlers(app):
    """Map domain, database and auth failures to JSON responses"""

    @app.errorhandler(DomainError)
    def handle_domain_error(error):
        if isinstance(error, (ConfirmationExpiredError, PaymentVerificationError)):
            app.logger.warning(f"{type(error).__name__}: {error}")
        return jsonify({"error": str(error)}), error.status_code

    @app.errorhandler(ProviderError)
    def handle_provider_error(error):
        app.logger.error(f"Provider call failed: {error}")
        return jsonify({"error": "Payment provider unavailable"}), 502

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(error):
        # Unique claims (codes, commission rows) surface here when two writers race
        app.logger.error(f"Integrity error: {error.orig}")
        return jsonify({"error": "Conflicting update, please retry"}), 409

    @app.errorhandler(SQLAlchemyError)
    def handle_sqlalchemy_error(error):
        app.logger.error(f"Database error: {error}")
        return jsonify({"error": "Database error"}), 500

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Resource not found"}), 404

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return jsonify({"error": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_exception(error):
        app.logger.error(f"Unhandled exception: {error}", exc_info=error)
        return jsonify({"error": "An unexpected error occurred"}), 500

    @app.errorhandler(NoAuthorizationError)
    def handle_no_authorization(error):
        return jsonify({"error": "Missing authorization header"}), 401

    @app.errorhandler(JWTDecodeError)
    def handle_jwt_decode_error(error):
        return jsonify({"error": "Invalid token"}), 422

    @app.errorhandler(InvalidHeaderError)
    def handle_invalid_header(error):
        return jsonify({"error": "Invalid authorization header"}), 422
