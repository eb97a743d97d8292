from flask import Flask, jsonify
from .extensions import db, migrate, jwt, ma
from .config import Config
from vendorvault.utils.error_handlers import register_error_handlers
from vendorvault.routes import register_blueprints


def create_app(config_object=Config):

    app = Flask(__name__)
    app.config.from_object(config_object)

    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    ma.init_app(app)

    # Models must be imported before create_all / migrations see the metadata
    from vendorvault import models  # noqa: F401

    register_blueprints(app)
    register_error_handlers(app)

    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return jsonify({"error": "Token has expired"}), 401

    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        return jsonify({"error": "Invalid token"}), 422

    @jwt.unauthorized_loader
    def missing_token_callback(error):
        return jsonify({"error": "Missing authorization header"}), 401

    @app.route("/health")
    def health():
        return {"status": "healthy"}, 200

    return app
