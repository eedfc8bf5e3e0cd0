"""Application factory."""

import json
import os
import uuid
from datetime import timedelta

from flask import Flask, g, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from config import Config
from extensions import jwt, limiter, migrate
from models import db
from routes.auth import auth_bp
from routes.contacts import contacts_bp
from routes.documents import documents_bp
from routes.folders import folders_bp
from routes.vault import vault_bp
from services.auth_flow import AuthFlowController
from services.mailer import mailer_from_config
from services.otp import OtpService
from services.password_hasher import PasswordHasher
from services.session_tokens import SessionTokenService
from storage.credential_store import SqlCredentialStore


def create_app(config_class: type[Config] = Config) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Core subsystems
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    # CORS
    CORS(
        app,
        resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
    )

    # Rate limiting
    if not app.config.get("RATELIMIT_KEY_PREFIX"):
        app.config["RATELIMIT_KEY_PREFIX"] = str(uuid.uuid4())
    limiter.init_app(app)

    # Ensure uploads directory exists
    upload_dir = app.config.get("UPLOAD_DIR")
    if upload_dir:
        os.makedirs(upload_dir, exist_ok=True)

    _init_auth(app)

    # Blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(vault_bp)
    app.register_blueprint(documents_bp, url_prefix="/documents")
    app.register_blueprint(folders_bp, url_prefix="/folders")
    app.register_blueprint(contacts_bp, url_prefix="/contacts")

    # Health
    @app.route("/health", methods=["GET"])
    def health_check():
        return jsonify({"status": "ok"})

    # Errors
    _register_error_handlers(app)

    return app


def _init_auth(app: Flask) -> None:
    """Construct the auth collaborators and expose them on ``app.extensions``."""

    store = SqlCredentialStore()
    hasher = PasswordHasher(method=app.config["PASSWORD_HASH_METHOD"])
    mailer = mailer_from_config(app.config)
    otp = OtpService(hasher, ttl=timedelta(minutes=app.config["OTP_TTL_MINUTES"]))

    app.extensions["credential_store"] = store
    app.extensions["mailer"] = mailer
    app.extensions["auth_flow"] = AuthFlowController(
        store=store,
        hasher=hasher,
        otp=otp,
        tokens=SessionTokenService(),
        mailer=mailer,
        min_password_length=app.config["PASSWORD_MIN_LENGTH"],
    )


def _register_error_handlers(app: Flask) -> None:
    """Register JSON error handlers with request IDs."""

    @app.before_request
    def _assign_request_id():  # pragma: no cover
        g.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

    @app.after_request
    def _add_request_id_header(response):  # pragma: no cover
        request_id = g.get("request_id")
        if request_id:
            response.headers.setdefault("X-Request-ID", request_id)
        return response

    @app.errorhandler(HTTPException)
    def _handle_http_exception(error: HTTPException):
        request_id = g.get("request_id") or str(uuid.uuid4())
        response = error.get_response()
        payload = {
            "error": getattr(error, "name", "Error"),
            "detail": error.description,
            "request_id": request_id,
        }
        response.data = json.dumps(payload)
        response.content_type = "application/json"
        response.headers.setdefault("X-Request-ID", request_id)
        return response

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):  # pragma: no cover
        request_id = g.get("request_id") or str(uuid.uuid4())
        app.logger.exception("Unhandled application error", exc_info=error)
        payload = {
            "error": "Internal Server Error",
            "detail": "An unexpected error occurred.",
            "request_id": request_id,
        }
        response = jsonify(payload)
        response.status_code = 500
        response.headers.setdefault("X-Request-ID", request_id)
        return response


if __name__ == "__main__":
    application = create_app()
    application.run(host="0.0.0.0", port=int(os.environ.get("PORT", 3001)))
