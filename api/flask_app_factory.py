"""
Flask App Factory for the Trust Authority REST API

Exposes the TA registration channel and public-key channel over HTTP,
together with health and monitoring endpoints.

Author: SecureRoad V2X Project
"""

import logging
from typing import Any, Dict, Optional

from flask import Flask, jsonify
from flask_cors import CORS

from protocols.core.types import ResponseCode


def create_app(trust_authority, config: Optional[Dict[str, Any]] = None) -> Flask:
    """
    Factory function to create the Flask app for a Trust Authority.

    Args:
        trust_authority: TrustAuthority instance
        config: Configuration dictionary

    Returns:
        Flask: Configured Flask application
    """
    app = Flask(__name__)

    # Default configuration
    default_config = {
        "api_keys": [],
        "cors_origins": "*",  # "*" for dev, list of domains for production
        "log_level": "INFO",
        "max_content_length": 64 * 1024,
        "environment": "development",
    }

    if config:
        default_config.update(config)

    cors_origins = default_config["cors_origins"]
    if default_config["environment"] == "production" and cors_origins == "*":
        app.logger.warning("⚠️  SECURITY: CORS set to '*' in production! Specify allowed domains.")

    app.config.update(
        {
            "MAX_CONTENT_LENGTH": default_config["max_content_length"],
            "JSON_SORT_KEYS": False,
            "ENTITY_ID": trust_authority.ta_id,
            "ENVIRONMENT": default_config["environment"],
        }
    )

    CORS(
        app,
        resources={r"/*": {"origins": cors_origins}},
        allow_headers=["Content-Type", "X-API-Key", "Authorization"],
        methods=["GET", "POST", "OPTIONS"],
        supports_credentials=False,
    )

    level = getattr(logging, default_config["log_level"].upper(), logging.INFO)
    app.logger.setLevel(level)

    app.logger.info("=" * 80)
    app.logger.info("Starting Trust Authority REST API Server")
    app.logger.info(f"Entity ID: {app.config['ENTITY_ID']}")
    app.logger.info("=" * 80)

    app.config["ENTITY_INSTANCE"] = trust_authority

    from .middleware.auth import setup_auth
    from .middleware.monitoring import setup_monitoring

    setup_auth(app, default_config["api_keys"])
    setup_monitoring(app)

    from .blueprints.monitoring_bp import create_monitoring_blueprint
    from .blueprints.registration_bp import create_registration_blueprint
    from .blueprints.ta_bp import create_ta_blueprint

    app.register_blueprint(create_registration_blueprint(trust_authority), url_prefix="/api/registration")
    app.register_blueprint(create_ta_blueprint(trust_authority), url_prefix="/api/ta")
    app.register_blueprint(create_monitoring_blueprint(trust_authority), url_prefix="/api/monitoring")

    app.logger.info("Registered TA endpoints:")
    for endpoint in AVAILABLE_ENDPOINTS:
        app.logger.info(f"  {endpoint}")

    @app.route("/")
    def index():
        return jsonify(
            {
                "name": "Trust Authority REST API",
                "version": "1.0.0",
                "protocol": "V2X implicit certificates (NIST P-256)",
                "entity_id": app.config["ENTITY_ID"],
                "endpoints": AVAILABLE_ENDPOINTS,
            }
        )

    # Health check endpoint (no auth required)
    @app.route("/health")
    def health_check():
        return jsonify({"status": "ok", "entity_id": app.config["ENTITY_ID"]})

    # Global error handlers
    @app.errorhandler(400)
    def bad_request(e):
        return _error("Bad Request", str(e), ResponseCode.BAD_REQUEST, 400)

    @app.errorhandler(401)
    def unauthorized(e):
        return _error("Unauthorized", "Invalid or missing API key", ResponseCode.UNAUTHORIZED, 401)

    @app.errorhandler(404)
    def not_found(e):
        return _error(
            "Not Found", "The requested endpoint does not exist", ResponseCode.BAD_REQUEST, 404
        )

    @app.errorhandler(405)
    def method_not_allowed(e):
        return _error("Method Not Allowed", str(e), ResponseCode.BAD_REQUEST, 405)

    @app.errorhandler(415)
    def unsupported_media_type(e):
        return _error(
            "Unsupported Media Type",
            "Content-Type must be application/json",
            ResponseCode.BAD_CONTENT_TYPE,
            415,
        )

    @app.errorhandler(500)
    def internal_error(e):
        app.logger.error(f"Internal server error: {e}")
        return _error(
            "Internal Server Error",
            "An unexpected error occurred",
            ResponseCode.INTERNAL_SERVER_ERROR,
            500,
        )

    return app


AVAILABLE_ENDPOINTS = [
    "GET  /",
    "POST /api/registration/request",
    "GET  /api/ta/public-key",
    "GET  /api/ta/stats",
    "GET  /api/monitoring/metrics",
    "GET  /api/monitoring/metrics/prometheus",
    "GET  /api/monitoring/milestones",
    "GET  /health",
]


def _error(error: str, message: str, code: ResponseCode, status: int):
    return jsonify({"error": error, "message": message, "responseCode": code.value}), status
