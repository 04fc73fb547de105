"""
Authentication Middleware

API key authentication for the TA registration endpoint. In deployment the
registration channel additionally runs over TLS.

Author: SecureRoad V2X Project
"""

from functools import wraps
from typing import Optional

from flask import current_app, jsonify, request

from protocols.core.types import ResponseCode


def setup_auth(app, api_keys=None):
    """
    Configure authentication for Flask app

    Args:
        app: Flask application instance
        api_keys: List of valid API keys (optional)
    """
    app.config["API_KEYS"] = set(api_keys or [])
    if api_keys:
        app.logger.info(f"Authentication configured with {len(api_keys)} API keys")
    else:
        app.logger.warning("No API keys configured - authentication disabled")


def extract_api_key() -> Optional[str]:
    """
    Reads the API key from the current request.

    Checks, in order:
    1. Authorization header: "Bearer <api_key>"
    2. X-API-Key header: "<api_key>"
    3. Query parameter: ?api_key=<api_key>
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:]
    return request.headers.get("X-API-Key") or request.args.get("api_key")


def require_api_key(f):
    """
    Decorator to require API key authentication

    Usage:
        @bp.route('/request', methods=['POST'])
        @require_api_key
        def registration_request():
            ...
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        api_keys = current_app.config.get("API_KEYS", set())

        # If no keys configured, allow access (dev mode)
        if not api_keys or extract_api_key() in api_keys:
            return f(*args, **kwargs)

        current_app.logger.warning(
            f"Unauthorized access attempt to {request.path} from {request.remote_addr}"
        )
        return (
            jsonify(
                {
                    "error": "Unauthorized",
                    "message": "Valid API key required",
                    "responseCode": ResponseCode.UNAUTHORIZED.value,
                    "hint": "Provide API key via Authorization header, X-API-Key header, or api_key parameter",
                }
            ),
            401,
        )

    return decorated_function
