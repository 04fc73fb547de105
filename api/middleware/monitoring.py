"""
Monitoring Middleware

Flask middleware for automatic metrics collection and request tracking.

Author: SecureRoad V2X Project
"""

import time

from flask import current_app, g, request

from utils.metrics import get_metrics_collector


def setup_monitoring(app):
    """
    Setup monitoring middleware for Flask app

    Args:
        app: Flask application instance
    """

    @app.before_request
    def before_request():
        """Record request start time"""
        g.start_time = time.time()

    @app.after_request
    def after_request(response):
        """Record metrics after request completes"""
        if hasattr(g, "start_time"):
            latency_ms = (time.time() - g.start_time) * 1000

            get_metrics_collector().record_request(
                endpoint=request.path,
                method=request.method,
                status_code=response.status_code,
                latency_ms=latency_ms,
                entity_id=current_app.config.get("ENTITY_ID", "unknown"),
                error=None if response.status_code < 400 else f"HTTP {response.status_code}",
            )

            # Add latency header for debugging
            response.headers["X-Response-Time"] = f"{latency_ms:.2f}ms"

        return response

    app.logger.info("✅ Monitoring middleware configured")
