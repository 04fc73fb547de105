"""
Monitoring Blueprint

Endpoints for request metrics and protocol milestones.

Author: SecureRoad V2X Project
"""

from dataclasses import asdict
from datetime import datetime, timezone

from flask import Blueprint, Response, jsonify, request

from utils.metrics import get_metrics_collector
from utils.milestones import get_milestone_log


def create_monitoring_blueprint(ta_instance):
    """Create Flask blueprint for monitoring endpoints."""
    bp = Blueprint("monitoring", __name__)
    bp.ta = ta_instance

    @bp.route("/metrics", methods=["GET"])
    def get_metrics():
        """
        Get current metrics in JSON format

        Returns:
            JSON with request counters, aggregated stats and TA statistics
        """
        metrics = get_metrics_collector()
        stats_all = metrics.get_stats()
        stats_5min = metrics.get_stats(last_n_minutes=5)

        return jsonify(
            {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "uptime_seconds": metrics.get_uptime_seconds(),
                "counters": metrics.get_counters(),
                "stats": {
                    "all_time": {
                        "total_requests": stats_all.total_requests,
                        "successful_requests": stats_all.successful_requests,
                        "failed_requests": stats_all.failed_requests,
                        "avg_latency_ms": round(stats_all.avg_latency_ms, 2),
                        "error_rate": round(stats_all.error_rate, 2),
                        "status_codes": stats_all.status_codes,
                        "endpoints": stats_all.endpoints,
                    },
                    "last_5_minutes": {
                        "total_requests": stats_5min.total_requests,
                        "avg_latency_ms": round(stats_5min.avg_latency_ms, 2),
                        "error_rate": round(stats_5min.error_rate, 2),
                    },
                },
                "recent_errors": [
                    {
                        "timestamp": e.timestamp.isoformat(),
                        "endpoint": e.endpoint,
                        "status_code": e.status_code,
                        "error": e.error,
                    }
                    for e in metrics.get_recent_errors(limit=request.args.get("errors", 10, type=int))
                ],
                "sessions": asdict(metrics.get_session_stats()),
                "ta": bp.ta.get_statistics(),
            }
        )

    @bp.route("/metrics/prometheus", methods=["GET"])
    def get_prometheus_metrics():
        """Get metrics in Prometheus text format"""
        return Response(
            get_metrics_collector().export_prometheus_format(),
            mimetype="text/plain; version=0.0.4",
        )

    @bp.route("/milestones", methods=["GET"])
    def get_milestones():
        """Start/completion milestones recorded in this process, with correspondence check"""
        log = get_milestone_log()
        violations = log.check_correspondence()
        return jsonify(
            {
                "summary": log.summary(),
                "correspondence_ok": not violations,
                "violations": violations,
                "events": [
                    {
                        "sequence": m.sequence,
                        "timestamp": m.timestamp.isoformat(),
                        "role": m.role.value,
                        "identity": m.identity.hex() if isinstance(m.identity, bytes) else m.identity,
                        "kind": m.kind.value,
                        "session_id": m.session_id.hex() if m.session_id else None,
                    }
                    for m in log.events()
                ],
            }
        )

    return bp
