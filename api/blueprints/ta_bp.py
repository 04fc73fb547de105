"""
TA Public Key Blueprint

Authentic distribution of Q_t to vehicles (verifiers do not register).

Author: SecureRoad V2X Project
"""

from flask import Blueprint, jsonify


def create_ta_blueprint(ta_instance):
    """Create Flask blueprint for TA information endpoints."""
    bp = Blueprint("ta", __name__)
    bp.ta = ta_instance

    @bp.route("/public-key", methods=["GET"])
    def public_key():
        """GET /api/ta/public-key -> {"ta_id", "q_t", "curve"}"""
        return jsonify(
            {
                "ta_id": bp.ta.ta_id,
                "q_t": bp.ta.public_key_bytes().hex(),
                "curve": "NIST P-256",
            }
        )

    @bp.route("/stats", methods=["GET"])
    def stats():
        return jsonify(bp.ta.get_statistics())

    return bp
