"""
Registration Blueprint

HTTP form of the TA registration channel.

Request Body (JSON):
    {"identity": 3}
    {"identity": "VEHICLE_001"}
    {"identity": "0a0b0c", "identity_kind": "bytes"}

Response Body (JSON):
    {"identity": ..., "ai": "<hex>", "ar": "<hex>", "q_t": "<hex>"}

Author: SecureRoad V2X Project
"""

from flask import Blueprint, current_app, jsonify, request

from api.middleware import require_api_key
from protocols.core.primitives import encode_point
from protocols.core.types import ResponseCode
from protocols.messages.types import RegistrationRequest


def parse_identity(data: dict):
    """
    Extracts the identity from a registration request body.

    Raises:
        ValueError: If the identity is missing or of an unsupported type
    """
    if "identity" not in data:
        raise ValueError("Missing required field: identity")

    identity = data["identity"]
    kind = data.get("identity_kind")

    if kind == "bytes":
        if not isinstance(identity, str):
            raise ValueError("Byte identities must be hex strings")
        return bytes.fromhex(identity)
    if kind is not None:
        raise ValueError(f"Unsupported identity_kind: {kind}")
    if isinstance(identity, bool) or not isinstance(identity, (int, str)):
        raise ValueError("Identity must be an integer or a string")
    return identity


def create_registration_blueprint(ta_instance):
    """Create Flask blueprint for the registration endpoint."""
    bp = Blueprint("registration", __name__)
    bp.ta = ta_instance

    @bp.route("/request", methods=["POST"])
    @require_api_key
    def registration_request():
        """
        POST /api/registration/request

        Issues an implicit certificate (Ai, Ar) for the requested identity.
        """
        if not request.is_json:
            return (
                jsonify(
                    {
                        "error": "Invalid Content-Type",
                        "message": "Expected application/json",
                        "responseCode": ResponseCode.BAD_CONTENT_TYPE.value,
                    }
                ),
                415,
            )

        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return _bad_request("Request body must be a JSON object")

        try:
            identity = parse_identity(data)
            response = bp.ta.handle_registration(RegistrationRequest(identity=identity))
        except ValueError as e:
            current_app.logger.warning(f"Registration request rejected: {e}")
            return _bad_request(str(e))

        current_app.logger.info(f"✅ Certificato implicito emesso via REST per {identity!r}")
        return jsonify(
            {
                "identity": identity.hex() if isinstance(identity, bytes) else identity,
                "ai": encode_point(response.certificate.ai).hex(),
                "ar": encode_point(response.certificate.ar).hex(),
                "q_t": encode_point(response.ta_public_key).hex(),
                "responseCode": ResponseCode.OK.value,
            }
        )

    return bp


def _bad_request(message: str):
    return (
        jsonify(
            {
                "error": "Bad Request",
                "message": message,
                "responseCode": ResponseCode.BAD_REQUEST.value,
            }
        ),
        400,
    )
