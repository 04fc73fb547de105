"""
V2X Protocol Messages

Registration messages (TA <-> vehicle) and broadcast messages
(vehicle <-> vehicle) with their binary frame encoder.

Author: SecureRoad V2X Project
"""

from .types import (
    RegistrationRequest,
    RegistrationResponse,
    CertificateBroadcast,
    KeyResponse,
    PayloadMessage,
)
from .encoder import (
    BroadcastMessage,
    MessageEncoder,
    associated_data,
    decode_identity,
    encode_identity,
)

__all__ = [
    # Registration
    "RegistrationRequest",
    "RegistrationResponse",

    # Broadcast
    "CertificateBroadcast",
    "KeyResponse",
    "PayloadMessage",
    "BroadcastMessage",

    # Encoding
    "MessageEncoder",
    "associated_data",
    "decode_identity",
    "encode_identity",
]
