"""
V2X Protocol Message Types

Dataclasses for the messages exchanged during a session. Registration
messages travel on the confidential point-to-point registration channel;
the broadcast messages travel on the public broadcast channel and carry an
explicit session id so that concurrent sessions can be demultiplexed.

Author: SecureRoad V2X Project
"""

from dataclasses import dataclass
from typing import ClassVar

from ecdsa.ellipticcurve import PointJacobi

from protocols.certificates.implicit import ImplicitCertificate
from protocols.core.types import Identity, MessageType


# ============================================================================
# REGISTRATION CHANNEL (TA <-> vehicle)
# ============================================================================


@dataclass(frozen=True)
class RegistrationRequest:
    """(identity) request sent by the registrant to the TA"""

    identity: Identity


@dataclass(frozen=True)
class RegistrationResponse:
    """(Ai, Ar, Q_t) response returned by the TA"""

    certificate: ImplicitCertificate
    ta_public_key: PointJacobi


# ============================================================================
# BROADCAST CHANNEL (vehicle <-> vehicle)
# ============================================================================


@dataclass(frozen=True)
class CertificateBroadcast:
    """(Ai, Ar, Enc_groupKey(Q_v)) emitted by the registrant"""

    MESSAGE_TYPE: ClassVar[MessageType] = MessageType.CERTIFICATE_BROADCAST

    session_id: bytes
    identity: Identity
    certificate: ImplicitCertificate
    encrypted_public_key: bytes


@dataclass(frozen=True)
class KeyResponse:
    """Enc_groupKey(Q_u) returned by the verifier"""

    MESSAGE_TYPE: ClassVar[MessageType] = MessageType.KEY_RESPONSE

    session_id: bytes
    encrypted_public_key: bytes


@dataclass(frozen=True)
class PayloadMessage:
    """Enc_sessionKey(test payload) sent by the verifier"""

    MESSAGE_TYPE: ClassVar[MessageType] = MessageType.TEST_PAYLOAD

    session_id: bytes
    ciphertext: bytes
