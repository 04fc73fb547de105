"""
V2X Core Types and Constants

Defines enumerations, key-material containers and constants used throughout
the implicit-certificate authentication protocol.

Author: SecureRoad V2X Project
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from ecdsa.ellipticcurve import PointJacobi


# ============================================================================
# PROTOCOL CONSTANTS
# ============================================================================

# Wire frame header: magic "VX" + version
FRAME_MAGIC = b"VX"
FRAME_VERSION = 1

# Identity values accepted by the TA (int used as scalar, str/bytes hashed)
Identity = Union[int, str, bytes]


# ============================================================================
# ENUMERATIONS
# ============================================================================


class MessageType(Enum):
    """
    Broadcast message identifiers.

    All three travel on the public broadcast channel and carry a session id.
    """

    CERTIFICATE_BROADCAST = 0x01
    KEY_RESPONSE = 0x02
    TEST_PAYLOAD = 0x03


class VehicleRole(Enum):
    """Protocol roles"""

    REGISTRANT = "V"
    VERIFIER = "U"


class RegistrantState(Enum):
    """Registrant (V) session states"""

    IDLE = "Idle"
    REGISTERED = "Registered"
    KEY_DERIVED = "KeyDerived"
    BROADCAST = "Broadcast"
    SESSION_ESTABLISHED = "SessionEstablished"
    VERIFIED = "Verified"
    FAILED = "Failed"


class VerifierState(Enum):
    """Verifier (U) session states"""

    IDLE = "Idle"
    KEY_READY = "KeyReady"
    PEER_OBSERVED = "PeerObserved"
    CERTIFICATE_VERIFIED = "CertificateVerified"
    SESSION_ESTABLISHED = "SessionEstablished"
    DONE = "Done"
    FAILED = "Failed"


class ResponseCode(Enum):
    """
    Response codes for TA REST responses
    """

    OK = 0
    BAD_CONTENT_TYPE = 2
    BAD_REQUEST = 8
    UNAUTHORIZED = 9
    INTERNAL_SERVER_ERROR = 10


class MilestoneKind(Enum):
    """Observable start/completion markers"""

    START = "start"
    COMPLETE = "complete"


# ============================================================================
# KEY MATERIAL
# ============================================================================


@dataclass(frozen=True)
class MasterKeyPair:
    """
    TA long-term identity: p_t and Q_t = p_t*P.

    The private scalar is excluded from repr so it never reaches a log line.
    """

    private_scalar: int = field(repr=False)
    public_point: PointJacobi


@dataclass(frozen=True)
class VehicleKeyPair:
    """Vehicle key pair: p and Q = p*P"""

    private_scalar: int = field(repr=False)
    public_point: PointJacobi
