"""
V2X Implicit-Certificate Protocol Implementations

Implements the primitive suite, implicit certificates and broadcast messages
of the three-party V2X authentication and session-key protocol.

Module Structure:
- core/: Core types, error taxonomy and primitive suite
- certificates/: Implicit certificate issuance and verification
- messages/: Protocol message dataclasses and broadcast frame encoder

Author: SecureRoad V2X Project
"""

__version__ = "1.0.0"

from .core import (
    MessageType,
    VehicleRole,
    MasterKeyPair,
    VehicleKeyPair,
    V2XProtocolError,
    CertificateVerificationFailure,
    DecryptionError,
    PayloadMismatch,
    PrimitiveError,
)

from .certificates import (
    ImplicitCertificate,
    issue_implicit_certificate,
    verify_implicit_certificate,
)

from .messages import (
    CertificateBroadcast,
    KeyResponse,
    PayloadMessage,
    MessageEncoder,
)

__all__ = [
    "__version__",

    # Core
    "MessageType",
    "VehicleRole",
    "MasterKeyPair",
    "VehicleKeyPair",
    "V2XProtocolError",
    "CertificateVerificationFailure",
    "DecryptionError",
    "PayloadMismatch",
    "PrimitiveError",

    # Certificates
    "ImplicitCertificate",
    "issue_implicit_certificate",
    "verify_implicit_certificate",

    # Messages
    "CertificateBroadcast",
    "KeyResponse",
    "PayloadMessage",
    "MessageEncoder",
]
