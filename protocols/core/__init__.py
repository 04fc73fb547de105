"""
V2X Core Types and Primitives

This module provides the foundational types, error taxonomy and primitive
suite for the implicit-certificate authentication protocol.

Submodules:
- types: Enumerations, key-material containers, constants
- exceptions: Session-local and fatal error classes
- primitives: Point/scalar arithmetic, AEAD, ECDH key agreement

Author: SecureRoad V2X Project
"""

from .types import (
    FRAME_MAGIC,
    FRAME_VERSION,
    Identity,
    MessageType,
    VehicleRole,
    RegistrantState,
    VerifierState,
    MilestoneKind,
    MasterKeyPair,
    VehicleKeyPair,
)

from .exceptions import (
    V2XProtocolError,
    CertificateVerificationFailure,
    DecryptionError,
    PayloadMismatch,
    ProtocolViolation,
    ReplayDetected,
    ChannelTimeout,
    MessageDecodeError,
    RegistrationError,
    PrimitiveError,
)

from .primitives import (
    GENERATOR,
    ORDER,
    random_scalar,
    mod_add,
    mod_mul,
    hash_to_scalar,
    identity_to_scalar,
    scalar_mul,
    base_mul,
    point_add,
    encode_point,
    decode_point,
    derive_from_certificate,
    generate_group_key,
    sym_encrypt,
    sym_decrypt,
    derive_agreement_key,
)

__all__ = [
    # Constants
    "FRAME_MAGIC",
    "FRAME_VERSION",
    "GENERATOR",
    "ORDER",

    # Types
    "Identity",
    "MessageType",
    "VehicleRole",
    "RegistrantState",
    "VerifierState",
    "MilestoneKind",
    "MasterKeyPair",
    "VehicleKeyPair",

    # Errors
    "V2XProtocolError",
    "CertificateVerificationFailure",
    "DecryptionError",
    "PayloadMismatch",
    "ProtocolViolation",
    "ReplayDetected",
    "ChannelTimeout",
    "MessageDecodeError",
    "RegistrationError",
    "PrimitiveError",

    # Primitives
    "random_scalar",
    "mod_add",
    "mod_mul",
    "hash_to_scalar",
    "identity_to_scalar",
    "scalar_mul",
    "base_mul",
    "point_add",
    "encode_point",
    "decode_point",
    "derive_from_certificate",
    "generate_group_key",
    "sym_encrypt",
    "sym_decrypt",
    "derive_agreement_key",
]
