"""
Primitive Suite

Stateless adapters over the vetted primitive libraries consumed by the
protocol core:
- Elliptic-curve point arithmetic on NIST P-256 (python-ecdsa)
- Modular scalar arithmetic over the curve order
- AES-256-GCM authenticated encryption (cryptography)
- ECDH + HKDF-SHA256 agreement key derivation (cryptography)

Standards Reference:
- SEC 1 v2 - Point compression
- NIST SP 800-56A Rev. 3 - ECDH
- RFC 5869 - HKDF

Author: SecureRoad V2X Project
"""

import hashlib
import secrets
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from ecdsa.curves import NIST256p
from ecdsa.ellipticcurve import INFINITY, PointJacobi
from ecdsa.errors import MalformedPointError

from config import V2X_CONSTANTS
from protocols.core.exceptions import DecryptionError, PrimitiveError
from protocols.core.types import Identity


# Curve domain parameters (P-256): base point P and group order n
CURVE = NIST256p
GENERATOR: PointJacobi = NIST256p.generator
ORDER: int = NIST256p.order


# ============================================================================
# SCALAR ARITHMETIC
# ============================================================================


def random_scalar() -> int:
    """Draws a scalar uniformly from [1, n-1]."""
    return secrets.randbelow(ORDER - 1) + 1


def mod_add(a: int, b: int) -> int:
    """Add(scalar, scalar) over the scalar field."""
    return (a + b) % ORDER


def mod_mul(a: int, b: int) -> int:
    """Mul(scalar, scalar) over the scalar field."""
    return (a * b) % ORDER


def normalize_scalar(scalar: int) -> int:
    """
    Reduces a scalar mod n and rejects the zero scalar.

    Raises:
        PrimitiveError: If the scalar is not an int or reduces to zero
    """
    if isinstance(scalar, bool) or not isinstance(scalar, int):
        raise PrimitiveError(f"Scalar must be an int, got {type(scalar).__name__}")
    reduced = scalar % ORDER
    if reduced == 0:
        raise PrimitiveError("Scalar reduces to zero modulo the curve order")
    return reduced


def hash_to_scalar(data: bytes) -> int:
    """SHA-256 digest of data, reduced mod n."""
    return int.from_bytes(hashlib.sha256(data).digest(), "big") % ORDER


def identity_to_scalar(identity: Identity) -> int:
    """
    Maps a vehicle identity to the scalar ID used in the certificate equations.

    Integers are used directly (mod n); strings and bytes are hashed.

    Raises:
        ValueError: If the identity is empty, negative or maps to zero
    """
    if isinstance(identity, bool):
        raise ValueError("Identity cannot be a bool")
    if isinstance(identity, int):
        if identity <= 0:
            raise ValueError(f"Integer identity must be positive, got {identity}")
        scalar = identity % ORDER
    elif isinstance(identity, (str, bytes)):
        raw = identity.encode("utf-8") if isinstance(identity, str) else identity
        if not raw:
            raise ValueError("Identity cannot be empty")
        scalar = hash_to_scalar(raw)
    else:
        raise ValueError(f"Unsupported identity type: {type(identity).__name__}")

    if scalar == 0:
        raise ValueError("Identity maps to the zero scalar")
    return scalar


# ============================================================================
# POINT ARITHMETIC
# ============================================================================


def _is_infinity(point) -> bool:
    return point is INFINITY or point == INFINITY


def scalar_mul(point: PointJacobi, scalar: int) -> PointJacobi:
    """
    ScalarMul(point, scalar).

    Raises:
        PrimitiveError: On a zero scalar or a result at infinity
    """
    result = point * normalize_scalar(scalar)
    if _is_infinity(result):
        raise PrimitiveError("Scalar multiplication produced the point at infinity")
    return result


def base_mul(scalar: int) -> PointJacobi:
    """scalar*P for the curve base point P."""
    return scalar_mul(GENERATOR, scalar)


def point_add(a: PointJacobi, b: PointJacobi) -> PointJacobi:
    """
    Point addition a + b.

    Raises:
        PrimitiveError: If the sum is the point at infinity
    """
    result = a + b
    if _is_infinity(result):
        raise PrimitiveError("Point addition produced the point at infinity")
    return result


def encode_point(point: PointJacobi) -> bytes:
    """SEC1 compressed encoding (33 bytes)."""
    if _is_infinity(point):
        raise PrimitiveError("Cannot encode the point at infinity")
    return point.to_bytes("compressed")


def decode_point(data: bytes) -> PointJacobi:
    """
    Decodes a SEC1 compressed point and checks it lies on the curve.

    Raises:
        PrimitiveError: If the encoding is malformed or off-curve
    """
    if len(data) != V2X_CONSTANTS.COMPRESSED_POINT_SIZE:
        raise PrimitiveError(
            f"Compressed point must be {V2X_CONSTANTS.COMPRESSED_POINT_SIZE} bytes, got {len(data)}"
        )
    try:
        return PointJacobi.from_bytes(
            CURVE.curve, data, valid_encodings=("compressed",), order=ORDER
        )
    except (MalformedPointError, ValueError) as e:
        raise PrimitiveError(f"Malformed curve point: {e}") from e


# ============================================================================
# IMPLICIT CERTIFICATE KEY DERIVATION
# ============================================================================


def derive_from_certificate(ai: PointJacobi, rv: int) -> int:
    """
    Derives a registrant private scalar from its certificate point.

    p_v = h(Ai) * rv mod n, where h(Ai) hashes the compressed encoding of Ai.
    rv must be freshly drawn for every session.
    """
    ai_scalar = hash_to_scalar(encode_point(ai))
    return normalize_scalar(mod_mul(ai_scalar, normalize_scalar(rv)))


# ============================================================================
# SYMMETRIC AUTHENTICATED ENCRYPTION (AES-256-GCM)
# ============================================================================


def generate_group_key() -> bytes:
    """Random 256-bit symmetric key (group key provisioning helper)."""
    return secrets.token_bytes(V2X_CONSTANTS.SYMMETRIC_KEY_SIZE)


def _aead(key: bytes) -> AESGCM:
    if len(key) != V2X_CONSTANTS.SYMMETRIC_KEY_SIZE:
        raise PrimitiveError(
            f"Symmetric key must be {V2X_CONSTANTS.SYMMETRIC_KEY_SIZE} bytes, got {len(key)}"
        )
    return AESGCM(key)


def sym_encrypt(plaintext: bytes, key: bytes, aad: Optional[bytes] = None) -> bytes:
    """
    SymEncrypt(plaintext, key).

    Returns:
        nonce (12 bytes) || ciphertext || tag (16 bytes)
    """
    nonce = secrets.token_bytes(V2X_CONSTANTS.AEAD_NONCE_SIZE)
    return nonce + _aead(key).encrypt(nonce, plaintext, aad)


def sym_decrypt(ciphertext: bytes, key: bytes, aad: Optional[bytes] = None) -> bytes:
    """
    SymDecrypt(ciphertext, key).

    Raises:
        DecryptionError: On tag mismatch or malformed input
    """
    aead = _aead(key)
    min_size = V2X_CONSTANTS.AEAD_NONCE_SIZE + V2X_CONSTANTS.AEAD_TAG_SIZE
    if len(ciphertext) < min_size:
        raise DecryptionError(f"Ciphertext too short: {len(ciphertext)} bytes")

    nonce = ciphertext[: V2X_CONSTANTS.AEAD_NONCE_SIZE]
    body = ciphertext[V2X_CONSTANTS.AEAD_NONCE_SIZE:]
    try:
        return aead.decrypt(nonce, body, aad)
    except InvalidTag as e:
        raise DecryptionError("Authentication tag mismatch") from e


# ============================================================================
# DH AGREEMENT
# ============================================================================


def derive_agreement_key(
    private_scalar: int, peer_public_point: PointJacobi, context: bytes = b""
) -> bytes:
    """
    DeriveAgreementKey(privateScalar, peerPublicPoint).

    ECDH on P-256 followed by HKDF-SHA256. Both sides obtain the same key
    because p_v*Q_u = p_u*Q_v; context (e.g. the session id) must match too.

    Returns:
        32-byte symmetric session key
    """
    try:
        private_key = ec.derive_private_key(normalize_scalar(private_scalar), ec.SECP256R1())
        peer_key = ec.EllipticCurvePublicKey.from_encoded_point(
            ec.SECP256R1(), encode_point(peer_public_point)
        )
        shared_secret = private_key.exchange(ec.ECDH(), peer_key)
    except ValueError as e:
        raise PrimitiveError(f"ECDH agreement failed: {e}") from e

    kdf = HKDF(
        algorithm=hashes.SHA256(),
        length=V2X_CONSTANTS.SYMMETRIC_KEY_SIZE,
        salt=None,
        info=V2X_CONSTANTS.SESSION_KEY_INFO + context,
    )
    return kdf.derive(shared_secret)
