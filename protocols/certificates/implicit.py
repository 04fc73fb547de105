"""
Implicit Certificates

Identity-bound certificate material issued by the Trust Authority. A relying
vehicle authenticates the identity-to-key binding from public values only:

    Ai = (p_t + ID*r_v)*P
    Ar = r_v*P
    Ai == Q_t + ID*Ar        (certificate-verification identity)

No signature is exchanged; the identity holds for every honestly issued
certificate independently of the TA's per-registration random r_v.

Author: SecureRoad V2X Project
"""

from dataclasses import dataclass
from typing import Optional

from ecdsa.ellipticcurve import PointJacobi

from config import V2X_CONSTANTS
from protocols.core.exceptions import MessageDecodeError, PrimitiveError
from protocols.core.primitives import (
    base_mul,
    decode_point,
    encode_point,
    identity_to_scalar,
    mod_add,
    mod_mul,
    point_add,
    random_scalar,
    scalar_mul,
)
from protocols.core.types import Identity, MasterKeyPair


@dataclass(frozen=True)
class ImplicitCertificate:
    """
    TA-issued certificate point Ai and reconstruction point Ar.

    Publicly transmissible; consumed once by the registrant to derive its key.
    """

    ai: PointJacobi
    ar: PointJacobi

    def to_bytes(self) -> bytes:
        """Ai || Ar, both SEC1 compressed (66 bytes)."""
        return encode_point(self.ai) + encode_point(self.ar)

    @classmethod
    def from_bytes(cls, data: bytes) -> "ImplicitCertificate":
        size = V2X_CONSTANTS.COMPRESSED_POINT_SIZE
        if len(data) != 2 * size:
            raise MessageDecodeError(f"Certificate must be {2 * size} bytes, got {len(data)}")
        try:
            return cls(ai=decode_point(data[:size]), ar=decode_point(data[size:]))
        except PrimitiveError as e:
            raise MessageDecodeError(f"Invalid certificate point: {e}") from e

    def fingerprint(self) -> str:
        return encode_point(self.ai).hex()[:16]


def generate_master_key_pair(master_scalar: Optional[int] = None) -> MasterKeyPair:
    """
    TA Setup(): draws p_t uniformly at random and computes Q_t = p_t*P.

    Args:
        master_scalar: Fixed p_t (deterministic test vectors, key reload)
    """
    p_t = master_scalar if master_scalar is not None else random_scalar()
    return MasterKeyPair(private_scalar=p_t, public_point=base_mul(p_t))


def issue_implicit_certificate(
    master_key: MasterKeyPair, identity: Identity, r_v: Optional[int] = None
) -> ImplicitCertificate:
    """
    Computes Ai = (p_t + ID*r_v)*P and Ar = r_v*P.

    Args:
        master_key: TA master key pair
        identity: Registering vehicle identity
        r_v: Registration-time random scalar (fresh draw when None)

    Returns:
        ImplicitCertificate
    """
    id_scalar = identity_to_scalar(identity)
    r_v = r_v if r_v is not None else random_scalar()

    ai_scalar = mod_add(master_key.private_scalar, mod_mul(id_scalar, r_v))
    return ImplicitCertificate(ai=base_mul(ai_scalar), ar=base_mul(r_v))


def verify_implicit_certificate(
    certificate: ImplicitCertificate, identity: Identity, ta_public_key: PointJacobi
) -> bool:
    """
    Checks Ai == Q_t + ID*Ar using public values only.

    Returns:
        True if the certificate binds identity to the TA's public key
    """
    id_scalar = identity_to_scalar(identity)
    try:
        expected_ai = point_add(ta_public_key, scalar_mul(certificate.ar, id_scalar))
    except PrimitiveError:
        # Ar crafted so that Q_t + ID*Ar is the point at infinity
        return False
    return certificate.ai == expected_ai
