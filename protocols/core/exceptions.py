"""
Protocol Error Taxonomy

Session-local failures derive from V2XProtocolError: they abort the affected
session and never touch other sessions running on the same channel.
PrimitiveError signals a violated precondition inside the primitive layer
(malformed curve point, zero scalar) and is treated as fatal.

Author: SecureRoad V2X Project
"""


class V2XProtocolError(Exception):
    """Base class for session-local protocol failures."""


class CertificateVerificationFailure(V2XProtocolError):
    """Ai != Q_t + ID*Ar: the certificate was not issued by the TA for this identity."""


class DecryptionError(V2XProtocolError):
    """Ciphertext failed AEAD authentication under the expected key, or is malformed."""


class PayloadMismatch(V2XProtocolError):
    """The decrypted test payload differs from the expected value."""


class ProtocolViolation(V2XProtocolError):
    """An operation was invoked out of order, or fresh randomness was reused."""


class ReplayDetected(V2XProtocolError):
    """A frame already accepted for a session was received again."""


class ChannelTimeout(V2XProtocolError):
    """No matching frame arrived on the channel within the caller's timeout."""


class MessageDecodeError(V2XProtocolError):
    """A wire frame could not be decoded."""


class RegistrationError(V2XProtocolError):
    """The registration channel could not deliver a certificate response."""


class PrimitiveError(Exception):
    """Unrecoverable failure of an underlying primitive (configuration error)."""
