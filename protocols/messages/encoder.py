"""
V2X Broadcast Message Encoder/Decoder.

Binary framing for the messages carried on the public broadcast channel:

    Frame  := magic "VX" (2) | version (1) | type (1) | session_id (16) | Field*
    Field  := tag (1) | length (2, big endian) | value

Points are SEC1 compressed; identities are prefixed by a kind byte
(0 = int, 1 = UTF-8 str, 2 = raw bytes).

Author: SecureRoad V2X Project
"""

import struct
from typing import Dict, Union

from config import V2X_CONSTANTS
from protocols.certificates.implicit import ImplicitCertificate
from protocols.core.exceptions import MessageDecodeError
from protocols.core.types import FRAME_MAGIC, FRAME_VERSION, Identity, MessageType
from protocols.messages.types import CertificateBroadcast, KeyResponse, PayloadMessage

BroadcastMessage = Union[CertificateBroadcast, KeyResponse, PayloadMessage]

# Header: magic, version, type, session id
_HEADER = struct.Struct(f">2sBB{V2X_CONSTANTS.SESSION_ID_SIZE}s")
_FIELD = struct.Struct(">BH")

# Field tags
TAG_IDENTITY = 0x01
TAG_CERTIFICATE = 0x02
TAG_ENC_PUBLIC_KEY = 0x03
TAG_CIPHERTEXT = 0x04

_REQUIRED_FIELDS = {
    MessageType.CERTIFICATE_BROADCAST: {TAG_IDENTITY, TAG_CERTIFICATE, TAG_ENC_PUBLIC_KEY},
    MessageType.KEY_RESPONSE: {TAG_ENC_PUBLIC_KEY},
    MessageType.TEST_PAYLOAD: {TAG_CIPHERTEXT},
}

_IDENTITY_INT = 0
_IDENTITY_STR = 1
_IDENTITY_BYTES = 2


# ============================================================================
# IDENTITY ENCODING
# ============================================================================


def encode_identity(identity: Identity) -> bytes:
    """Kind byte followed by the identity value."""
    if isinstance(identity, bool):
        raise ValueError("Identity cannot be a bool")
    if isinstance(identity, int):
        if identity <= 0:
            raise ValueError(f"Integer identity must be positive, got {identity}")
        return bytes([_IDENTITY_INT]) + identity.to_bytes((identity.bit_length() + 7) // 8, "big")
    if isinstance(identity, str):
        return bytes([_IDENTITY_STR]) + identity.encode("utf-8")
    if isinstance(identity, bytes):
        return bytes([_IDENTITY_BYTES]) + identity
    raise ValueError(f"Unsupported identity type: {type(identity).__name__}")


def decode_identity(data: bytes) -> Identity:
    if not data:
        raise MessageDecodeError("Empty identity field")
    kind, value = data[0], data[1:]
    if kind == _IDENTITY_INT:
        if not value:
            raise MessageDecodeError("Empty integer identity")
        return int.from_bytes(value, "big")
    if kind == _IDENTITY_STR:
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MessageDecodeError(f"Invalid UTF-8 identity: {e}") from e
    if kind == _IDENTITY_BYTES:
        return value
    raise MessageDecodeError(f"Unknown identity kind: {kind}")


# ============================================================================
# ASSOCIATED DATA
# ============================================================================


def associated_data(message_type: MessageType, session_id: bytes, *context: bytes) -> bytes:
    """
    AEAD associated data binding a ciphertext to its message type and session.

    Extra context values (e.g. encoded public keys) are appended in order.
    """
    return bytes([message_type.value]) + session_id + b"".join(context)


# ============================================================================
# MESSAGE ENCODER/DECODER
# ============================================================================


class MessageEncoder:
    """
    Encoder/decoder for broadcast frames.

    Stateless; a single instance can be shared by any number of sessions.
    """

    @staticmethod
    def _field(tag: int, value: bytes) -> bytes:
        if len(value) > 0xFFFF:
            raise ValueError(f"Field 0x{tag:02x} too long: {len(value)} bytes")
        return _FIELD.pack(tag, len(value)) + value

    def encode(self, message: BroadcastMessage) -> bytes:
        """
        Serialize a broadcast message.

        Returns:
            Frame bytes ready for the broadcast channel
        """
        if len(message.session_id) != V2X_CONSTANTS.SESSION_ID_SIZE:
            raise ValueError(
                f"session_id must be {V2X_CONSTANTS.SESSION_ID_SIZE} bytes, got {len(message.session_id)}"
            )

        header = _HEADER.pack(FRAME_MAGIC, FRAME_VERSION, message.MESSAGE_TYPE.value, message.session_id)

        if isinstance(message, CertificateBroadcast):
            body = (
                self._field(TAG_IDENTITY, encode_identity(message.identity))
                + self._field(TAG_CERTIFICATE, message.certificate.to_bytes())
                + self._field(TAG_ENC_PUBLIC_KEY, message.encrypted_public_key)
            )
        elif isinstance(message, KeyResponse):
            body = self._field(TAG_ENC_PUBLIC_KEY, message.encrypted_public_key)
        elif isinstance(message, PayloadMessage):
            body = self._field(TAG_CIPHERTEXT, message.ciphertext)
        else:
            raise TypeError(f"Unsupported message: {type(message).__name__}")

        return header + body

    def decode(self, frame: bytes) -> BroadcastMessage:
        """
        Parse a broadcast frame.

        Raises:
            MessageDecodeError: On bad magic/version, unknown type, truncated
                or duplicate fields, or missing required fields
        """
        if len(frame) < _HEADER.size:
            raise MessageDecodeError(f"Frame too short: {len(frame)} bytes")

        magic, version, type_value, session_id = _HEADER.unpack_from(frame)
        if magic != FRAME_MAGIC:
            raise MessageDecodeError(f"Bad frame magic: {magic!r}")
        if version != FRAME_VERSION:
            raise MessageDecodeError(f"Unsupported frame version: {version}")
        try:
            message_type = MessageType(type_value)
        except ValueError as e:
            raise MessageDecodeError(f"Unknown message type: 0x{type_value:02x}") from e

        fields = self._parse_fields(frame[_HEADER.size:])
        missing = _REQUIRED_FIELDS[message_type] - fields.keys()
        if missing:
            raise MessageDecodeError(f"Missing fields for {message_type.name}: {sorted(missing)}")
        unexpected = fields.keys() - _REQUIRED_FIELDS[message_type]
        if unexpected:
            raise MessageDecodeError(f"Unexpected fields for {message_type.name}: {sorted(unexpected)}")

        if message_type == MessageType.CERTIFICATE_BROADCAST:
            return CertificateBroadcast(
                session_id=session_id,
                identity=decode_identity(fields[TAG_IDENTITY]),
                certificate=ImplicitCertificate.from_bytes(fields[TAG_CERTIFICATE]),
                encrypted_public_key=fields[TAG_ENC_PUBLIC_KEY],
            )
        if message_type == MessageType.KEY_RESPONSE:
            return KeyResponse(session_id=session_id, encrypted_public_key=fields[TAG_ENC_PUBLIC_KEY])
        return PayloadMessage(session_id=session_id, ciphertext=fields[TAG_CIPHERTEXT])

    def peek_header(self, frame: bytes):
        """
        Reads (message_type, session_id) without parsing the body.

        Returns:
            Tuple or None if the header is malformed
        """
        if len(frame) < _HEADER.size:
            return None
        magic, version, type_value, session_id = _HEADER.unpack_from(frame)
        if magic != FRAME_MAGIC or version != FRAME_VERSION:
            return None
        try:
            return MessageType(type_value), session_id
        except ValueError:
            return None

    @staticmethod
    def _parse_fields(body: bytes) -> Dict[int, bytes]:
        fields: Dict[int, bytes] = {}
        offset = 0
        while offset < len(body):
            if len(body) - offset < _FIELD.size:
                raise MessageDecodeError("Truncated field header")
            tag, length = _FIELD.unpack_from(body, offset)
            offset += _FIELD.size
            if len(body) - offset < length:
                raise MessageDecodeError(f"Truncated field 0x{tag:02x}")
            if tag in fields:
                raise MessageDecodeError(f"Duplicate field 0x{tag:02x}")
            fields[tag] = body[offset:offset + length]
            offset += length
        return fields
