"""
Test Suite: Broadcast Message Encoder

Tests the binary frame format and strict decoding.

Author: SecureRoad V2X Project
"""

import secrets
import struct

import pytest

from protocols.certificates.implicit import generate_master_key_pair, issue_implicit_certificate
from protocols.core.exceptions import MessageDecodeError
from protocols.core.types import MessageType
from protocols.messages.encoder import (
    MessageEncoder,
    associated_data,
    decode_identity,
    encode_identity,
)
from protocols.messages.types import CertificateBroadcast, KeyResponse, PayloadMessage


@pytest.fixture
def encoder():
    return MessageEncoder()


@pytest.fixture
def session_id():
    return secrets.token_bytes(16)


@pytest.fixture
def certificate():
    return issue_implicit_certificate(generate_master_key_pair(7), 3, r_v=5)


class TestIdentityEncoding:
    @pytest.mark.parametrize("identity", [3, 2**130, "VEHICLE_001", "veicolo-è", b"\x00\xff"])
    def test_identity_preserved(self, identity):
        assert decode_identity(encode_identity(identity)) == identity

    def test_identity_kinds_distinct(self):
        assert encode_identity("3") != encode_identity(3)
        assert encode_identity(b"3") != encode_identity("3")

    @pytest.mark.parametrize("identity", [0, -5, True, 1.5])
    def test_invalid_identity(self, identity):
        with pytest.raises(ValueError):
            encode_identity(identity)

    def test_unknown_kind(self):
        with pytest.raises(MessageDecodeError):
            decode_identity(b"\x09abc")


class TestFrames:
    def test_certificate_broadcast(self, encoder, session_id, certificate):
        message = CertificateBroadcast(
            session_id=session_id, identity=3, certificate=certificate, encrypted_public_key=b"\x01" * 61
        )
        frame = encoder.encode(message)
        assert frame[:2] == b"VX"
        assert frame[2] == 1
        assert frame[3] == MessageType.CERTIFICATE_BROADCAST.value
        assert frame[4:20] == session_id
        assert encoder.decode(frame) == message

    def test_key_response_and_payload(self, encoder, session_id):
        for message in (
            KeyResponse(session_id=session_id, encrypted_public_key=b"\x02" * 61),
            PayloadMessage(session_id=session_id, ciphertext=b"\x03" * 37),
        ):
            assert encoder.decode(encoder.encode(message)) == message

    def test_peek_header(self, encoder, session_id):
        frame = encoder.encode(PayloadMessage(session_id=session_id, ciphertext=b"x"))
        assert encoder.peek_header(frame) == (MessageType.TEST_PAYLOAD, session_id)
        assert encoder.peek_header(b"junk") is None
        assert encoder.peek_header(b"XX" + frame[2:]) is None

    def test_session_id_length_enforced(self, encoder):
        with pytest.raises(ValueError):
            encoder.encode(PayloadMessage(session_id=b"short", ciphertext=b"x"))


class TestStrictDecoding:
    def test_bad_magic(self, encoder, session_id):
        frame = encoder.encode(PayloadMessage(session_id=session_id, ciphertext=b"x"))
        with pytest.raises(MessageDecodeError):
            encoder.decode(b"ZZ" + frame[2:])

    def test_bad_version(self, encoder, session_id):
        frame = bytearray(encoder.encode(PayloadMessage(session_id=session_id, ciphertext=b"x")))
        frame[2] = 9
        with pytest.raises(MessageDecodeError):
            encoder.decode(bytes(frame))

    def test_unknown_type(self, encoder, session_id):
        frame = bytearray(encoder.encode(PayloadMessage(session_id=session_id, ciphertext=b"x")))
        frame[3] = 0x7F
        with pytest.raises(MessageDecodeError):
            encoder.decode(bytes(frame))

    def test_truncated_frame(self, encoder, session_id):
        frame = encoder.encode(KeyResponse(session_id=session_id, encrypted_public_key=b"\x02" * 61))
        with pytest.raises(MessageDecodeError):
            encoder.decode(frame[:-1])
        with pytest.raises(MessageDecodeError):
            encoder.decode(frame[:10])

    def test_missing_field(self, encoder, session_id):
        frame = encoder.encode(KeyResponse(session_id=session_id, encrypted_public_key=b"\x02"))
        # Same body relabelled as a certificate broadcast lacks identity and certificate
        relabelled = frame[:3] + bytes([MessageType.CERTIFICATE_BROADCAST.value]) + frame[4:]
        with pytest.raises(MessageDecodeError):
            encoder.decode(relabelled)

    def test_duplicate_field(self, encoder, session_id):
        frame = encoder.encode(PayloadMessage(session_id=session_id, ciphertext=b"x"))
        with pytest.raises(MessageDecodeError):
            encoder.decode(frame + struct.pack(">BH", 0x04, 1) + b"y")

    def test_unexpected_field(self, encoder, session_id):
        frame = encoder.encode(PayloadMessage(session_id=session_id, ciphertext=b"x"))
        with pytest.raises(MessageDecodeError):
            encoder.decode(frame + struct.pack(">BH", 0x03, 1) + b"y")

    def test_corrupted_certificate(self, encoder, session_id, certificate):
        frame = bytearray(
            encoder.encode(
                CertificateBroadcast(
                    session_id=session_id, identity=3, certificate=certificate, encrypted_public_key=b"k"
                )
            )
        )
        # header (20) + identity field (3 + 2) + certificate field header (3)
        frame[28] = 0x07
        with pytest.raises(MessageDecodeError):
            encoder.decode(bytes(frame))


def test_associated_data_binds_type_and_session(session_id):
    a = associated_data(MessageType.KEY_RESPONSE, session_id)
    assert a != associated_data(MessageType.CERTIFICATE_BROADCAST, session_id)
    assert a != associated_data(MessageType.KEY_RESPONSE, secrets.token_bytes(16))
    assert associated_data(MessageType.TEST_PAYLOAD, session_id, b"q_u", b"q_v").endswith(b"q_uq_v")
