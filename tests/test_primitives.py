"""
Test Suite: Primitive Suite

Tests point/scalar arithmetic, AEAD and DH agreement adapters.

Author: SecureRoad V2X Project
"""

import pytest

from protocols.core.exceptions import DecryptionError, PrimitiveError
from protocols.core.primitives import (
    GENERATOR,
    ORDER,
    base_mul,
    decode_point,
    derive_agreement_key,
    derive_from_certificate,
    encode_point,
    generate_group_key,
    hash_to_scalar,
    identity_to_scalar,
    mod_add,
    mod_mul,
    normalize_scalar,
    point_add,
    random_scalar,
    scalar_mul,
    sym_decrypt,
    sym_encrypt,
)


class TestScalarArithmetic:
    def test_random_scalar_range(self):
        for _ in range(50):
            assert 1 <= random_scalar() < ORDER

    def test_mod_add_and_mul_wrap(self):
        assert mod_add(ORDER - 1, 2) == 1
        assert mod_mul(ORDER - 1, ORDER - 1) == 1

    def test_normalize_rejects_zero_and_non_int(self):
        with pytest.raises(PrimitiveError):
            normalize_scalar(0)
        with pytest.raises(PrimitiveError):
            normalize_scalar(ORDER)
        with pytest.raises(PrimitiveError):
            normalize_scalar(True)
        with pytest.raises(PrimitiveError):
            normalize_scalar("7")

    def test_identity_to_scalar(self):
        assert identity_to_scalar(3) == 3
        assert identity_to_scalar("VEHICLE_001") == hash_to_scalar(b"VEHICLE_001")
        assert identity_to_scalar(b"VEHICLE_001") == identity_to_scalar("VEHICLE_001")

    @pytest.mark.parametrize("identity", [0, -1, "", b"", True, 3.5, None])
    def test_identity_to_scalar_rejects_invalid(self, identity):
        with pytest.raises(ValueError):
            identity_to_scalar(identity)


class TestPointArithmetic:
    def test_base_mul_is_repeated_addition(self):
        assert base_mul(1) == GENERATOR
        assert base_mul(3) == point_add(point_add(GENERATOR, GENERATOR), GENERATOR)

    def test_scalar_mul_distributes(self):
        # (a + b)*P == a*P + b*P
        assert base_mul(mod_add(11, 31)) == point_add(base_mul(11), base_mul(31))
        # a*(b*P) == (a*b)*P
        assert scalar_mul(base_mul(5), 7) == base_mul(35)

    def test_point_add_to_infinity_raises(self):
        with pytest.raises(PrimitiveError):
            point_add(base_mul(5), base_mul(ORDER - 5))

    def test_encode_decode_point(self):
        point = base_mul(123456789)
        encoded = encode_point(point)
        assert len(encoded) == 33
        assert encoded[0] in (2, 3)
        assert decode_point(encoded) == point

    def test_decode_point_rejects_malformed(self):
        encoded = encode_point(base_mul(42))
        with pytest.raises(PrimitiveError):
            decode_point(encoded[:-1])
        with pytest.raises(PrimitiveError):
            decode_point(b"\x05" + encoded[1:])
        with pytest.raises(PrimitiveError):
            decode_point(encode_point(base_mul(42)) + b"\x00")


class TestSymmetricEncryption:
    def test_round_trip_with_aad(self):
        key = generate_group_key()
        ciphertext = sym_encrypt(b"secret-42", key, b"aad")
        assert len(ciphertext) == 12 + len(b"secret-42") + 16
        assert sym_decrypt(ciphertext, key, b"aad") == b"secret-42"

    def test_fresh_nonce_per_encryption(self):
        key = generate_group_key()
        assert sym_encrypt(b"x", key) != sym_encrypt(b"x", key)

    def test_wrong_key_fails(self):
        ciphertext = sym_encrypt(b"secret-42", generate_group_key())
        with pytest.raises(DecryptionError):
            sym_decrypt(ciphertext, generate_group_key())

    def test_wrong_aad_fails(self):
        key = generate_group_key()
        ciphertext = sym_encrypt(b"secret-42", key, b"session-a")
        with pytest.raises(DecryptionError):
            sym_decrypt(ciphertext, key, b"session-b")

    def test_tampered_ciphertext_fails(self):
        key = generate_group_key()
        ciphertext = bytearray(sym_encrypt(b"secret-42", key))
        ciphertext[15] ^= 0x01
        with pytest.raises(DecryptionError):
            sym_decrypt(bytes(ciphertext), key)

    def test_truncated_ciphertext_fails(self):
        with pytest.raises(DecryptionError):
            sym_decrypt(b"\x00" * 20, generate_group_key())

    def test_bad_key_length_is_fatal(self):
        with pytest.raises(PrimitiveError):
            sym_encrypt(b"x", b"short")


class TestAgreement:
    def test_dh_symmetry(self):
        p_v, p_u = random_scalar(), random_scalar()
        q_v, q_u = base_mul(p_v), base_mul(p_u)
        assert derive_agreement_key(p_v, q_u) == derive_agreement_key(p_u, q_v)
        assert len(derive_agreement_key(p_v, q_u)) == 32

    def test_context_separates_keys(self):
        p_v, p_u = random_scalar(), random_scalar()
        q_u = base_mul(p_u)
        assert derive_agreement_key(p_v, q_u, b"a") != derive_agreement_key(p_v, q_u, b"b")

    def test_third_party_derives_different_key(self):
        p_v, p_u, p_x = random_scalar(), random_scalar(), random_scalar()
        assert derive_agreement_key(p_x, base_mul(p_u)) != derive_agreement_key(p_v, base_mul(p_u))

    def test_derive_from_certificate(self):
        ai = base_mul(22)
        expected = mod_mul(hash_to_scalar(encode_point(ai)), 2)
        assert derive_from_certificate(ai, 2) == expected
        assert derive_from_certificate(ai, 2) != derive_from_certificate(ai, 3)
