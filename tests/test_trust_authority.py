"""
Test Suite: Trust Authority

Tests Setup(), registration, persistence of the master key and
concurrent issuance.

Author: SecureRoad V2X Project
"""

import logging
import os

import pytest

from entities.trust_authority import TrustAuthority
from protocols.certificates.implicit import verify_implicit_certificate
from protocols.core.primitives import base_mul, encode_point
from protocols.messages.types import RegistrationRequest
from utils.key_io import KeyFileHandler


def _ta(**kwargs):
    kwargs.setdefault("log_level", logging.WARNING)
    kwargs.setdefault("console_output", False)
    return TrustAuthority(**kwargs)


class TestSetup:
    def test_fixed_master_scalar(self):
        ta = _ta(ta_id="TA_FIXED", master_scalar=7)
        assert ta.public_key == base_mul(7)
        assert len(ta.public_key_bytes()) == 33

    def test_random_master_keys_differ(self):
        assert _ta(ta_id="TA_A").public_key != _ta(ta_id="TA_B").public_key

    def test_repr_hides_master_scalar(self):
        ta = _ta(ta_id="TA_FIXED", master_scalar=7)
        assert "private_scalar" not in repr(ta)
        assert "TA_FIXED" in repr(ta)


class TestPersistence:
    def test_master_key_persisted_and_reloaded(self, persistent_ta_dir):
        first = _ta(ta_id="TA_PERSIST", base_dir=persistent_ta_dir)
        key_path = os.path.join(persistent_ta_dir, "private_keys", "ta_master_key.key")
        assert KeyFileHandler.file_exists(key_path)

        second = _ta(ta_id="TA_PERSIST", base_dir=persistent_ta_dir)
        assert second.public_key == first.public_key
        assert second.get_statistics()["persistent"] is True

    def test_conflicting_master_scalar_rejected(self, persistent_ta_dir):
        _ta(ta_id="TA_PERSIST", base_dir=persistent_ta_dir, master_scalar=7)
        with pytest.raises(ValueError):
            _ta(ta_id="TA_PERSIST", base_dir=persistent_ta_dir, master_scalar=8)

    def test_key_file_round_trip_with_password(self, tmp_path):
        path = tmp_path / "k.key"
        KeyFileHandler.save_private_scalar(123456789, path, password=b"pw")
        assert KeyFileHandler.load_private_scalar(path, password=b"pw") == 123456789


class TestRegistration:
    def test_register_returns_verifying_certificate(self, ta):
        response = ta.register("VEHICLE_001")
        assert response.ta_public_key == ta.public_key
        assert verify_implicit_certificate(response.certificate, "VEHICLE_001", ta.public_key)

    def test_register_with_fixed_r_v(self):
        ta = _ta(ta_id="TA_FIXED", master_scalar=7)
        response = ta.register(3, r_v=5)
        assert response.certificate.ai == base_mul(22)
        assert response.certificate.ar == base_mul(5)

    def test_handle_registration_request(self, ta):
        response = ta.handle_registration(RegistrationRequest(identity=42))
        assert verify_implicit_certificate(response.certificate, 42, ta.public_key)

    @pytest.mark.parametrize("identity", [0, -3, "", None])
    def test_invalid_identity_counted_as_failure(self, identity):
        ta = _ta(ta_id="TA_STATS")
        with pytest.raises(ValueError):
            ta.register(identity)
        stats = ta.get_statistics()
        assert stats["registrations_failed"] == 1
        assert stats["registrations_issued"] == 0

    def test_statistics(self):
        ta = _ta(ta_id="TA_STATS")
        ta.register(1)
        ta.register("two")
        stats = ta.get_statistics()
        assert stats["ta_id"] == "TA_STATS"
        assert stats["registrations_issued"] == 2
        assert stats["public_key"] == ta.public_key_bytes().hex()
        assert stats["persistent"] is False


class TestConcurrentRegistration:
    def test_register_many_preserves_order(self):
        ta = _ta(ta_id="TA_CONCURRENT")
        identities = [f"VEHICLE_{i:03d}" for i in range(32)]

        responses = ta.register_many(identities, max_workers=8)

        assert len(responses) == 32
        for identity, response in zip(identities, responses):
            assert verify_implicit_certificate(response.certificate, identity, ta.public_key)
        assert len({encode_point(r.certificate.ar) for r in responses}) == 32
        assert ta.get_statistics()["registrations_issued"] == 32
