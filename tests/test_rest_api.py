"""
Test Suite: REST API Endpoints

Tests the Trust Authority Flask REST API:
- Registration endpoint (API key, identity kinds, validation)
- TA public key distribution
- Health checks, monitoring and error handling
- Content-Type validation

Author: SecureRoad V2X Project
"""

import logging

import pytest

from api.flask_app_factory import create_app
from entities.trust_authority import TrustAuthority
from protocols.certificates.implicit import ImplicitCertificate, verify_implicit_certificate
from protocols.core.exceptions import DecryptionError
from protocols.core.primitives import decode_point
from utils.metrics import get_metrics_collector

API_KEY = "test-api-key-123"


@pytest.fixture(scope="module")
def ta_instance():
    return TrustAuthority("TA_API", log_level=logging.WARNING, console_output=False)


@pytest.fixture(scope="module")
def ta_app(ta_instance):
    """Create TA Flask app"""
    config = {
        "api_keys": [API_KEY],
        "log_level": "WARNING",
    }
    app = create_app(ta_instance, config)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(ta_app):
    with ta_app.test_client() as client:
        yield client


def _register(client, body, **headers):
    headers.setdefault("Authorization", f"Bearer {API_KEY}")
    return client.post("/api/registration/request", json=body, headers=headers)


class TestGeneralEndpoints:
    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.get_json() == {"status": "ok", "entity_id": "TA_API"}

    def test_root_endpoint(self, client):
        data = client.get("/").get_json()
        assert data["entity_id"] == "TA_API"
        assert "POST /api/registration/request" in data["endpoints"]

    def test_listed_endpoints_are_served(self, client, ta_app):
        listed = set()
        for entry in client.get("/").get_json()["endpoints"]:
            method, path = entry.split()
            listed.add((method, path))

        served = {
            (method, rule.rule)
            for rule in ta_app.url_map.iter_rules()
            if rule.endpoint != "static"
            for method in rule.methods - {"HEAD", "OPTIONS"}
        }
        assert listed == served

    def test_unknown_endpoint(self, client):
        response = client.get("/api/nope")
        assert response.status_code == 404
        assert response.get_json()["responseCode"] == 8

    def test_method_not_allowed(self, client):
        assert client.get("/api/registration/request").status_code == 405

    def test_response_time_header(self, client):
        assert "X-Response-Time" in client.get("/health").headers


class TestTAPublicKey:
    def test_public_key(self, client, ta_instance):
        data = client.get("/api/ta/public-key").get_json()
        assert data["ta_id"] == "TA_API"
        assert decode_point(bytes.fromhex(data["q_t"])) == ta_instance.public_key

    def test_stats(self, client):
        data = client.get("/api/ta/stats").get_json()
        assert data["ta_id"] == "TA_API"
        assert "registrations_issued" in data


class TestRegistrationEndpoint:
    @pytest.mark.parametrize(
        "body, identity",
        [
            ({"identity": 3}, 3),
            ({"identity": "VEHICLE_001"}, "VEHICLE_001"),
            ({"identity": "0a0b", "identity_kind": "bytes"}, b"\x0a\x0b"),
        ],
    )
    def test_issues_verifying_certificate(self, client, ta_instance, body, identity):
        response = _register(client, body)
        assert response.status_code == 200
        data = response.get_json()
        assert data["responseCode"] == 0

        certificate = ImplicitCertificate(
            ai=decode_point(bytes.fromhex(data["ai"])), ar=decode_point(bytes.fromhex(data["ar"]))
        )
        assert decode_point(bytes.fromhex(data["q_t"])) == ta_instance.public_key
        assert verify_implicit_certificate(certificate, identity, ta_instance.public_key)

    def test_x_api_key_header(self, client):
        response = client.post(
            "/api/registration/request", json={"identity": 4}, headers={"X-API-Key": API_KEY}
        )
        assert response.status_code == 200

    def test_missing_api_key(self, client):
        response = client.post("/api/registration/request", json={"identity": 3})
        assert response.status_code == 401
        assert response.get_json()["responseCode"] == 9

    def test_wrong_api_key(self, client):
        response = _register(client, {"identity": 3}, Authorization="Bearer wrong")
        assert response.status_code == 401

    def test_wrong_content_type(self, client):
        response = client.post(
            "/api/registration/request",
            data="identity=3",
            content_type="text/plain",
            headers={"Authorization": f"Bearer {API_KEY}"},
        )
        assert response.status_code == 415
        assert response.get_json()["responseCode"] == 2

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"identity": 0},
            {"identity": -1},
            {"identity": ""},
            {"identity": True},
            {"identity": [1, 2]},
            {"identity": "zz", "identity_kind": "bytes"},
            {"identity": 3, "identity_kind": "float"},
            [3],
        ],
    )
    def test_invalid_identity(self, client, body):
        response = _register(client, body)
        assert response.status_code == 400
        assert response.get_json()["responseCode"] == 8


class TestMonitoring:
    def test_metrics_count_requests(self, client):
        client.get("/health")
        _register(client, {"identity": 5})
        data = client.get("/api/monitoring/metrics").get_json()
        assert data["counters"]["registration_requests"] >= 1
        assert data["stats"]["all_time"]["total_requests"] >= 2
        assert data["ta"]["ta_id"] == "TA_API"

    def test_prometheus_format(self, client):
        response = client.get("/api/monitoring/metrics/prometheus")
        assert response.status_code == 200
        assert response.mimetype == "text/plain"
        assert b"v2x_ta_requests_total" in response.data

    def test_milestones(self, client):
        data = client.get("/api/monitoring/milestones").get_json()
        assert data["correspondence_ok"] is True
        assert data["summary"] == {"starts": 0, "completions": 0}
        assert data["events"] == []

    def test_session_metrics_exposed(self, client):
        metrics = get_metrics_collector()
        metrics.record_session(True, 12.0)
        metrics.record_session(False, 8.0, DecryptionError("bad tag"))

        data = client.get("/api/monitoring/metrics").get_json()
        assert data["sessions"]["completed"] == 1
        assert data["sessions"]["failed"] == 1
        assert data["sessions"]["failures_by_error"] == {"DecryptionError": 1}
        assert data["sessions"]["avg_duration_ms"] == 10.0

        text = client.get("/api/monitoring/metrics/prometheus").get_data(as_text=True)
        assert "v2x_sessions_failed_total 1" in text
