"""
Pytest Configuration and Shared Fixtures

Fornisce fixture condivise per tutti i test:
- Trust Authority in memoria (e persistente su directory temporanea)
- Group key condivisa tra i veicoli
- Canali di registrazione, chiave pubblica TA e broadcast
- Reset del log delle milestone e delle metriche prima di ogni test

Author: SecureRoad V2X Project
"""

import logging
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from entities.registrant_vehicle import RegistrantVehicle
from entities.trust_authority import TrustAuthority
from entities.verifier_vehicle import VerifierVehicle
from protocols.core.primitives import generate_group_key
from services.channels import BroadcastChannel, RegistrationChannel, TAPublicKeyChannel
from utils.logger import V2XLogger
from utils.metrics import reset_metrics_collector
from utils.milestones import get_milestone_log, reset_milestone_log


@pytest.fixture(autouse=True)
def clean_global_state():
    """Milestone log e metriche isolati per ogni test."""
    reset_milestone_log()
    reset_metrics_collector()
    yield
    reset_milestone_log()


@pytest.fixture(scope="session", autouse=True)
def close_loggers():
    yield
    V2XLogger.clear_cache()


@pytest.fixture(scope="session")
def ta():
    """
    Trust Authority in memoria.
    Scope: session (stateless per richiesta, condivisibile tra i test).
    """
    return TrustAuthority(ta_id="TA_TEST", log_level=logging.WARNING, console_output=False)


@pytest.fixture
def persistent_ta_dir(tmp_path):
    """Directory temporanea per una TA con master key persistente."""
    return str(tmp_path / "ta")


@pytest.fixture
def group_key():
    return generate_group_key()


@pytest.fixture
def milestones():
    return get_milestone_log()


@pytest.fixture
def registration_channel(ta):
    return RegistrationChannel(ta)


@pytest.fixture
def ta_key_channel(ta):
    return TAPublicKeyChannel(ta)


@pytest.fixture
def broadcast_channel():
    return BroadcastChannel(name="test-broadcast")


@pytest.fixture
def make_registrant(group_key):
    """Factory: RegistrantVehicle con la group key condivisa."""

    def _make(identity=3, **kwargs):
        kwargs.setdefault("console_output", False)
        kwargs.setdefault("log_level", logging.WARNING)
        return RegistrantVehicle(identity, group_key, **kwargs)

    return _make


@pytest.fixture
def make_verifier(group_key):
    """Factory: VerifierVehicle con la group key condivisa."""

    def _make(identity="U", **kwargs):
        kwargs.setdefault("console_output", False)
        kwargs.setdefault("log_level", logging.WARNING)
        return VerifierVehicle(identity, group_key, **kwargs)

    return _make
