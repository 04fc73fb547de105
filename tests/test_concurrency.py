"""
Test Suite: Concurrent Sessions

Several registrant/verifier pairs share one broadcast channel and one TA;
sessions must stay isolated by session id.

Author: SecureRoad V2X Project
"""

import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from managers.session_manager import SessionManager
from protocols.core.exceptions import RegistrationError
from protocols.core.types import MessageType, MilestoneKind, VehicleRole, VerifierState
from protocols.messages.types import PayloadMessage
from utils.metrics import get_metrics_collector


@pytest.fixture
def manager(ta, broadcast_channel, group_key):
    return SessionManager(
        trust_authority=ta,
        broadcast_channel=broadcast_channel,
        group_key=group_key,
        timeout=5,
        log_level=logging.WARNING,
    )


class TestConcurrentSessions:
    def test_run_many_isolated(self, manager, milestones):
        pairs = [
            (
                manager.create_registrant(i, console_output=False),
                manager.create_verifier(f"U{i}", console_output=False),
            )
            for i in range(1, 9)
        ]

        results = manager.run_many(pairs, max_workers=4)

        assert [r.success for r in results] == [True] * 8
        assert len({r.session_id for r in results}) == 8
        for (registrant, verifier), result in zip(pairs, results):
            assert result.registrant_identity == registrant.identity
            assert registrant.session_key == verifier.session_key
        assert len({registrant.session_key for registrant, _ in pairs}) == 8
        assert milestones.check_correspondence() == []
        assert milestones.summary()["completions"] == 16
        assert get_metrics_collector().get_session_stats().completed == 8

    def test_run_many_discards_finished_traffic(self, manager, broadcast_channel):
        pairs = [
            (
                manager.create_registrant(i, console_output=False),
                manager.create_verifier(f"U{i}", console_output=False),
            )
            for i in range(1, 4)
        ]
        observer = broadcast_channel.subscribe()

        results = manager.run_many(pairs)

        assert all(r.success for r in results)
        # Three frames per session, all still unread by the observer
        assert len(broadcast_channel) == 9
        observer.close()
        broadcast_channel.compact()
        assert len(broadcast_channel) == 0

    def test_one_failure_does_not_affect_others(self, manager, ta, milestones):
        good = [
            (
                manager.create_registrant(i, console_output=False),
                manager.create_verifier(f"U{i}", console_output=False),
            )
            for i in (1, 2)
        ]
        # Verifier outside the group cannot read Q_v
        other_group = SessionManager(trust_authority=ta, log_level=logging.WARNING)
        outsider = (
            manager.create_registrant(3, console_output=False),
            other_group.create_verifier("X", console_output=False),
        )

        results = manager.run_many(good + [outsider], timeout=2)

        assert results[0].success and results[1].success
        assert not results[2].success
        assert milestones.count(VehicleRole.VERIFIER, "X", MilestoneKind.COMPLETE) == 0
        assert milestones.check_correspondence() == []

    def test_invalid_identity_does_not_affect_others(self, manager, milestones):
        pairs = [
            (manager.create_registrant(i, console_output=False), manager.create_verifier(f"U{i}", console_output=False))
            for i in (1, 0)
        ]

        results = manager.run_many(pairs)

        assert results[0].success
        assert isinstance(results[1].registrant_error, RegistrationError)
        assert results[1].verifier_error is None
        assert pairs[1][1].state == VerifierState.IDLE
        assert milestones.check_correspondence() == []


class TestConcurrentChannel:
    def test_parallel_receivers(self, broadcast_channel):
        session_ids = [bytes([i]) * 16 for i in range(1, 11)]

        def receive(session_id):
            subscription = broadcast_channel.subscribe()
            return subscription.receive(MessageType.TEST_PAYLOAD, session_id=session_id, timeout=5).ciphertext

        with ThreadPoolExecutor(max_workers=10) as executor:
            futures = [executor.submit(receive, sid) for sid in session_ids]
            for sid in reversed(session_ids):
                broadcast_channel.send(PayloadMessage(session_id=sid, ciphertext=sid[:1]))
            received = [f.result() for f in futures]

        assert received == [sid[:1] for sid in session_ids]
        assert len(broadcast_channel) == 10
