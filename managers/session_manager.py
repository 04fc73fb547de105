"""
Session Manager

Orchestrates authentication sessions between registrant and verifier
vehicles over one shared broadcast channel. Each role runs its sequential
flow on its own thread; several sessions may run at once and are kept apart
by their session ids.

A failed session is reported, never retried: running it again draws fresh
randomness.

Author: SecureRoad V2X Project
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from config import V2X_CONSTANTS
from entities.registrant_vehicle import RegistrantVehicle
from entities.verifier_vehicle import VerifierVehicle
from protocols.core.exceptions import V2XProtocolError
from protocols.core.primitives import generate_group_key
from protocols.core.types import Identity, RegistrantState
from services.channels import BroadcastChannel, RegistrationChannel, TAPublicKeyChannel
from utils.logger import V2XLogger, fingerprint
from utils.metrics import get_metrics_collector
from utils.milestones import MilestoneLog, get_milestone_log


@dataclass
class SessionResult:
    """Outcome of one registrant/verifier session"""

    registrant_identity: Identity
    verifier_identity: Identity
    session_id: Optional[bytes]
    registrant_state: str
    verifier_state: str
    registrant_error: Optional[V2XProtocolError] = None
    verifier_error: Optional[V2XProtocolError] = None
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.registrant_error is None and self.verifier_error is None

    def to_dict(self) -> dict:
        return {
            "registrant": self.registrant_identity,
            "verifier": self.verifier_identity,
            "session_id": self.session_id.hex() if self.session_id else None,
            "success": self.success,
            "registrant_state": self.registrant_state,
            "verifier_state": self.verifier_state,
            "registrant_error": repr(self.registrant_error) if self.registrant_error else None,
            "verifier_error": repr(self.verifier_error) if self.verifier_error else None,
            "duration_ms": round(self.duration_ms, 2),
        }


class SessionManager:
    """
    Runs sessions against one Trust Authority and one broadcast channel.

    Channels default to the in-process implementations; pass HTTP channels
    to run against a remote TA.
    """

    def __init__(
        self,
        trust_authority=None,
        registration_channel=None,
        ta_key_channel=None,
        broadcast_channel: Optional[BroadcastChannel] = None,
        group_key: Optional[bytes] = None,
        timeout: float = 5.0,
        milestones: Optional[MilestoneLog] = None,
        log_level: int = logging.INFO,
    ):
        if trust_authority is None and (registration_channel is None or ta_key_channel is None):
            raise ValueError("Provide a trust_authority or both registration and TA key channels")

        self.registration_channel = registration_channel or RegistrationChannel(trust_authority)
        self.ta_key_channel = ta_key_channel or TAPublicKeyChannel(trust_authority)
        self.broadcast_channel = broadcast_channel or BroadcastChannel()
        self.group_key = group_key or generate_group_key()
        self.timeout = timeout
        self.milestones = milestones or get_milestone_log()
        self.logger = V2XLogger.get_logger("SESSION_MANAGER", level=log_level)

    # ========================================================================
    # VEHICLE FACTORIES
    # ========================================================================

    def create_registrant(self, identity: Identity, **kwargs) -> RegistrantVehicle:
        kwargs.setdefault("milestones", self.milestones)
        return RegistrantVehicle(identity, self.group_key, **kwargs)

    def create_verifier(self, identity: Identity, **kwargs) -> VerifierVehicle:
        kwargs.setdefault("milestones", self.milestones)
        return VerifierVehicle(identity, self.group_key, **kwargs)

    # ========================================================================
    # SESSIONS
    # ========================================================================

    def run_session(
        self,
        registrant: RegistrantVehicle,
        verifier: VerifierVehicle,
        payload: Optional[bytes] = None,
        rv: Optional[int] = None,
        verifier_scalar: Optional[int] = None,
        identity_v: Optional[Identity] = None,
        timeout: Optional[float] = None,
    ) -> SessionResult:
        """
        Runs one full session: registration (if needed), key derivation, then
        both roles concurrently over the broadcast channel.

        Args:
            registrant: Vehicle V (IDLE or REGISTERED)
            verifier: Vehicle U (IDLE)
            payload: Test payload (default: V2X_CONSTANTS.DEFAULT_TEST_PAYLOAD)
            rv: Fixed registrant session randomness
            verifier_scalar: Fixed p_u
            identity_v: Identity the verifier checks the certificate against
            timeout: Per-receive timeout in seconds

        Returns:
            SessionResult; session-local failures are reported, not raised
        """
        payload = V2X_CONSTANTS.DEFAULT_TEST_PAYLOAD if payload is None else payload
        timeout = self.timeout if timeout is None else timeout
        channel = self.broadcast_channel
        started = time.monotonic()

        registrant_error = verifier_error = None
        try:
            if registrant.state == RegistrantState.IDLE:
                registrant.register(self.registration_channel)
            registrant.derive_key_pair(rv)
        except V2XProtocolError as e:
            registrant_error = e

        if registrant_error is None:
            try:
                verifier.init(self.ta_key_channel, verifier_scalar)
            except V2XProtocolError as e:
                verifier_error = e
                # Nothing was broadcast yet: release the derived key pair
                registrant.end_session()

        if registrant_error is None and verifier_error is None:
            session_id = registrant.session_id
            self.logger.info(
                f"Avvio sessione {fingerprint(session_id)}: {registrant.identity!r} <-> {verifier.identity!r}"
            )

            def registrant_flow():
                registrant.broadcast(channel)
                registrant.complete_handshake(channel, timeout=timeout)
                registrant.verify_payload(channel, expected=payload, timeout=timeout)

            def verifier_flow():
                verifier.observe_peer(
                    channel,
                    expected_identity=registrant.identity,
                    session_id=session_id,
                    timeout=timeout,
                )
                verifier.verify_certificate(identity_v)
                verifier.respond(channel)
                verifier.send_payload(channel, payload)

            with ThreadPoolExecutor(max_workers=2) as executor:
                verifier_future = executor.submit(verifier_flow)
                registrant_future = executor.submit(registrant_flow)
                registrant_error = _protocol_error(registrant_future)
                verifier_error = _protocol_error(verifier_future)

        result = SessionResult(
            registrant_identity=registrant.identity,
            verifier_identity=verifier.identity,
            session_id=registrant.session_id,
            registrant_state=registrant.state.value,
            verifier_state=verifier.state.value,
            registrant_error=registrant_error,
            verifier_error=verifier_error,
            duration_ms=(time.monotonic() - started) * 1000,
        )
        get_metrics_collector().record_session(
            result.success, result.duration_ms, verifier_error or registrant_error
        )

        if result.success:
            self.logger.info(f"✅ Sessione {fingerprint(result.session_id)} completata ({result.duration_ms:.1f}ms)")
        else:
            self.logger.warning(
                f"✗ Sessione fallita: V={registrant_error!r} U={verifier_error!r}"
            )
        return result

    def run_many(
        self,
        pairs: Iterable[Tuple[RegistrantVehicle, VerifierVehicle]],
        payload: Optional[bytes] = None,
        max_workers: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> List[SessionResult]:
        """
        Runs several sessions concurrently on the shared broadcast channel.
        Afterwards, frames no open subscription can still read are discarded.

        Returns:
            Results in the same order as pairs
        """
        pairs = list(pairs)
        workers = max_workers or max(1, len(pairs))
        self.logger.info(f"Esecuzione concorrente di {len(pairs)} sessioni ({workers} worker)")

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(self.run_session, registrant, verifier, payload, timeout=timeout)
                for registrant, verifier in pairs
            ]
            results = [f.result() for f in futures]

        self.broadcast_channel.compact()
        return results


def _protocol_error(future) -> Optional[V2XProtocolError]:
    """Waits for a role flow; returns its session-local error, re-raises anything else."""
    try:
        future.result()
    except V2XProtocolError as e:
        return e
    return None
