"""
Registrant Vehicle (role V)

Registers with the Trust Authority, derives its key pair from the implicit
certificate and lets other vehicles authenticate it over the broadcast
channel:

    register()           IDLE -> REGISTERED
    derive_key_pair()    REGISTERED -> KEY_DERIVED
    broadcast()          KEY_DERIVED -> BROADCAST
    complete_handshake() BROADCAST -> SESSION_ESTABLISHED
    verify_payload()     SESSION_ESTABLISHED -> VERIFIED

Out-of-order calls raise ProtocolViolation and leave the state unchanged.
Protocol failures move the session to FAILED; end_session() starts over
from REGISTERED with the same certificate.

Author: SecureRoad V2X Project
"""

import hmac
import secrets
from typing import Optional, Set

from config import V2X_CONSTANTS
from managers.replay_guard import ReplayGuard
from protocols.certificates.implicit import ImplicitCertificate, verify_implicit_certificate
from protocols.core.exceptions import (
    CertificateVerificationFailure,
    PayloadMismatch,
    ProtocolViolation,
    RegistrationError,
    V2XProtocolError,
)
from protocols.core.primitives import (
    base_mul,
    derive_agreement_key,
    derive_from_certificate,
    normalize_scalar,
    random_scalar,
    sym_decrypt,
)
from protocols.core.types import Identity, MessageType, RegistrantState, VehicleKeyPair, VehicleRole
from protocols.messages.types import CertificateBroadcast
from entities.vehicle_base import VehicleBase


class RegistrantVehicle(VehicleBase):
    """Vehicle V: holds an implicit certificate and proves its identity to verifiers."""

    ROLE = VehicleRole.REGISTRANT
    INITIAL_STATE = RegistrantState.IDLE
    FAILED_STATE = RegistrantState.FAILED

    def __init__(self, identity: Identity, group_key: bytes, replay_guard: Optional[ReplayGuard] = None, **kwargs):
        super().__init__(identity, group_key, **kwargs)
        self.replay_guard = replay_guard or ReplayGuard()
        self.certificate: Optional[ImplicitCertificate] = None
        self.ta_public_key = None
        self._used_rv: Set[int] = set()
        self._subscription = None
        self._session_started = False

    # ========================================================================
    # REGISTRATION
    # ========================================================================

    def register(self, channel) -> ImplicitCertificate:
        """
        Obtains (Ai, Ar, Q_t) from the TA over the registration channel.

        Raises:
            RegistrationError: If the channel cannot deliver a response
            CertificateVerificationFailure: If the returned certificate does not
                bind this identity to the returned Q_t
        """
        self._require_state("register", RegistrantState.IDLE)
        self.milestones.start(self.ROLE, self.identity)
        self._session_started = True
        self.logger.info(f"Registrazione presso la TA per identità {self.identity!r}")

        try:
            response = channel.request(self.identity)
        except RegistrationError as e:
            raise self._fail(e)

        if not verify_implicit_certificate(response.certificate, self.identity, response.ta_public_key):
            raise self._fail(CertificateVerificationFailure("TA response does not verify for this identity"))

        self.certificate = response.certificate
        self.ta_public_key = response.ta_public_key
        self._transition(RegistrantState.REGISTERED)
        self.logger.info(f"✅ Certificato implicito ricevuto: Ai={self.certificate.fingerprint()}...")
        return self.certificate

    # ========================================================================
    # SESSION
    # ========================================================================

    def derive_key_pair(self, rv: Optional[int] = None) -> VehicleKeyPair:
        """
        Derives p_v = h(Ai)*rv and Q_v = p_v*P for a new session.

        Args:
            rv: Session randomness (fresh draw when None); never reused

        Raises:
            ProtocolViolation: If rv was already used by this vehicle
        """
        self._require_state("derive_key_pair", RegistrantState.REGISTERED)

        rv = random_scalar() if rv is None else normalize_scalar(rv)
        if rv in self._used_rv:
            raise ProtocolViolation("Session randomness rv already used by this vehicle")
        self._used_rv.add(rv)

        if not self._session_started:
            self.milestones.start(self.ROLE, self.identity)
            self._session_started = True

        p_v = derive_from_certificate(self.certificate.ai, rv)
        self.key_pair = VehicleKeyPair(private_scalar=p_v, public_point=base_mul(p_v))
        self.session_id = secrets.token_bytes(V2X_CONSTANTS.SESSION_ID_SIZE)

        self._transition(RegistrantState.KEY_DERIVED)
        self.logger.info(f"Coppia di chiavi derivata, sessione {self._session_label()}")
        return self.key_pair

    def broadcast(self, channel):
        """Sends (identity, Ai, Ar, Enc_groupKey(Q_v)) on the broadcast channel."""
        self._require_state("broadcast", RegistrantState.KEY_DERIVED)

        # Subscribe first so the verifier's reply cannot be missed
        self._subscription = channel.subscribe(from_start=False)
        channel.send(
            CertificateBroadcast(
                session_id=self.session_id,
                identity=self.identity,
                certificate=self.certificate,
                encrypted_public_key=self._encrypt_public_key(
                    self.key_pair.public_point, MessageType.CERTIFICATE_BROADCAST
                ),
            )
        )

        self._transition(RegistrantState.BROADCAST)
        self.logger.info(f"📡 Certificato trasmesso in broadcast, sessione {self._session_label()}")

    def complete_handshake(self, channel, timeout: Optional[float] = None) -> bytes:
        """
        Waits for the verifier's KeyResponse and derives Sk_vu = DH(p_v, Q_u).

        Returns:
            The session key
        """
        self._require_state("complete_handshake", RegistrantState.BROADCAST)
        subscription = self._subscription or channel.subscribe()

        try:
            response = subscription.receive(
                MessageType.KEY_RESPONSE, session_id=self.session_id, timeout=timeout
            )
            self.peer_public_key = self._decrypt_public_key(
                response.encrypted_public_key, MessageType.KEY_RESPONSE
            )
        except V2XProtocolError as e:
            raise self._fail(e)

        self._session_key = derive_agreement_key(
            self.key_pair.private_scalar, self.peer_public_key, self.session_id
        )
        self._transition(RegistrantState.SESSION_ESTABLISHED)
        self.logger.info(f"🔑 Chiave di sessione stabilita, sessione {self._session_label()}")
        return self._session_key

    def verify_payload(
        self, channel, expected: Optional[bytes] = None, timeout: Optional[float] = None
    ) -> bytes:
        """
        Receives the encrypted test payload and checks it against expected.

        Raises:
            DecryptionError: If the payload does not decrypt under Sk_vu
            ReplayDetected: If this payload frame was already accepted
            PayloadMismatch: If the plaintext differs from expected
        """
        self._require_state("verify_payload", RegistrantState.SESSION_ESTABLISHED)
        expected = V2X_CONSTANTS.DEFAULT_TEST_PAYLOAD if expected is None else expected
        subscription = self._subscription or channel.subscribe()

        try:
            message = subscription.receive(
                MessageType.TEST_PAYLOAD, session_id=self.session_id, timeout=timeout
            )
            plaintext = sym_decrypt(
                message.ciphertext,
                self._session_key,
                self._payload_aad(self.peer_public_key, self.key_pair.public_point),
            )
            self.replay_guard.check_and_record(self.session_id, message.ciphertext)
        except V2XProtocolError as e:
            raise self._fail(e)

        if not hmac.compare_digest(plaintext, expected):
            raise self._fail(PayloadMismatch("Decrypted payload differs from the expected value"))

        self.milestones.complete(self.ROLE, self.identity, self.session_id)
        self._session_started = False
        self._release_subscription()
        self._transition(RegistrantState.VERIFIED)
        self.logger.info(f"✅ Payload verificato, sessione {self._session_label()} completata")
        return plaintext

    def end_session(self):
        """Destroys session key material; the certificate is kept for new sessions."""
        if self.session_id is not None:
            self.replay_guard.forget(self.session_id)
        self._release_subscription()
        self._session_key = None
        self.key_pair = None
        self.peer_public_key = None
        self.session_id = None
        self.last_error = None
        self._session_started = False

        if self.certificate is not None:
            self._transition(RegistrantState.REGISTERED)
        else:
            self._transition(RegistrantState.IDLE)

    def _fail(self, error):
        self._release_subscription()
        return super()._fail(error)

    def _release_subscription(self):
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
