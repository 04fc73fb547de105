"""
Verifier Vehicle (role U)

Observes a registrant's certificate broadcast, authenticates it against the
TA public key, agrees a session key and proves it with an encrypted test
payload:

    init()               IDLE -> KEY_READY
    observe_peer()       KEY_READY -> PEER_OBSERVED
    verify_certificate() PEER_OBSERVED -> CERTIFICATE_VERIFIED
    respond()            CERTIFICATE_VERIFIED -> SESSION_ESTABLISHED
    send_payload()       SESSION_ESTABLISHED -> DONE

Nothing is derived or sent before the certificate check succeeds.

Author: SecureRoad V2X Project
"""

from typing import Optional

from config import V2X_CONSTANTS
from protocols.certificates.implicit import verify_implicit_certificate
from protocols.core.exceptions import CertificateVerificationFailure, V2XProtocolError
from protocols.core.primitives import (
    base_mul,
    derive_agreement_key,
    normalize_scalar,
    random_scalar,
    sym_encrypt,
)
from protocols.core.types import Identity, MessageType, VehicleKeyPair, VehicleRole, VerifierState
from protocols.messages.types import CertificateBroadcast, KeyResponse, PayloadMessage
from entities.vehicle_base import VehicleBase


class VerifierVehicle(VehicleBase):
    """Vehicle U: authenticates a registrant and sends it a confidential payload."""

    ROLE = VehicleRole.VERIFIER
    INITIAL_STATE = VerifierState.IDLE
    FAILED_STATE = VerifierState.FAILED

    def __init__(self, identity: Identity, group_key: bytes, **kwargs):
        super().__init__(identity, group_key, **kwargs)
        self.ta_public_key = None
        self.peer_identity: Optional[Identity] = None
        self.peer_certificate = None

    def init(self, ta_key_channel, private_scalar: Optional[int] = None) -> VehicleKeyPair:
        """
        Draws p_u, computes Q_u and obtains Q_t from the TA public-key channel.

        Args:
            ta_key_channel: Authentic source of Q_t
            private_scalar: Fixed p_u (deterministic test vectors)

        Raises:
            RegistrationError: If Q_t cannot be obtained (HTTP channel)
        """
        self._require_state("init", VerifierState.IDLE)

        p_u = random_scalar() if private_scalar is None else normalize_scalar(private_scalar)
        self.key_pair = VehicleKeyPair(private_scalar=p_u, public_point=base_mul(p_u))
        self.milestones.start(self.ROLE, self.identity)
        try:
            self.ta_public_key = ta_key_channel.get_public_key()
        except V2XProtocolError as e:
            raise self._fail(e)

        self._transition(VerifierState.KEY_READY)
        self.logger.info("Chiavi del verificatore pronte, Q_t ottenuta")
        return self.key_pair

    def observe_peer(
        self,
        channel,
        expected_identity: Optional[Identity] = None,
        session_id: Optional[bytes] = None,
        timeout: Optional[float] = None,
    ) -> CertificateBroadcast:
        """
        Receives a certificate broadcast, adopts its session id and decrypts Q_v.

        Args:
            channel: Broadcast channel
            expected_identity: Only accept broadcasts claiming this identity
            session_id: Only accept broadcasts for this session
            timeout: Seconds to wait (None = forever)
        """
        self._require_state("observe_peer", VerifierState.KEY_READY)

        accept = None
        if expected_identity is not None:
            accept = lambda message: message.identity == expected_identity

        subscription = channel.subscribe()
        try:
            message = subscription.receive(
                MessageType.CERTIFICATE_BROADCAST, session_id=session_id, accept=accept, timeout=timeout
            )
            self.session_id = message.session_id
            self.peer_public_key = self._decrypt_public_key(
                message.encrypted_public_key, MessageType.CERTIFICATE_BROADCAST
            )
        except V2XProtocolError as e:
            raise self._fail(e)
        finally:
            subscription.close()

        self.peer_identity = message.identity
        self.peer_certificate = message.certificate
        self._transition(VerifierState.PEER_OBSERVED)
        self.logger.info(
            f"Broadcast osservato da {self.peer_identity!r}, sessione {self._session_label()}"
        )
        return message

    def verify_certificate(self, identity_v: Optional[Identity] = None):
        """
        Checks Ai == Q_t + ID*Ar for the observed certificate.

        Args:
            identity_v: Identity to verify against (default: the claimed identity)

        Raises:
            CertificateVerificationFailure: If the check fails
        """
        self._require_state("verify_certificate", VerifierState.PEER_OBSERVED)
        identity = self.peer_identity if identity_v is None else identity_v

        try:
            valid = verify_implicit_certificate(self.peer_certificate, identity, self.ta_public_key)
        except ValueError:
            valid = False

        if not valid:
            raise self._fail(
                CertificateVerificationFailure(f"Certificate does not bind identity {identity!r} to Q_t")
            )

        self._transition(VerifierState.CERTIFICATE_VERIFIED)
        self.logger.info(f"✅ Certificato implicito di {identity!r} verificato")

    def respond(self, channel) -> bytes:
        """
        Sends Enc_groupKey(Q_u) and derives Sk_uv = DH(p_u, Q_v).

        Returns:
            The session key
        """
        self._require_state("respond", VerifierState.CERTIFICATE_VERIFIED)

        self._session_key = derive_agreement_key(
            self.key_pair.private_scalar, self.peer_public_key, self.session_id
        )
        channel.send(
            KeyResponse(
                session_id=self.session_id,
                encrypted_public_key=self._encrypt_public_key(
                    self.key_pair.public_point, MessageType.KEY_RESPONSE
                ),
            )
        )

        self._transition(VerifierState.SESSION_ESTABLISHED)
        self.logger.info(f"🔑 Risposta inviata, chiave di sessione stabilita ({self._session_label()})")
        return self._session_key

    def send_payload(self, channel, test_value: Optional[bytes] = None):
        """Sends Enc_Sk(test_value) and records completion."""
        self._require_state("send_payload", VerifierState.SESSION_ESTABLISHED)
        test_value = V2X_CONSTANTS.DEFAULT_TEST_PAYLOAD if test_value is None else test_value

        ciphertext = sym_encrypt(
            test_value,
            self._session_key,
            self._payload_aad(self.key_pair.public_point, self.peer_public_key),
        )
        channel.send(PayloadMessage(session_id=self.session_id, ciphertext=ciphertext))

        self.milestones.complete(self.ROLE, self.identity, self.session_id)
        self._transition(VerifierState.DONE)
        self.logger.info(f"✅ Payload cifrato inviato, sessione {self._session_label()} completata")

    def end_session(self):
        """Destroys session key material; the next session starts from init()."""
        self._session_key = None
        self.key_pair = None
        self.peer_public_key = None
        self.peer_identity = None
        self.peer_certificate = None
        self.session_id = None
        self.last_error = None
        self._transition(VerifierState.IDLE)
