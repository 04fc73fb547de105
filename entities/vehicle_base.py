"""
Vehicle Base Class

Common functionality for the two vehicle roles (registrant V, verifier U):
logging, milestone recording, session state bookkeeping and the group-key
encryption of public keys carried on the broadcast channel.

Every vehicle instance owns its own key material; nothing secret is shared
through module-level state.

Author: SecureRoad V2X Project
"""

import logging
from enum import Enum
from typing import Optional

from ecdsa.ellipticcurve import PointJacobi

from config import V2X_CONSTANTS
from protocols.core.exceptions import MessageDecodeError, PrimitiveError, ProtocolViolation, V2XProtocolError
from protocols.core.primitives import decode_point, encode_point, sym_decrypt, sym_encrypt
from protocols.core.types import Identity, MessageType, VehicleKeyPair, VehicleRole
from protocols.messages.encoder import associated_data
from utils.logger import V2XLogger, fingerprint
from utils.milestones import MilestoneLog, get_milestone_log


class VehicleBase:
    """
    Base class for protocol participants.

    Subclasses define ROLE and INITIAL_STATE and drive transitions through
    _require_state / _transition / _fail.
    """

    ROLE: VehicleRole
    INITIAL_STATE: Enum
    FAILED_STATE: Enum

    def __init__(
        self,
        identity: Identity,
        group_key: bytes,
        milestones: Optional[MilestoneLog] = None,
        log_dir: Optional[str] = None,
        log_level: int = logging.INFO,
        console_output: bool = True,
    ):
        """
        Args:
            identity: Vehicle identity
            group_key: Pre-shared 32-byte group key
            milestones: Milestone log (default: global log)
            log_dir: Directory for the vehicle log file (None = console only)
            log_level: Livello di log
            console_output: Se True, log anche su console
        """
        if len(group_key) != V2X_CONSTANTS.SYMMETRIC_KEY_SIZE:
            raise PrimitiveError(
                f"Group key must be {V2X_CONSTANTS.SYMMETRIC_KEY_SIZE} bytes, got {len(group_key)}"
            )

        self.identity = identity
        self._group_key = group_key
        self.milestones = milestones or get_milestone_log()
        self.logger = V2XLogger.get_logger(
            name=f"{self.ROLE.name}_{identity}",
            log_dir=log_dir,
            level=log_level,
            console_output=console_output,
        )

        self.state = self.INITIAL_STATE
        self.session_id: Optional[bytes] = None
        self.key_pair: Optional[VehicleKeyPair] = None
        self.peer_public_key: Optional[PointJacobi] = None
        self.last_error: Optional[V2XProtocolError] = None
        self._session_key: Optional[bytes] = None

    # ========================================================================
    # STATE MACHINE
    # ========================================================================

    def _require_state(self, operation: str, *allowed: Enum):
        """Raises ProtocolViolation if operation is not allowed in the current state."""
        if self.state not in allowed:
            expected = ", ".join(s.value for s in allowed)
            raise ProtocolViolation(
                f"{operation}() not allowed in state {self.state.value} (expected {expected})"
            )

    def _transition(self, new_state: Enum):
        self.logger.debug(f"Stato: {self.state.value} -> {new_state.value}")
        self.state = new_state

    def _fail(self, error: V2XProtocolError) -> V2XProtocolError:
        """Marks the session as failed and returns error for the caller to raise."""
        self.logger.warning(f"✗ Sessione fallita in stato {self.state.value}: {type(error).__name__}: {error}")
        self.state = self.FAILED_STATE
        self.last_error = error
        self._session_key = None
        return error

    @property
    def session_key(self) -> Optional[bytes]:
        """Current session key (None outside an established session)."""
        return self._session_key

    @property
    def failed(self) -> bool:
        return self.state == self.FAILED_STATE

    # ========================================================================
    # GROUP-KEY PROTECTED PUBLIC KEYS
    # ========================================================================

    def _encrypt_public_key(self, point: PointJacobi, message_type: MessageType) -> bytes:
        """Enc_groupKey(Q), bound to message type and session id."""
        return sym_encrypt(
            encode_point(point),
            self._group_key,
            associated_data(message_type, self.session_id),
        )

    def _decrypt_public_key(self, ciphertext: bytes, message_type: MessageType) -> PointJacobi:
        """
        Raises:
            DecryptionError: If the group-key tag does not verify
            MessageDecodeError: If the plaintext is not a valid curve point
        """
        plaintext = sym_decrypt(
            ciphertext,
            self._group_key,
            associated_data(message_type, self.session_id),
        )
        try:
            return decode_point(plaintext)
        except PrimitiveError as e:
            raise MessageDecodeError(f"Peer public key is not a valid point: {e}") from e

    def _payload_aad(self, verifier_point: PointJacobi, registrant_point: PointJacobi) -> bytes:
        """Payload AAD: session id plus Q_u and Q_v."""
        return associated_data(
            MessageType.TEST_PAYLOAD,
            self.session_id,
            encode_point(verifier_point),
            encode_point(registrant_point),
        )

    def _session_label(self) -> str:
        return fingerprint(self.session_id) if self.session_id else "-"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(identity={self.identity!r}, state={self.state.value}, "
            f"session={self._session_label()})"
        )
