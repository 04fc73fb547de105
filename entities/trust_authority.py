"""
Trust Authority

Owns the TA master key pair and issues identity-bound implicit certificates.

Responsabilità:
- Setup(): generazione (o caricamento) della master key p_t, Q_t = p_t*P
- Register(identity): emissione certificato implicito (Ai, Ar) + Q_t
- Pubblicazione di Q_t sul canale autenticato della chiave pubblica TA

Every registration is independent: the only state read across requests is
the immutable master key, so issuance needs no locking and may run on any
number of threads at once.

Author: SecureRoad V2X Project
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from threading import Lock
from typing import Iterable, List, Optional

from ecdsa.ellipticcurve import PointJacobi

from config import V2X_CONSTANTS
from protocols.certificates.implicit import (
    generate_master_key_pair,
    issue_implicit_certificate,
)
from protocols.core.primitives import encode_point, identity_to_scalar
from protocols.core.types import Identity, MasterKeyPair
from protocols.messages.types import RegistrationRequest, RegistrationResponse
from utils.key_io import KeyFileHandler
from utils.logger import V2XLogger, fingerprint


class TrustAuthority:
    """
    Trust Authority (TA)

    Issues implicit certificates over the registration channel and publishes
    its public key Q_t. With a base_dir the master key survives restarts
    (load-or-generate); without one the TA lives in memory only.
    """

    def __init__(
        self,
        ta_id: str = "TA_01",
        base_dir: Optional[str] = None,
        master_scalar: Optional[int] = None,
        log_level: int = logging.INFO,
        console_output: bool = True,
    ):
        """
        Inizializza la Trust Authority ed esegue Setup().

        Args:
            ta_id: Identificativo della TA
            base_dir: Directory per chiave master e log (None = solo memoria)
            master_scalar: p_t fisso (test vector deterministici)
            log_level: Livello di log
            console_output: Se True, log anche su console
        """
        self.ta_id = ta_id
        self.base_dir = Path(base_dir) if base_dir else None
        self.key_path: Optional[Path] = None
        log_dir = None

        if self.base_dir:
            self.key_path = self.base_dir / "private_keys" / "ta_master_key.key"
            log_dir = str(self.base_dir / "logs")

        self.logger = V2XLogger.get_logger(
            name=ta_id, log_dir=log_dir, level=log_level, console_output=console_output
        )

        self.logger.info("=" * 60)
        self.logger.info(f"Inizializzando Trust Authority: {self.ta_id}")
        self.logger.info("=" * 60)

        self._master_key: MasterKeyPair = self._load_or_generate_master_key(master_scalar)

        self._stats_lock = Lock()
        self._registrations_issued = 0
        self._registrations_failed = 0

        self.logger.info(f"Q_t: {fingerprint(self.public_key_bytes())}...")
        self.logger.info(f"✅ Trust Authority {self.ta_id} inizializzata con successo!")

    # ========================================================================
    # SETUP
    # ========================================================================

    def _load_or_generate_master_key(self, master_scalar: Optional[int]) -> MasterKeyPair:
        """Carica la master key se esiste, altrimenti la genera."""
        if self.key_path and os.path.exists(self.key_path):
            self.logger.info(f"Master key trovata, caricandola da: {self.key_path}")
            stored_scalar = KeyFileHandler.load_private_scalar(self.key_path)
            if master_scalar is not None and master_scalar != stored_scalar:
                raise ValueError(
                    f"Stored master key at {self.key_path} differs from the requested master scalar"
                )
            return generate_master_key_pair(stored_scalar)

        self.logger.info("Generando master key pair (NIST P-256)...")
        master_key = generate_master_key_pair(master_scalar)

        if self.key_path:
            KeyFileHandler.save_private_scalar(master_key.private_scalar, self.key_path)
            self.logger.info(f"✅ Master key salvata: {self.key_path}")

        return master_key

    # ========================================================================
    # PUBLIC KEY CHANNEL
    # ========================================================================

    @property
    def public_key(self) -> PointJacobi:
        """Q_t"""
        return self._master_key.public_point

    def public_key_bytes(self) -> bytes:
        """Q_t, SEC1 compressed"""
        return encode_point(self._master_key.public_point)

    # ========================================================================
    # REGISTRATION
    # ========================================================================

    def register(self, identity: Identity, r_v: Optional[int] = None) -> RegistrationResponse:
        """
        Issues an implicit certificate for identity.

        Args:
            identity: Registering vehicle identity
            r_v: Registration-time random scalar (fresh draw when None)

        Returns:
            RegistrationResponse carrying (Ai, Ar) and Q_t

        Raises:
            ValueError: If the identity cannot be mapped to a scalar
            PrimitiveError: On primitive failure (fatal)
        """
        try:
            identity_to_scalar(identity)
        except ValueError:
            self._count(failed=True)
            self.logger.warning(f"Registrazione rifiutata: identità non valida {identity!r}")
            raise

        certificate = issue_implicit_certificate(self._master_key, identity, r_v)
        self._count(failed=False)

        self.logger.info(f"Certificato implicito emesso per {identity!r}: Ai={certificate.fingerprint()}...")
        return RegistrationResponse(certificate=certificate, ta_public_key=self.public_key)

    def handle_registration(self, request: RegistrationRequest) -> RegistrationResponse:
        """Registration-channel entry point."""
        return self.register(request.identity)

    def register_many(
        self, identities: Iterable[Identity], max_workers: Optional[int] = None
    ) -> List[RegistrationResponse]:
        """
        Serves several registrations concurrently (thread-per-request).

        Returns:
            Responses in the same order as identities
        """
        identities = list(identities)
        workers = max_workers or V2X_CONSTANTS.DEFAULT_REGISTRATION_WORKERS
        self.logger.info(f"Registrazione concorrente di {len(identities)} veicoli ({workers} worker)")

        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self.register, identities))

    # ========================================================================
    # STATISTICS
    # ========================================================================

    def _count(self, failed: bool):
        with self._stats_lock:
            if failed:
                self._registrations_failed += 1
            else:
                self._registrations_issued += 1

    def get_statistics(self) -> dict:
        with self._stats_lock:
            return {
                "ta_id": self.ta_id,
                "registrations_issued": self._registrations_issued,
                "registrations_failed": self._registrations_failed,
                "public_key": self.public_key_bytes().hex(),
                "persistent": self.key_path is not None,
            }

    def __repr__(self) -> str:
        return f"TrustAuthority(ta_id={self.ta_id!r}, q_t={fingerprint(self.public_key_bytes())})"
