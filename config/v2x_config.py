"""
V2X Configuration - Percorsi e costanti centralizzate

Questo file centralizza i percorsi base delle entità V2X e le costanti
crittografiche del protocollo a certificati impliciti.
Modificando qui i valori, si applicano automaticamente a tutto il sistema.

Usage:
    from config.v2x_config import V2X_PATHS, V2X_CONSTANTS

    ta = TrustAuthority(ta_id="TA_001", base_dir=V2X_PATHS.get_ta_path("TA_001"))
    nonce = secrets.token_bytes(V2X_CONSTANTS.AEAD_NONCE_SIZE)
"""

from pathlib import Path
from dataclasses import dataclass


@dataclass(frozen=True)
class V2XPaths:
    """
    Percorsi base centralizzati per tutte le entità V2X.

    Attributi:
        BASE: Directory radice per tutti i dati V2X
        TA: Directory base per Trust Authorities
        VEHICLES: Directory base per i veicoli (solo log)
        LOGS: Directory log centralizzata
    """
    BASE: Path = Path("./v2x_data")

    TA: Path = Path("./v2x_data/ta")
    VEHICLES: Path = Path("./v2x_data/vehicles")

    LOGS: Path = Path("./logs")

    def get_ta_path(self, ta_id: str) -> Path:
        """Ottieni path completo per una specifica TA"""
        return self.TA / ta_id

    def get_vehicle_path(self, vehicle_id: str) -> Path:
        """Ottieni path completo per uno specifico veicolo"""
        return self.VEHICLES / vehicle_id


# Istanza singleton globale
V2X_PATHS = V2XPaths()


@dataclass(frozen=True)
class V2XConstants:
    """
    Costanti centralizzate per il protocollo.

    Curve and key sizes are fixed for the whole deployment: every TA and
    vehicle in a run must agree on them.
    """
    # Curva ellittica (NIST P-256 / secp256r1)
    CURVE_NAME: str = "NIST256p"
    COMPRESSED_POINT_SIZE: int = 33
    SCALAR_SIZE: int = 32

    # AEAD (AES-256-GCM)
    SYMMETRIC_KEY_SIZE: int = 32
    AEAD_NONCE_SIZE: int = 12
    AEAD_TAG_SIZE: int = 16

    # Sessioni sul canale broadcast
    SESSION_ID_SIZE: int = 16

    # HKDF info labels
    SESSION_KEY_INFO: bytes = b"v2x-implicit-cert/session-key"

    # Test payload inviato dal verifier
    DEFAULT_TEST_PAYLOAD: bytes = b"secret-42"

    # Concorrenza TA
    DEFAULT_REGISTRATION_WORKERS: int = 8

    # API
    DEFAULT_API_HOST: str = "0.0.0.0"
    DEFAULT_API_PORT: int = 5080
    DEFAULT_API_TIMEOUT: int = 30  # secondi


# Istanza singleton globale
V2X_CONSTANTS = V2XConstants()


def get_entity_base_dir(entity_type: str, entity_id: str = None) -> Path:
    """
    Ottieni il path base per un'entità V2X.

    Args:
        entity_type: Tipo entità ("ta", "vehicle")
        entity_id: ID entità (opzionale)

    Returns:
        Path: Percorso base dell'entità

    Examples:
        >>> get_entity_base_dir("ta", "TA_001")
        PosixPath('v2x_data/ta/TA_001')

        >>> get_entity_base_dir("vehicle")
        PosixPath('v2x_data/vehicles')
    """
    entity_type = entity_type.lower()

    if entity_type == "ta":
        if not entity_id:
            return V2X_PATHS.TA
        return V2X_PATHS.get_ta_path(entity_id)
    elif entity_type == "vehicle":
        if not entity_id:
            return V2X_PATHS.VEHICLES
        return V2X_PATHS.get_vehicle_path(entity_id)
    else:
        raise ValueError(f"Tipo entità non riconosciuto: {entity_type}")
