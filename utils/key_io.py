"""
Key I/O Utilities

Centralizza la persistenza della chiave master della Trust Authority.
The master scalar is stored as a PKCS8 PEM so standard tooling can inspect it.
"""

import os
from pathlib import Path
from typing import Optional, Union

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from protocols.core.exceptions import PrimitiveError


class KeyFileHandler:
    """Handler centralizzato per operazioni I/O sulle chiavi"""

    @staticmethod
    def save_private_scalar(
        private_scalar: int,
        key_path: Union[str, Path],
        password: Optional[bytes] = None,
        create_dirs: bool = True,
    ):
        """
        Salva lo scalare privato come chiave EC P-256 in formato PEM.

        Args:
            private_scalar: Scalare privato in [1, n-1]
            key_path: Path dove salvare la chiave
            password: Password per cifrare la chiave (opzionale)
            create_dirs: Se True, crea directory se non esiste
        """
        if create_dirs:
            os.makedirs(os.path.dirname(os.path.abspath(key_path)), exist_ok=True)

        encryption = (
            serialization.BestAvailableEncryption(password)
            if password
            else serialization.NoEncryption()
        )

        private_key = ec.derive_private_key(private_scalar, ec.SECP256R1())
        with open(key_path, "wb") as f:
            f.write(
                private_key.private_bytes(
                    encoding=serialization.Encoding.PEM,
                    format=serialization.PrivateFormat.PKCS8,
                    encryption_algorithm=encryption,
                )
            )

    @staticmethod
    def load_private_scalar(key_path: Union[str, Path], password: Optional[bytes] = None) -> int:
        """
        Carica lo scalare privato da file PEM.

        Raises:
            FileNotFoundError: Se il file non esiste
            PrimitiveError: Se la chiave non è una chiave EC P-256
        """
        with open(key_path, "rb") as f:
            private_key = serialization.load_pem_private_key(f.read(), password=password)

        if not isinstance(private_key, ec.EllipticCurvePrivateKey) or not isinstance(
            private_key.curve, ec.SECP256R1
        ):
            raise PrimitiveError(f"Key at {key_path} is not a P-256 EC private key")

        return private_key.private_numbers().private_value

    @staticmethod
    def file_exists(path: Union[str, Path]) -> bool:
        return os.path.isfile(path)
