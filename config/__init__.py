"""
V2X Configuration Package

Centralizza configurazioni, percorsi e costanti del sistema V2X.
"""

from .v2x_config import (
    V2X_PATHS,
    V2X_CONSTANTS,
    get_entity_base_dir,
)

__all__ = [
    'V2X_PATHS',
    'V2X_CONSTANTS',
    'get_entity_base_dir',
]
