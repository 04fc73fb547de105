"""
Middleware Package

Contains authentication and monitoring middleware.
"""

from .auth import extract_api_key, require_api_key, setup_auth
from .monitoring import setup_monitoring

__all__ = [
    "setup_auth",
    "require_api_key",
    "extract_api_key",
    "setup_monitoring",
]
