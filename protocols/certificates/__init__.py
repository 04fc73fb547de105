"""
V2X Implicit Certificates

Certificate material issued by the Trust Authority and verified by peer
vehicles from public values only.

Author: SecureRoad V2X Project
"""

from .implicit import (
    ImplicitCertificate,
    generate_master_key_pair,
    issue_implicit_certificate,
    verify_implicit_certificate,
)

__all__ = [
    "ImplicitCertificate",
    "generate_master_key_pair",
    "issue_implicit_certificate",
    "verify_implicit_certificate",
]
