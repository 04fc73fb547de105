"""
REST API Package for the SecureRoad V2X Trust Authority

Exposes the TA registration and public-key channels over HTTP.

Author: SecureRoad V2X Project
"""

__version__ = "1.0.0"
__author__ = "SecureRoad V2X Project"

from .flask_app_factory import create_app

__all__ = ["create_app"]
