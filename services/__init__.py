"""
V2X Services Package

Channel model collaborators: in-process registration/public-key channels,
the shared broadcast channel with its adversary hooks, and HTTP clients for
the TA REST API.
"""

from .channels import (
    BroadcastAdversary,
    BroadcastChannel,
    RegistrationChannel,
    Subscription,
    TAPublicKeyChannel,
)
from .registration_client import HTTPRegistrationChannel, HTTPTAPublicKeyChannel

__all__ = [
    "RegistrationChannel",
    "TAPublicKeyChannel",
    "BroadcastChannel",
    "Subscription",
    "BroadcastAdversary",
    "HTTPRegistrationChannel",
    "HTTPTAPublicKeyChannel",
]
