"""
HTTP Registration Client

Registration and TA-public-key channels backed by the TA REST API. Drop-in
replacements for the in-process RegistrationChannel / TAPublicKeyChannel:

    POST {base_url}/api/registration/request   {"identity": ...}
         -> {"ai": hex, "ar": hex, "q_t": hex}
    GET  {base_url}/api/ta/public-key
         -> {"q_t": hex}

TLS is expected to protect the registration channel in deployment; the API
key authenticates the vehicle to the TA.

Author: SecureRoad V2X Project
"""

import logging
from typing import Optional

import requests
from ecdsa.ellipticcurve import PointJacobi

from config import V2X_CONSTANTS
from protocols.certificates.implicit import ImplicitCertificate
from protocols.core.exceptions import PrimitiveError, RegistrationError
from protocols.core.primitives import decode_point
from protocols.core.types import Identity
from protocols.messages.types import RegistrationResponse

logger = logging.getLogger(__name__)


def identity_to_json(identity: Identity) -> dict:
    """JSON form of an identity: bytes travel as hex with an explicit kind."""
    if isinstance(identity, bytes):
        return {"identity": identity.hex(), "identity_kind": "bytes"}
    return {"identity": identity}


class _TAClient:
    """Shared HTTP plumbing for the TA REST API."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = V2X_CONSTANTS.DEFAULT_API_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        if api_key:
            self.session.headers["Authorization"] = f"Bearer {api_key}"

    def _call(self, method: str, path: str, **kwargs) -> dict:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise RegistrationError(f"Connection error contacting TA at {url}: {e}") from e

        if response.status_code != 200:
            try:
                error = response.json()
                detail = f"{error.get('error', 'error')} (responseCode {error.get('responseCode', 'N/A')})"
            except ValueError:
                detail = response.text[:200]
            raise RegistrationError(f"TA returned HTTP {response.status_code}: {detail}")

        try:
            return response.json()
        except ValueError as e:
            raise RegistrationError(f"TA returned a non-JSON body: {e}") from e

    @staticmethod
    def _point(data: dict, key: str) -> PointJacobi:
        try:
            return decode_point(bytes.fromhex(data[key]))
        except (KeyError, TypeError, ValueError, PrimitiveError) as e:
            raise RegistrationError(f"Invalid '{key}' in TA response: {e}") from e


class HTTPRegistrationChannel(_TAClient):
    """Registration channel over HTTP(S)."""

    def request(self, identity: Identity) -> RegistrationResponse:
        """
        Raises:
            RegistrationError: On connection failure, non-200 status or a
                malformed response
        """
        logger.info(f"Richiesta di registrazione HTTP per {identity!r} a {self.base_url}")
        data = self._call("POST", "/api/registration/request", json=identity_to_json(identity))

        return RegistrationResponse(
            certificate=ImplicitCertificate(ai=self._point(data, "ai"), ar=self._point(data, "ar")),
            ta_public_key=self._point(data, "q_t"),
        )


class HTTPTAPublicKeyChannel(_TAClient):
    """TA public-key channel over HTTP(S)."""

    def get_public_key(self) -> PointJacobi:
        data = self._call("GET", "/api/ta/public-key")
        return self._point(data, "q_t")
