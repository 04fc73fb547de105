"""
Replay Guard

In-memory record of payload frames already accepted by a registrant.
A frame seen a second time is rejected with ReplayDetected. The record is
lost on restart; entries are SHA-256 digests of (session id, ciphertext) so
no ciphertext is retained.

Records are grouped by session id. A registrant forgets a session's
records when it ends that session: its key is destroyed by then, so no
frame of that session can be accepted again.

Author: SecureRoad V2X Project
"""

import hashlib
from collections import defaultdict
from threading import Lock
from typing import Dict, Set

from protocols.core.exceptions import ReplayDetected


class ReplayGuard:
    """Thread-safe record of accepted frame digests, shareable between vehicles."""

    def __init__(self):
        self._seen: Dict[bytes, Set[bytes]] = defaultdict(set)
        self._lock = Lock()

    @staticmethod
    def _digest(session_id: bytes, ciphertext: bytes) -> bytes:
        return hashlib.sha256(session_id + ciphertext).digest()

    def seen(self, session_id: bytes, ciphertext: bytes) -> bool:
        with self._lock:
            return self._digest(session_id, ciphertext) in self._seen.get(session_id, ())

    def check_and_record(self, session_id: bytes, ciphertext: bytes):
        """
        Records a frame as accepted.

        Raises:
            ReplayDetected: If the same frame was already accepted
        """
        digest = self._digest(session_id, ciphertext)
        with self._lock:
            if digest in self._seen[session_id]:
                raise ReplayDetected(f"Payload frame already accepted for session {session_id.hex()[:16]}")
            self._seen[session_id].add(digest)

    def forget(self, session_id: bytes) -> int:
        """Drops the records of one session; returns how many were dropped."""
        with self._lock:
            return len(self._seen.pop(session_id, ()))

    def __len__(self) -> int:
        with self._lock:
            return sum(len(digests) for digests in self._seen.values())

    def clear(self):
        with self._lock:
            self._seen.clear()
