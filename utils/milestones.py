"""
Protocol Milestones

Thread-safe log of the start/completion markers recorded by each role,
used to state and check correspondence: every completion is preceded by a
start for the same (role, identity), and no identity completes more sessions
than it started.

Author: SecureRoad V2X Project
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from itertools import count
from threading import Lock
from typing import Dict, List, Optional, Tuple

from protocols.core.types import Identity, MilestoneKind, VehicleRole


@dataclass(frozen=True)
class Milestone:
    """Single milestone event"""
    sequence: int
    timestamp: datetime
    role: VehicleRole
    identity: Identity
    kind: MilestoneKind
    session_id: Optional[bytes] = None


class MilestoneLog:
    """
    Records START/COMPLETE milestones for concurrently running sessions.

    Sequence numbers give a total order across threads.
    """

    def __init__(self):
        self._events: List[Milestone] = []
        self._lock = Lock()
        self._sequence = count()

    def record(
        self,
        role: VehicleRole,
        identity: Identity,
        kind: MilestoneKind,
        session_id: Optional[bytes] = None,
    ) -> Milestone:
        with self._lock:
            milestone = Milestone(
                sequence=next(self._sequence),
                timestamp=datetime.now(timezone.utc),
                role=role,
                identity=identity,
                kind=kind,
                session_id=session_id,
            )
            self._events.append(milestone)
            return milestone

    def start(self, role: VehicleRole, identity: Identity, session_id: Optional[bytes] = None) -> Milestone:
        return self.record(role, identity, MilestoneKind.START, session_id)

    def complete(self, role: VehicleRole, identity: Identity, session_id: Optional[bytes] = None) -> Milestone:
        return self.record(role, identity, MilestoneKind.COMPLETE, session_id)

    def events(
        self,
        role: Optional[VehicleRole] = None,
        identity: Optional[Identity] = None,
        kind: Optional[MilestoneKind] = None,
    ) -> List[Milestone]:
        """Returns recorded milestones in sequence order, optionally filtered."""
        with self._lock:
            events = list(self._events)
        return [
            e for e in events
            if (role is None or e.role == role)
            and (identity is None or e.identity == identity)
            and (kind is None or e.kind == kind)
        ]

    def count(self, role: VehicleRole, identity: Identity, kind: MilestoneKind) -> int:
        return len(self.events(role=role, identity=identity, kind=kind))

    def check_correspondence(self) -> List[str]:
        """
        Verifies start/completion correspondence per (role, identity).

        Returns:
            List of violation descriptions (empty when the log is consistent)
        """
        violations = []
        pending: Dict[Tuple[VehicleRole, Identity], int] = {}

        for event in self.events():
            key = (event.role, event.identity)
            if event.kind == MilestoneKind.START:
                pending[key] = pending.get(key, 0) + 1
            elif pending.get(key, 0) > 0:
                pending[key] -= 1
            else:
                violations.append(
                    f"#{event.sequence}: completion without matching start "
                    f"for role {event.role.value} identity {event.identity!r}"
                )
        return violations

    def summary(self) -> Dict[str, int]:
        with self._lock:
            starts = sum(1 for e in self._events if e.kind == MilestoneKind.START)
            completes = len(self._events) - starts
        return {"starts": starts, "completions": completes}

    def reset(self):
        """Reset log (useful for testing)"""
        with self._lock:
            self._events.clear()
            self._sequence = count()


# Global milestone log instance
_milestone_log: Optional[MilestoneLog] = None


def get_milestone_log() -> MilestoneLog:
    """Get or create global milestone log"""
    global _milestone_log
    if _milestone_log is None:
        _milestone_log = MilestoneLog()
    return _milestone_log


def reset_milestone_log():
    """Reset global milestone log (for testing)"""
    global _milestone_log
    if _milestone_log:
        _milestone_log.reset()
