"""
Channel Model

Transport collaborators consumed by the protocol core:

- RegistrationChannel: point-to-point, confidential and authentic; connects
  one vehicle to the TA and carries (identity) -> (Ai, Ar, Q_t).
- TAPublicKeyChannel: authentic one-to-many distribution of Q_t.
- BroadcastChannel: public many-to-many medium. Carries encoded frames only
  and gives no confidentiality or authenticity guarantee; interceptors and
  BroadcastAdversary can observe, drop, tamper, delay, reorder, replay and
  inject traffic.

Receives are the only suspension points of a session. They block on a
condition variable until a matching frame is delivered or the caller's
timeout expires.

Author: SecureRoad V2X Project
"""

import logging
import time
import weakref
from dataclasses import dataclass
from threading import Condition, Lock
from typing import Callable, List, Optional, Set

from ecdsa.ellipticcurve import PointJacobi

from protocols.core.exceptions import ChannelTimeout, MessageDecodeError, RegistrationError
from protocols.core.types import Identity, MessageType
from protocols.messages.encoder import BroadcastMessage, MessageEncoder
from protocols.messages.types import RegistrationRequest, RegistrationResponse

logger = logging.getLogger(__name__)

# An interceptor maps one published frame to the frames actually delivered
Interceptor = Callable[[bytes], List[bytes]]


# ============================================================================
# REGISTRATION / TA PUBLIC KEY CHANNELS (in-process)
# ============================================================================


class RegistrationChannel:
    """
    In-process registration channel bound to a single Trust Authority.

    Not observable by the broadcast adversary.
    """

    def __init__(self, trust_authority):
        self._ta = trust_authority

    def request(self, identity: Identity) -> RegistrationResponse:
        """
        Sends (identity), blocks until (Ai, Ar, Q_t) is returned.

        Raises:
            RegistrationError: If the TA rejects the identity
        """
        try:
            return self._ta.handle_registration(RegistrationRequest(identity=identity))
        except ValueError as e:
            raise RegistrationError(f"TA rejected identity {identity!r}: {e}") from e


class TAPublicKeyChannel:
    """Authentic distribution of Q_t to vehicles that do not register."""

    def __init__(self, trust_authority):
        self._ta = trust_authority

    def get_public_key(self) -> PointJacobi:
        return self._ta.public_key


# ============================================================================
# BROADCAST CHANNEL
# ============================================================================


class BroadcastChannel:
    """
    Shared public medium for all inter-vehicle traffic.

    Delivered frames are appended to an ordered log; every Subscription keeps
    its own view of that log, so any number of sessions can share the channel.

    The log grows with every delivery. compact() drops the prefix that no
    live subscription can still read; frame indices stay absolute, so open
    subscriptions are unaffected.
    """

    def __init__(self, name: str = "broadcast", encoder: Optional[MessageEncoder] = None):
        self.name = name
        self.encoder = encoder or MessageEncoder()
        self._frames: List[bytes] = []
        # Absolute index of _frames[0]
        self._base = 0
        self._subscriptions: "weakref.WeakSet[Subscription]" = weakref.WeakSet()
        self._cond = Condition()
        self._interceptors: List[Interceptor] = []
        self._interceptors_lock = Lock()

    # ------------------------------------------------------------------------
    # SENDING
    # ------------------------------------------------------------------------

    def publish(self, frame: bytes):
        """Sends a frame; interceptors decide what is actually delivered."""
        with self._interceptors_lock:
            interceptors = list(self._interceptors)

        frames = [frame]
        for interceptor in interceptors:
            next_frames = []
            for f in frames:
                next_frames.extend(interceptor(f))
            frames = next_frames

        for f in frames:
            self.deliver(f)

    def send(self, message: BroadcastMessage):
        """Encodes and publishes a message."""
        self.publish(self.encoder.encode(message))

    def deliver(self, frame: bytes):
        """Appends a frame to the medium, bypassing interceptors."""
        with self._cond:
            self._frames.append(frame)
            self._cond.notify_all()

    # ------------------------------------------------------------------------
    # INTERCEPTION / OBSERVATION
    # ------------------------------------------------------------------------

    def add_interceptor(self, interceptor: Interceptor):
        with self._interceptors_lock:
            self._interceptors.append(interceptor)

    def remove_interceptor(self, interceptor: Interceptor):
        with self._interceptors_lock:
            if interceptor in self._interceptors:
                self._interceptors.remove(interceptor)

    def transcript(self) -> List[bytes]:
        """Every frame still retained, in delivery order."""
        with self._cond:
            return list(self._frames)

    def __len__(self) -> int:
        with self._cond:
            return len(self._frames)

    # ------------------------------------------------------------------------
    # RECEIVING
    # ------------------------------------------------------------------------

    def subscribe(self, from_start: bool = True) -> "Subscription":
        """
        Opens a receive view on the channel.

        Args:
            from_start: If False, only frames delivered after this call are visible
        """
        with self._cond:
            start = self._base if from_start else self._base + len(self._frames)
            subscription = Subscription(self, start)
            self._subscriptions.add(subscription)
        return subscription

    def compact(self) -> int:
        """
        Discards frames every live subscription has already moved past.

        With no live subscription the whole log is discarded. Returns the
        number of frames dropped.
        """
        with self._cond:
            end = self._base + len(self._frames)
            cutoff = min((s._start for s in self._subscriptions), default=end)
            dropped = cutoff - self._base
            if dropped > 0:
                del self._frames[:dropped]
                self._base = cutoff
                logger.debug(f"Canale '{self.name}': {dropped} frame scartati")
            return max(dropped, 0)


class Subscription:
    """Per-receiver view of a BroadcastChannel; frames are consumed once per view."""

    def __init__(self, channel: BroadcastChannel, start: int):
        self._channel = channel
        self._start = start
        self._consumed: Set[int] = set()

    def close(self):
        """Stops this view from holding back BroadcastChannel.compact()."""
        with self._channel._cond:
            self._channel._subscriptions.discard(self)

    def receive(
        self,
        message_type: MessageType,
        session_id: Optional[bytes] = None,
        accept: Optional[Callable[[BroadcastMessage], bool]] = None,
        timeout: Optional[float] = None,
    ) -> BroadcastMessage:
        """
        Blocks until a frame of message_type (and session_id, if given)
        satisfying accept is available, then consumes and returns it.

        Frames that cannot be decoded are skipped.

        Raises:
            ChannelTimeout: If nothing matches within timeout seconds
        """
        channel = self._channel
        deadline = None if timeout is None else time.monotonic() + timeout

        with channel._cond:
            while True:
                message = self._scan(message_type, session_id, accept)
                if message is not None:
                    return message

                if deadline is None:
                    channel._cond.wait()
                else:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise ChannelTimeout(
                            f"No {message_type.name} frame on '{channel.name}' within {timeout}s"
                        )
                    channel._cond.wait(remaining)

    def _scan(self, message_type, session_id, accept) -> Optional[BroadcastMessage]:
        channel = self._channel
        frames, base = channel._frames, channel._base

        # A closed view may have fallen behind compact()
        self._start = max(self._start, base)
        for index in range(self._start, base + len(frames)):
            if index in self._consumed:
                continue

            frame = frames[index - base]
            header = channel.encoder.peek_header(frame)
            if header is None:
                self._consume(index)
                continue
            frame_type, frame_session = header
            if frame_type != message_type or (session_id is not None and frame_session != session_id):
                continue

            try:
                message = channel.encoder.decode(frame)
            except MessageDecodeError as e:
                logger.debug(f"Frame #{index} scartato: {e}")
                self._consume(index)
                continue

            if accept is not None and not accept(message):
                continue

            self._consume(index)
            return message
        return None

    def _consume(self, index: int):
        self._consumed.add(index)
        while self._start in self._consumed:
            self._consumed.discard(self._start)
            self._start += 1


# ============================================================================
# ADVERSARY
# ============================================================================


@dataclass
class _Rule:
    message_type: Optional[MessageType]
    action: str
    remaining: int
    mutate: Optional[Callable[[bytes], bytes]] = None


class BroadcastAdversary:
    """
    Network adversary with full control of a broadcast channel.

    Sees every frame, and can drop, tamper with, delay (hold), reorder,
    replay or inject frames. Has no access to the registration channel.
    """

    def __init__(self, channel: BroadcastChannel):
        self.channel = channel
        self._rules: List[_Rule] = []
        self._held: List[bytes] = []
        self._lock = Lock()
        channel.add_interceptor(self._intercept)

    def observed(self) -> List[bytes]:
        return self.channel.transcript()

    def drop(self, message_type: Optional[MessageType] = None, count: int = 1):
        self._add_rule(_Rule(message_type, "drop", count))

    def tamper(self, mutate: Callable[[bytes], bytes], message_type: Optional[MessageType] = None, count: int = 1):
        self._add_rule(_Rule(message_type, "tamper", count, mutate))

    def hold(self, message_type: Optional[MessageType] = None, count: int = 1):
        """Delays matching frames until release()."""
        self._add_rule(_Rule(message_type, "hold", count))

    def held(self) -> List[bytes]:
        with self._lock:
            return list(self._held)

    def release(self, reverse: bool = True) -> int:
        """Delivers held frames, by default in reverse order."""
        with self._lock:
            held, self._held = self._held, []
        if reverse:
            held.reverse()
        for frame in held:
            self.channel.deliver(frame)
        return len(held)

    def replay(self, index: int):
        """Re-delivers a previously observed frame (index into observed())."""
        self.channel.deliver(self.observed()[index])

    def inject(self, frame: bytes):
        self.channel.deliver(frame)

    def detach(self):
        self.channel.remove_interceptor(self._intercept)

    def _add_rule(self, rule: _Rule):
        with self._lock:
            self._rules.append(rule)

    def _intercept(self, frame: bytes) -> List[bytes]:
        header = self.channel.encoder.peek_header(frame)
        frame_type = header[0] if header else None

        with self._lock:
            for rule in self._rules:
                if rule.remaining <= 0:
                    continue
                if rule.message_type is not None and rule.message_type != frame_type:
                    continue
                rule.remaining -= 1
                if rule.action == "drop":
                    return []
                if rule.action == "hold":
                    self._held.append(frame)
                    return []
                if rule.action == "tamper":
                    return [rule.mutate(frame)]
        return [frame]
