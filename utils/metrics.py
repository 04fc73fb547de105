"""
Metrics Collection System

In-memory metrics for the Trust Authority REST API and for authentication
sessions run in this process:
- HTTP requests: latency, status codes, registration / public-key counters
- Sessions: completed and failed sessions, failures grouped by error type

Author: SecureRoad V2X Project
"""

from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Deque, Dict, List, Optional


@dataclass
class MetricsSample:
    """Single HTTP request sample"""
    timestamp: datetime
    endpoint: str
    method: str
    status_code: int
    latency_ms: float
    entity_id: str
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass
class MetricsStats:
    """Aggregated request statistics"""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    avg_latency_ms: float = 0.0
    min_latency_ms: float = 0.0
    max_latency_ms: float = 0.0
    error_rate: float = 0.0
    status_codes: Dict[int, int] = field(default_factory=dict)
    endpoints: Dict[str, int] = field(default_factory=dict)


@dataclass
class SessionStats:
    """Aggregated authentication session statistics"""
    completed: int = 0
    failed: int = 0
    avg_duration_ms: float = 0.0
    failures_by_error: Dict[str, int] = field(default_factory=dict)


_REQUEST_COUNTERS = (
    "total_requests",
    "successful_requests",
    "failed_requests",
    "registration_requests",
    "public_key_requests",
)


class MetricsCollector:
    """
    Collects and aggregates metrics for monitoring.

    Thread-safe; samples are kept in bounded FIFO buffers.
    """

    def __init__(self, max_samples: int = 10000):
        self.max_samples = max_samples
        self._lock = Lock()
        self._samples: Deque[MetricsSample] = deque(maxlen=max_samples)
        self._counters: Counter = Counter()
        self._session_durations: Deque[float] = deque(maxlen=max_samples)
        self._session_failures: Counter = Counter()
        self._start_time = datetime.now(timezone.utc)

    # ========================================================================
    # HTTP REQUESTS
    # ========================================================================

    def record_request(
        self,
        endpoint: str,
        method: str,
        status_code: int,
        latency_ms: float,
        entity_id: str,
        error: Optional[str] = None,
    ):
        """
        Record a single API request

        Args:
            endpoint: Request path (e.g., /api/registration/request)
            method: HTTP method
            status_code: HTTP status code
            latency_ms: Request latency in milliseconds
            entity_id: TA identifier
            error: Error description if the request failed
        """
        sample = MetricsSample(
            timestamp=datetime.now(timezone.utc),
            endpoint=endpoint,
            method=method,
            status_code=status_code,
            latency_ms=latency_ms,
            entity_id=entity_id,
            error=error,
        )

        with self._lock:
            self._samples.append(sample)
            self._counters["total_requests"] += 1
            self._counters["successful_requests" if sample.ok else "failed_requests"] += 1
            if endpoint.startswith("/api/registration"):
                self._counters["registration_requests"] += 1
            elif endpoint.endswith("/public-key"):
                self._counters["public_key_requests"] += 1

    def get_stats(self, last_n_minutes: Optional[int] = None) -> MetricsStats:
        """
        Aggregated request statistics

        Args:
            last_n_minutes: Only include samples from the last N minutes (None = all)
        """
        with self._lock:
            samples = list(self._samples)

        if last_n_minutes:
            cutoff = datetime.now(timezone.utc).timestamp() - last_n_minutes * 60
            samples = [s for s in samples if s.timestamp.timestamp() > cutoff]

        if not samples:
            return MetricsStats()

        latencies = [s.latency_ms for s in samples]
        failed = sum(1 for s in samples if not s.ok)

        return MetricsStats(
            total_requests=len(samples),
            successful_requests=len(samples) - failed,
            failed_requests=failed,
            avg_latency_ms=sum(latencies) / len(latencies),
            min_latency_ms=min(latencies),
            max_latency_ms=max(latencies),
            error_rate=failed / len(samples) * 100,
            status_codes=dict(Counter(s.status_code for s in samples)),
            endpoints=dict(Counter(s.endpoint for s in samples)),
        )

    def get_counters(self) -> Dict[str, int]:
        with self._lock:
            return {name: self._counters[name] for name in _REQUEST_COUNTERS}

    def get_recent_errors(self, limit: int = 10) -> List[MetricsSample]:
        """Most recent failed requests, newest first"""
        with self._lock:
            errors = [s for s in self._samples if s.status_code >= 400]
        return list(reversed(errors[-limit:]))

    # ========================================================================
    # SESSIONS
    # ========================================================================

    def record_session(self, success: bool, duration_ms: float, error: Optional[BaseException] = None):
        """
        Record the outcome of one authentication session

        Args:
            success: True if both roles completed
            duration_ms: Wall-clock duration of the session
            error: First session-local error, if the session failed
        """
        with self._lock:
            self._session_durations.append(duration_ms)
            if success:
                self._counters["sessions_completed"] += 1
            else:
                self._counters["sessions_failed"] += 1
                self._session_failures[type(error).__name__ if error else "Unknown"] += 1

    def get_session_stats(self) -> SessionStats:
        with self._lock:
            durations = list(self._session_durations)
            return SessionStats(
                completed=self._counters["sessions_completed"],
                failed=self._counters["sessions_failed"],
                avg_duration_ms=sum(durations) / len(durations) if durations else 0.0,
                failures_by_error=dict(self._session_failures),
            )

    # ========================================================================
    # EXPORT / RESET
    # ========================================================================

    def get_uptime_seconds(self) -> float:
        return (datetime.now(timezone.utc) - self._start_time).total_seconds()

    def reset(self):
        """Reset all metrics (useful for testing)"""
        with self._lock:
            self._samples.clear()
            self._counters.clear()
            self._session_durations.clear()
            self._session_failures.clear()
            self._start_time = datetime.now(timezone.utc)

    def export_prometheus_format(self) -> str:
        """Metrics in Prometheus text exposition format"""
        stats = self.get_stats()
        counters = self.get_counters()
        sessions = self.get_session_stats()

        metrics = [
            ("v2x_ta_requests_total", "counter", "Total number of requests", counters["total_requests"]),
            ("v2x_ta_requests_failed", "counter", "Total number of failed requests", counters["failed_requests"]),
            ("v2x_ta_registrations_total", "counter", "Total registration requests", counters["registration_requests"]),
            ("v2x_ta_latency_avg_ms", "gauge", "Average request latency in milliseconds", stats.avg_latency_ms),
            ("v2x_ta_error_rate", "gauge", "Current error rate percentage", stats.error_rate),
            ("v2x_sessions_completed_total", "counter", "Authentication sessions completed", sessions.completed),
            ("v2x_sessions_failed_total", "counter", "Authentication sessions failed", sessions.failed),
        ]

        lines = []
        for name, kind, help_text, value in metrics:
            lines.append(f"# HELP {name} {help_text}")
            lines.append(f"# TYPE {name} {kind}")
            lines.append(f"{name} {value}")
        return "\n".join(lines) + "\n"


# Global metrics collector instance
_metrics_collector: Optional[MetricsCollector] = None


def get_metrics_collector() -> MetricsCollector:
    """Get or create global metrics collector"""
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector()
    return _metrics_collector


def reset_metrics_collector():
    """Reset global metrics collector (for testing)"""
    global _metrics_collector
    if _metrics_collector:
        _metrics_collector.reset()
