"""
Utils Package

Contains utility modules for logging, key I/O, metrics and protocol milestones.
"""

from .logger import V2XLogger, fingerprint
from .key_io import KeyFileHandler
from .metrics import MetricsCollector, get_metrics_collector, reset_metrics_collector
from .milestones import Milestone, MilestoneLog, get_milestone_log, reset_milestone_log

__all__ = [
    # Logging
    "V2XLogger",
    "fingerprint",
    # Key I/O
    "KeyFileHandler",
    # Metrics
    "MetricsCollector",
    "get_metrics_collector",
    "reset_metrics_collector",
    # Milestones
    "Milestone",
    "MilestoneLog",
    "get_milestone_log",
    "reset_milestone_log",
]
