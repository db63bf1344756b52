"""Monitoring core: bounded history, alert store, threshold rules and the
periodic service that ties them to the sampler and notifiers."""

from klaw.monitoring.alerts import AlertStore, format_alert_message
from klaw.monitoring.history import HistoryStore, ReadWriteLock
from klaw.monitoring.rules import DEFAULT_RULES, AlertCandidate, ThresholdRule, evaluate
from klaw.monitoring.service import MonitoringService

__all__ = [
    "DEFAULT_RULES",
    "AlertCandidate",
    "AlertStore",
    "HistoryStore",
    "MonitoringService",
    "ReadWriteLock",
    "ThresholdRule",
    "evaluate",
    "format_alert_message",
]
