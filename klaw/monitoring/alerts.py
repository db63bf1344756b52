"""Alert store and notification message formatting."""

from __future__ import annotations

import dataclasses
import threading
from datetime import datetime

from klaw.clock import Clock, utc_now
from klaw.errors import AlertNotFoundError
from klaw.models.alerts import Alert, AlertLevel, AlertType, alert_id

MESSAGE_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class AlertStore:
    """Alert id -> Alert, guarded by one exclusive lock.

    Alerts are never deleted. ``resolved`` is monotonic: the store is the
    only place that sets it, it only ever sets it to True, and readers get
    copies so they cannot flip it back.
    """

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._alerts: dict[str, Alert] = {}
        self._lock = threading.Lock()

    def create(self, cluster: str, alert_type: AlertType, level: AlertLevel, message: str) -> Alert | None:
        """Insert a new alert, or return None when its id already exists."""
        now = self._clock()
        new_id = alert_id(cluster, alert_type, now)
        with self._lock:
            if new_id in self._alerts:
                return None
            alert = Alert(
                id=new_id,
                cluster=cluster,
                type=alert_type,
                level=level,
                message=message,
                created_at=now,
            )
            self._alerts[new_id] = alert
            return dataclasses.replace(alert)

    def resolve(self, alert_id_: str) -> bool:
        """Mark the alert resolved.

        Returns True when this call changed the flag, False when the alert
        was already resolved. Raises AlertNotFoundError for unknown ids.
        """
        with self._lock:
            alert = self._alerts.get(alert_id_)
            if alert is None:
                raise AlertNotFoundError(alert_id_)
            if alert.resolved:
                return False
            alert.resolved = True
            return True

    def get(self, alert_id_: str) -> Alert:
        with self._lock:
            alert = self._alerts.get(alert_id_)
            if alert is None:
                raise AlertNotFoundError(alert_id_)
            return dataclasses.replace(alert)

    def list(self, cluster: str | None = None) -> list[Alert]:
        """All alerts (optionally for one cluster), in creation order."""
        with self._lock:
            return [
                dataclasses.replace(a)
                for a in self._alerts.values()
                if cluster is None or a.cluster == cluster
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._alerts)


def format_alert_message(alert: Alert, resolved: bool = False, at: datetime | None = None) -> str:
    """Render the chat message for a new or resolved alert.

    New alerts are stamped with their creation time; resolution messages
    carry *at* (the time of resolution).
    """
    header = "[Kubernetes Alert Resolved]" if resolved else "[Kubernetes Alert]"
    when = at if at is not None else alert.created_at
    return (
        f"{header} {alert.type.value} - {alert.id}\n"
        f"Cluster: {alert.cluster}\n"
        f"Level: {alert.level.value}\n"
        f"Message: {alert.message}\n"
        f"Time: {when.strftime(MESSAGE_TIME_FORMAT)}"
    )
