"""Alert data structures."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

ALERT_ID_TIME_FORMAT = "%Y%m%d%H%M%S"


class AlertType(StrEnum):
    """What kind of condition raised the alert."""

    CONNECTION = "connection"
    NODE = "node"
    POD = "pod"


class AlertLevel(StrEnum):
    """Alert severity."""

    WARNING = "warning"
    CRITICAL = "critical"


def alert_id(cluster: str, alert_type: AlertType, at: datetime) -> str:
    """Build ``{cluster}-{type}-{YYYYMMDDhhmmss}``.

    The one-second granularity is the dedup window: two alerts of the same
    type for the same cluster within one wall-clock second share an id.
    """
    return f"{cluster}-{alert_type.value}-{at.strftime(ALERT_ID_TIME_FORMAT)}"


@dataclass
class Alert:
    """A cluster-scoped condition record.

    ``resolved`` only ever goes from False to True; the alert store is the
    single writer and enforces that.
    """

    id: str
    cluster: str
    type: AlertType
    level: AlertLevel
    message: str
    created_at: datetime
    resolved: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "cluster": self.cluster,
            "type": self.type.value,
            "level": self.level.value,
            "message": self.message,
            "created_at": self.created_at.isoformat(),
            "resolved": self.resolved,
        }
