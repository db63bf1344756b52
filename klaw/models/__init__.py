"""Core data structures for klaw."""

from klaw.models.alerts import Alert, AlertLevel, AlertType, alert_id
from klaw.models.config import (
    ClusterConfig,
    DingTalkConfig,
    FeishuConfig,
    KlawConfig,
    KubernetesConfig,
    LogConfig,
    MessagingConfig,
    MonitoringConfig,
    ServerConfig,
)
from klaw.models.metrics import (
    ClusterSample,
    EventSummary,
    NodeCondition,
    NodeDetail,
    NodeSummary,
    PodDetail,
    PodSummary,
    ResourceSummary,
)

__all__ = [
    "Alert",
    "AlertLevel",
    "AlertType",
    "ClusterConfig",
    "ClusterSample",
    "DingTalkConfig",
    "EventSummary",
    "FeishuConfig",
    "KlawConfig",
    "KubernetesConfig",
    "LogConfig",
    "MessagingConfig",
    "MonitoringConfig",
    "NodeCondition",
    "NodeDetail",
    "NodeSummary",
    "PodDetail",
    "PodSummary",
    "ResourceSummary",
    "ServerConfig",
    "alert_id",
]
