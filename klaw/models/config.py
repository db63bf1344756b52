"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field

MAX_HISTORY_SIZE = 100


@dataclass(frozen=True)
class ClusterConfig:
    """One named cluster. Immutable after load."""

    name: str
    kubeconfig: str = ""
    context: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "kubeconfig": self.kubeconfig, "context": self.context}


@dataclass
class KubernetesConfig:
    """Cluster list and the per-call deadline for Kubernetes queries."""

    clusters: list[ClusterConfig] = field(default_factory=list)
    request_timeout: float = 10.0


@dataclass
class DingTalkConfig:
    """DingTalk signed-webhook robot."""

    enabled: bool = False
    webhook: str = ""
    secret: str = ""
    timeout: float = 10.0


@dataclass
class FeishuConfig:
    """Feishu app credentials and the chat that receives messages."""

    enabled: bool = False
    app_id: str = ""
    app_secret: str = ""
    chat_id: str = ""
    base_url: str = "https://open.feishu.cn"
    timeout: float = 10.0


@dataclass
class MessagingConfig:
    """Chat platforms used for alert and chart delivery."""

    dingtalk: DingTalkConfig = field(default_factory=DingTalkConfig)
    feishu: FeishuConfig = field(default_factory=FeishuConfig)


@dataclass
class MonitoringConfig:
    """Periods (seconds) of the three monitoring loops and the history bound."""

    collect_interval: float = 30.0
    chart_interval: float = 300.0
    alert_interval: float = 10.0
    history_size: int = MAX_HISTORY_SIZE


@dataclass
class ServerConfig:
    """REST API configuration."""

    host: str = "0.0.0.0"
    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class KlawConfig:
    """Top-level klaw configuration."""

    kubernetes: KubernetesConfig = field(default_factory=KubernetesConfig)
    messaging: MessagingConfig = field(default_factory=MessagingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    log: LogConfig = field(default_factory=LogConfig)
