"""Configuration loading from a YAML file.

The file is read once at startup. Any problem with it is a ConfigError,
which the bootstrap treats as fatal.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

from klaw.errors import ConfigError
from klaw.models.config import (
    MAX_HISTORY_SIZE,
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

DEFAULT_CONFIG_PATH = "configs/config.yaml"
_VALID_LOG_LEVELS = {"debug", "info", "warning", "error"}


def default_config_path() -> str:
    return os.environ.get("KLAW_CONFIG", DEFAULT_CONFIG_PATH)


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{key}' must be a mapping")
    return value


def _str(data: dict[str, Any], key: str, default: str = "") -> str:
    value = data.get(key)
    return default if value is None else str(value)


def _positive(data: dict[str, Any], key: str, default: float) -> float:
    value = data.get(key, default)
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'{key}' must be a number, got {value!r}") from exc
    if number <= 0:
        raise ConfigError(f"'{key}' must be positive, got {value!r}")
    return number


def _int_in_range(data: dict[str, Any], key: str, default: int, max_val: int) -> int:
    """Positive integer clamped to *max_val*."""
    return max(1, min(int(_positive(data, key, default)), max_val))


def _validate_log_level(value: str) -> str:
    if value.lower() not in _VALID_LOG_LEVELS:
        raise ConfigError(f"Invalid log level: {value}. Must be one of {_VALID_LOG_LEVELS}")
    return value.lower()


def _parse_clusters(raw: Any) -> list[ClusterConfig]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigError("'kubernetes.clusters' must be a list")
    clusters: list[ClusterConfig] = []
    seen: set[str] = set()
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ConfigError(f"kubernetes.clusters[{index}] must be a mapping")
        name = _str(entry, "name").strip()
        if not name:
            raise ConfigError(f"kubernetes.clusters[{index}] is missing 'name'")
        if name in seen:
            raise ConfigError(f"duplicate cluster name: {name}")
        seen.add(name)
        clusters.append(
            ClusterConfig(
                name=name,
                kubeconfig=_str(entry, "kubeconfig"),
                context=_str(entry, "context"),
            )
        )
    return clusters


def parse_config(data: dict[str, Any]) -> KlawConfig:
    """Build a KlawConfig from an already-decoded YAML mapping."""
    kube = _section(data, "kubernetes")
    messaging = _section(data, "messaging")
    dingtalk = _section(messaging, "dingtalk")
    feishu = _section(messaging, "feishu")
    monitoring = _section(data, "monitoring")
    server = _section(data, "server")
    log = _section(data, "log")

    port = int(server.get("port") or 8080)
    if not 0 < port < 65536:
        raise ConfigError(f"Invalid server port: {port}")

    return KlawConfig(
        kubernetes=KubernetesConfig(
            clusters=_parse_clusters(kube.get("clusters")),
            request_timeout=_positive(kube, "request_timeout", 10.0),
        ),
        messaging=MessagingConfig(
            dingtalk=DingTalkConfig(
                enabled=bool(dingtalk.get("enabled", False)),
                webhook=_str(dingtalk, "webhook"),
                secret=_str(dingtalk, "secret"),
                timeout=_positive(dingtalk, "timeout", 10.0),
            ),
            feishu=FeishuConfig(
                enabled=bool(feishu.get("enabled", False)),
                app_id=_str(feishu, "app_id"),
                app_secret=_str(feishu, "app_secret"),
                chat_id=_str(feishu, "chat_id"),
                base_url=_str(feishu, "base_url", "https://open.feishu.cn").rstrip("/"),
                timeout=_positive(feishu, "timeout", 10.0),
            ),
        ),
        monitoring=MonitoringConfig(
            collect_interval=_positive(monitoring, "collect_interval", 30.0),
            chart_interval=_positive(monitoring, "chart_interval", 300.0),
            alert_interval=_positive(monitoring, "alert_interval", 10.0),
            history_size=_int_in_range(monitoring, "history_size", MAX_HISTORY_SIZE, max_val=MAX_HISTORY_SIZE),
        ),
        server=ServerConfig(
            host=_str(server, "host", "0.0.0.0"),
            port=port,
        ),
        log=LogConfig(
            level=_validate_log_level(os.environ.get("KLAW_LOG_LEVEL") or _str(log, "level", "info")),
        ),
    )


def load_config(path: str | os.PathLike[str] | None = None) -> KlawConfig:
    """Load configuration from *path* (or ``$KLAW_CONFIG``)."""
    config_path = Path(path if path is not None else default_config_path())
    if not config_path.is_file():
        raise ConfigError(f"config file not found: {config_path}")
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"failed to read config file: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse config file: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("config file must contain a mapping at the top level")
    return parse_config(data)
