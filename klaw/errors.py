"""Exception hierarchy shared by every klaw component."""

from __future__ import annotations


class KlawError(Exception):
    """Base class for all klaw errors."""


class ConfigError(KlawError):
    """Configuration file is missing or invalid. Fatal at startup."""


class ClusterNotFoundError(KlawError):
    """The named cluster is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"cluster not found: {name}")
        self.name = name


class ClusterConnectionError(KlawError):
    """A query handle for a cluster could not be built."""

    def __init__(self, name: str, cause: Exception | str) -> None:
        super().__init__(f"failed to initialize cluster {name}: {cause}")
        self.name = name
        self.cause = cause


class ClusterQueryError(KlawError):
    """A Kubernetes API call failed. The message starts with the operation."""

    def __init__(self, operation: str, cause: Exception | str) -> None:
        super().__init__(f"failed to {operation}: {cause}")
        self.operation = operation
        self.cause = cause


class ResourceNotFoundError(ClusterQueryError):
    """The Kubernetes API answered 404 for a named object."""

    def __init__(self, kind: str, name: str, namespace: str = "") -> None:
        where = f"{namespace}/{name}" if namespace else name
        super().__init__(f"get {kind.lower()}", f"{kind} {where} not found")
        self.kind = kind
        self.resource_name = name
        self.namespace = namespace


class SampleError(KlawError):
    """Sampling a cluster failed; no partial sample is produced."""

    def __init__(self, cluster: str, operation: str, cause: Exception) -> None:
        super().__init__(f"failed to collect {operation} metrics for cluster {cluster}: {cause}")
        self.cluster = cluster
        self.operation = operation
        self.cause = cause


class AlertNotFoundError(KlawError):
    """resolve() was called with an id the alert store does not hold."""

    def __init__(self, alert_id: str) -> None:
        super().__init__(f"alert not found: {alert_id}")
        self.alert_id = alert_id


class NotificationError(KlawError):
    """A notifier call failed (transport error, non-2xx, or API error code)."""

    def __init__(self, notifier: str, detail: str) -> None:
        super().__init__(f"{notifier}: {detail}")
        self.notifier = notifier
        self.detail = detail


class CommandError(KlawError):
    """A chat command was malformed or referenced an unknown verb."""


class NoHistoryError(KlawError):
    """A cluster has no samples yet, so there is nothing to chart."""

    def __init__(self, cluster: str) -> None:
        super().__init__(f"no metrics history available for cluster {cluster}")
        self.cluster = cluster
