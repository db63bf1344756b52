"""klaw: multi-cluster Kubernetes monitoring and ChatOps sidecar."""

__version__ = "0.1.0"
