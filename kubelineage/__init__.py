"""kubelineage: dependency lineage of Kubernetes objects as a status tree."""

__version__ = "0.3.0"
