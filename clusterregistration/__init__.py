"""Managed cluster registration: client certificate checks, feature gates, resource model and hub helpers."""

__version__ = "0.1.0"
__all__ = ["clientcert", "features", "helpers", "kube"]