"""Kubernetes service module.

Shared base for managers that work against the Kubernetes API.
"""

from openebs_ops.services.kubernetes.base import K8sBaseManager

__all__ = ["K8sBaseManager"]
