"""OpenEBS operations CLI: upgrade orchestration for OpenEBS on Kubernetes."""

__version__ = "4.2.0"
