"""Logging configuration for openebs_ops."""

from openebs_ops.logging.config import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
