"""Run a coroutine from a synchronous CLI command.

SIGINT and SIGTERM cancel the running task. Work already handed to the
cluster is left as it is; the caller decides what to report.
"""

from __future__ import annotations

import asyncio
import signal
from collections.abc import Coroutine
from typing import Any, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class OperationInterrupted(Exception):
    """Raised when a signal cancelled the running operation."""


def run_cancellable(coro: Coroutine[Any, Any, T]) -> T:
    """Run ``coro`` to completion on a fresh event loop.

    Raises:
        OperationInterrupted: If SIGINT or SIGTERM arrived first.
    """
    loop = asyncio.new_event_loop()
    task = loop.create_task(coro)
    installed = []
    for sig in HANDLED_SIGNALS:
        try:
            loop.add_signal_handler(sig, task.cancel)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # No loop signal support (Windows, or not on the main thread)
            logger.debug("signal_handler_unavailable", signal=sig.name)

    try:
        return loop.run_until_complete(task)
    except (asyncio.CancelledError, KeyboardInterrupt) as e:
        logger.warning("operation_interrupted")
        raise OperationInterrupted("Interrupted") from e
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        loop.run_until_complete(loop.shutdown_default_executor())
        loop.close()
