"""Shared pytest fixtures for openebs_ops tests."""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

from openebs_ops.cli.main import app


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def temp_dir() -> Generator[Path]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset environment variables for each test."""
    # Clear OPENEBS_ prefixed variables and the Helm driver selection
    for key in list(os.environ.keys()):
        if key.startswith("OPENEBS_") or key == "HELM_DRIVER":
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def isolated_log_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[Path]:
    """Keep log files and handlers installed by CLI invocations out of other tests."""
    log_dir = tmp_path / "logs"
    monkeypatch.setattr("openebs_ops.logging.config.LOG_DIR", log_dir)
    monkeypatch.setattr("openebs_ops.logging.config.LOG_FILE", log_dir / "openebs-ops.log")
    root = logging.getLogger()
    original_handlers = list(root.handlers)
    yield log_dir
    for handler in root.handlers:
        if handler not in original_handlers:
            handler.close()
    root.handlers = original_handlers


@pytest.fixture
def cli_app() -> typer.Typer:
    """Return the CLI app for testing."""
    return app
