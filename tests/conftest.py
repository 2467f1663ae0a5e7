"""Pytest configuration and fixtures for crossbuild tests."""

import logging
import sys
from pathlib import Path

import pytest

from crossbuild import output
from crossbuild.cli import HANDLER_NAME


@pytest.fixture(autouse=True)
def reset_output_module():
    """Point the output module back at sys.stdout and quiet mode after each test."""
    yield
    output._output_stream = sys.stdout
    output._verbose = False
    if sys.stdout.closed:
        sys.stdout = sys.__stdout__
    if sys.stderr.closed:
        sys.stderr = sys.__stderr__


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop the CLI's root handler so it never outlives the test's captured stderr."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler.get_name() == HANDLER_NAME:
            root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Workspace root the action runs in (also the invocation directory)."""
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def action_env(workspace: Path) -> dict[str, str]:
    """Minimal action inputs for a non-compressed two-target build."""
    return {
        "INPUT_PLATFORMS": "linux/amd64,windows/arm64",
        "INPUT_PACKAGE": "",
        "INPUT_COMPRESS": "false",
        "INPUT_DEST": "dist",
        "INPUT_LDFLAGS": "-s -w",
        "INPUT_NAME": "app",
        "GITHUB_WORKSPACE": str(workspace),
    }
