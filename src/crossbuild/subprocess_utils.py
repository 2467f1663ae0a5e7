"""Subprocess helpers for invoking external build tools.

Every tool crossbuild shells out to (go, tar) goes through ``safe_run`` so that
Windows runners do not flash console windows and child processes never read
from the action's stdin.
"""

import logging
import os
import shlex
import subprocess
import sys
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)


def get_subprocess_creation_flags() -> int:
    """Get platform-specific subprocess creation flags.

    Returns:
        - Windows: subprocess.CREATE_NO_WINDOW (prevents console window)
        - Other platforms: 0 (no special flags)
    """
    if sys.platform == "win32":
        return subprocess.CREATE_NO_WINDOW
    return 0


def format_command(cmd: Sequence[str]) -> str:
    """Render a command as a copy-pasteable shell string for logs."""
    return shlex.join(str(part) for part in cmd)


def merge_env(overrides: Optional[Mapping[str, str]], base: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    """Return the inherited environment with ``overrides`` applied on top.

    Args:
        overrides: Variables that take precedence (e.g. GOOS/GOARCH)
        base: Environment to start from (defaults to the current process environment)

    Returns:
        New dictionary; neither input is modified
    """
    env = dict(os.environ if base is None else base)
    if overrides:
        env.update(overrides)
    return env


def safe_run(cmd: list[str], cwd: Optional[Path] = None, **kwargs: Any) -> subprocess.CompletedProcess:
    """Execute subprocess.run with platform-specific flags.

    Automatically applies:
    - CREATE_NO_WINDOW on Windows (prevents console window)
    - stdin=DEVNULL (the action runner's stdin is never forwarded)

    Args:
        cmd: Command and arguments (same as subprocess.run)
        cwd: Working directory for the command
        **kwargs: Additional arguments passed to subprocess.run

    Returns:
        CompletedProcess result from subprocess.run

    Note:
        If 'creationflags' is explicitly provided in kwargs it is OR'd with the
        platform defaults. An explicit 'stdin' is used as-is.
    """
    default_flags = get_subprocess_creation_flags()

    if "creationflags" in kwargs:
        kwargs["creationflags"] = kwargs["creationflags"] | default_flags
    elif default_flags:
        kwargs["creationflags"] = default_flags

    if "stdin" not in kwargs:
        kwargs["stdin"] = subprocess.DEVNULL

    if cwd is not None:
        kwargs["cwd"] = str(cwd)

    logger.debug(f"Running: {format_command(cmd)} (cwd={cwd})")
    return subprocess.run(cmd, **kwargs)
