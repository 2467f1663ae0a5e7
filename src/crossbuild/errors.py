"""
Error types for crossbuild.

Every step raises one of these instead of exiting; the CLI is the only place
that turns them into a diagnostic and a non-zero exit status.
"""

from pathlib import Path
from typing import Optional, Sequence

# Captured tool output is truncated to this many characters in diagnostics
MAX_OUTPUT_PREVIEW = 2000


def _preview(text: str) -> str:
    text = text.rstrip()
    if len(text) > MAX_OUTPUT_PREVIEW:
        return text[:MAX_OUTPUT_PREVIEW] + "... (truncated)"
    return text


class CrossBuildError(Exception):
    """Base class for every fatal crossbuild condition."""

    phase = "build"

    def format(self) -> str:
        """Format the error as a human-readable diagnostic."""
        return f"{self.phase}: {self}"


class ConfigurationError(CrossBuildError):
    """Invalid or missing action input (e.g. a malformed target)."""

    phase = "configuration"

    def __init__(self, message: str, input_name: Optional[str] = None):
        super().__init__(message)
        self.input_name = input_name

    def format(self) -> str:
        if self.input_name:
            return f"{self.phase}: {self} (input: {self.input_name})"
        return super().format()


class ToolInvocationError(CrossBuildError):
    """An external step exited non-zero or could not be started."""

    phase = "tool"

    def __init__(
        self,
        message: str,
        step: str,
        command: Optional[Sequence[str]] = None,
        returncode: Optional[int] = None,
        stdout: Optional[str] = None,
        stderr: Optional[str] = None,
    ):
        """
        Args:
            message: Short description of what failed
            step: Step name ("compile", "archive", "cleanup", ...)
            command: Command line that was run, if any
            returncode: Exit status, or None if the tool never ran
            stdout: Captured standard output
            stderr: Captured standard error
        """
        super().__init__(message)
        self.step = step
        self.command = list(command) if command is not None else None
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

    def format(self) -> str:
        lines = [f"{self.step}: {self}"]
        if self.command:
            lines.append(f"  Command: {' '.join(str(c) for c in self.command)}")
        if self.returncode is not None:
            lines.append(f"  Exit code: {self.returncode}")
        if self.stdout and self.stdout.strip():
            lines.append(f"  stdout: {_preview(self.stdout)}")
        if self.stderr and self.stderr.strip():
            lines.append(f"  stderr: {_preview(self.stderr)}")
        return "\n".join(lines)


class FilesystemQueryError(CrossBuildError):
    """An existence check failed for a reason other than the path being absent."""

    phase = "filesystem"

    def __init__(self, path: Path, reason: OSError):
        super().__init__(f"Cannot determine whether {path} exists: {reason}")
        self.path = path
        self.reason = reason
