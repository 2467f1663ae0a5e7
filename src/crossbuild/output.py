"""
Centralized user-facing output for crossbuild.

All progress output is prefixed with the time elapsed since the action started,
in MM:SS.cc format (minutes:seconds.centiseconds), so slow targets are easy to
spot in CI logs.

Example output:
    00:00.01 crossbuild v0.1.0
    00:00.02 [1/2] Building linux/amd64...
    00:03.40       Output: dist/app-linux-amd64
    00:03.41       Done (3.39s)
    00:03.41 [2/2] Building windows/arm64...

Usage:
    from crossbuild.output import log, log_phase, log_detail, init_timer

    init_timer()
    log_phase(1, 2, "Building linux/amd64...")
    log_detail("Output: dist/app-linux-amd64")
"""

import sys
import time
from types import TracebackType
from typing import TYPE_CHECKING, Optional, Sequence, TextIO

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from .steps import DirectoryEntry

# Global state for the timer
_start_time: Optional[float] = None
_output_stream: TextIO = sys.stdout
_verbose: bool = False


def init_timer(output_stream: Optional[TextIO] = None) -> None:
    """
    Initialize the program timer.

    If not called explicitly, it will be called automatically on first log.

    Args:
        output_stream: Optional output stream (defaults to sys.stdout)
    """
    global _start_time, _output_stream
    _start_time = time.time()
    if output_stream is not None:
        _output_stream = output_stream


def set_verbose(verbose: bool) -> None:
    """
    Set verbose mode for logging.

    Args:
        verbose: If True, verbose_only messages are printed as well.
    """
    global _verbose
    _verbose = verbose


def get_elapsed() -> float:
    """Get elapsed time in seconds since timer initialization."""
    global _start_time
    if _start_time is None:
        init_timer()
    return time.time() - _start_time  # type: ignore


def format_timestamp() -> str:
    """Format the current elapsed time as MM:SS.cc."""
    elapsed = get_elapsed()
    minutes = int(elapsed // 60)
    seconds = elapsed % 60
    return f"{minutes:02d}:{seconds:05.2f}"


def _print(message: str, end: str = "\n") -> None:
    timestamp = format_timestamp()
    _output_stream.write(f"{timestamp} {message}{end}")
    _output_stream.flush()


def log(message: str, verbose_only: bool = False) -> None:
    """
    Log a message with timestamp.

    Args:
        message: Message to log
        verbose_only: If True, only print if verbose mode is enabled
    """
    if verbose_only and not _verbose:
        return
    _print(message)


def log_phase(phase: int, total: int, message: str, verbose_only: bool = False) -> None:
    """
    Log a phase message formatted as ``[N/M] message``.

    Args:
        phase: Current phase number
        total: Total number of phases
        message: Phase description
        verbose_only: If True, only print if verbose mode is enabled
    """
    if verbose_only and not _verbose:
        return
    _print(f"[{phase}/{total}] {message}")


def log_detail(message: str, indent: int = 6, verbose_only: bool = False) -> None:
    """
    Log a detail message (indented).

    Args:
        message: Detail message
        indent: Number of spaces to indent (default 6)
        verbose_only: If True, only print if verbose mode is enabled
    """
    if verbose_only and not _verbose:
        return
    _print(f"{' ' * indent}{message}")


def log_header(title: str, version: str) -> None:
    """Log the program banner."""
    _print(f"{title} v{version}")
    _print("")


def log_error(message: str) -> None:
    """Log an error message. Multi-line messages keep one timestamp per line."""
    for line in message.splitlines() or [""]:
        _print(f"ERROR: {line}")


def log_warning(message: str) -> None:
    """Log a warning message."""
    _print(f"WARNING: {message}")


def log_success(message: str) -> None:
    """Log a success message."""
    _print(message)


def _format_size(size_bytes: int) -> str:
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"


def render_listing(title: str, entries: Sequence["DirectoryEntry"]) -> None:
    """
    Render a directory listing as a table (the ``ls -alh`` of build output).

    Args:
        title: Table title, usually the directory path
        entries: Entries returned by ExternalSteps.list()
    """
    table = Table(title=title, title_justify="left", show_edge=False)
    table.add_column("Mode", no_wrap=True)
    table.add_column("Size", justify="right", no_wrap=True)
    table.add_column("Name", no_wrap=True)

    for entry in entries:
        name = f"{entry.name}/" if entry.is_dir else entry.name
        size = "-" if entry.is_dir else _format_size(entry.size)
        table.add_row(entry.mode, size, name)

    _print("--- BUILD FILES ---")
    console = Console(file=_output_stream, highlight=False, soft_wrap=True)
    console.print(table)


class TimedLogger:
    """
    Context manager for logging with elapsed time tracking.

    Usage:
        with TimedLogger("Compressing app-linux-amd64.tar.gz") as timer:
            timer.detail("3 files")
        # Automatically logs completion time
    """

    def __init__(self, operation: str, phase: Optional[tuple[int, int]] = None, verbose_only: bool = False):
        """
        Args:
            operation: Description of the operation
            phase: Optional (current, total) phase numbers
            verbose_only: If True, only print if verbose mode is enabled
        """
        self.operation = operation
        self.phase = phase
        self.verbose_only = verbose_only
        self.start_time = 0.0

    def __enter__(self) -> "TimedLogger":
        self.start_time = time.time()
        if self.phase:
            log_phase(self.phase[0], self.phase[1], f"{self.operation}...", self.verbose_only)
        else:
            log(f"{self.operation}...", self.verbose_only)
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        del exc_val, exc_tb  # Unused
        elapsed = time.time() - self.start_time
        if exc_type is None:
            log_detail(f"Done ({elapsed:.2f}s)", verbose_only=self.verbose_only)
        return None

    def detail(self, message: str) -> None:
        """Log a detail message within this operation."""
        log_detail(message, verbose_only=self.verbose_only)
