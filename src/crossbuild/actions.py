"""GitHub Actions output reporting.

The runner reads step outputs either from the ``::set-output`` workflow command
on stdout or from the file named by ``GITHUB_OUTPUT``. crossbuild prints the
command and, when the runner provides the file, appends to it as well.
"""

import logging
import sys
from pathlib import Path
from typing import Iterable, Optional, TextIO, Union

from .errors import ToolInvocationError

logger = logging.getLogger(__name__)


def format_output_value(paths: Iterable[Union[str, Path]]) -> str:
    """Join artifact paths with single spaces."""
    return " ".join(str(p) for p in paths)


def set_output(name: str, value: str, output_file: Optional[Path] = None, stream: Optional[TextIO] = None) -> None:
    """Publish a step output.

    Args:
        name: Output key (e.g. "files")
        value: Output value, a single line
        output_file: Runner output file (GITHUB_OUTPUT), if any
        stream: Where to print the workflow command (defaults to sys.stdout)

    Raises:
        ToolInvocationError: If the value spans several lines or the output
            file cannot be written
    """
    if "\n" in value or "\r" in value:
        raise ToolInvocationError(f"Output '{name}' must be a single line: {value!r}", step="output")

    out = stream if stream is not None else sys.stdout
    out.write(f"::set-output name={name}::{value}\n")
    out.flush()

    if output_file is not None:
        try:
            with open(output_file, "a", encoding="utf-8") as f:
                f.write(f"{name}={value}\n")
        except OSError as e:
            raise ToolInvocationError(f"Could not write output '{name}' to {output_file}: {e}", step="output") from e
        logger.debug(f"Wrote output '{name}' to {output_file}")
