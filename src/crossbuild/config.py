"""Action input parsing.

Reads the action's ``INPUT_*`` variables (plus the runner's ``GITHUB_*`` ones)
from an explicit mapping and produces the immutable build configuration.

Design:
    ``read_config`` is called once by the CLI with ``os.environ``. Everything
    downstream receives the resulting ``BuildConfig`` and target tuple, so tests
    can build configurations from plain dictionaries.
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .errors import ConfigurationError

# Action input variable names
ENV_PLATFORMS = "INPUT_PLATFORMS"
ENV_PACKAGE = "INPUT_PACKAGE"
ENV_COMPRESS = "INPUT_COMPRESS"
ENV_DEST = "INPUT_DEST"
ENV_LDFLAGS = "INPUT_LDFLAGS"
ENV_NAME = "INPUT_NAME"
ENV_WORKSPACE = "GITHUB_WORKSPACE"
ENV_GITHUB_OUTPUT = "GITHUB_OUTPUT"

TARGET_SEPARATOR = "/"
TARGET_LIST_SEPARATOR = ","
WINDOWS_KERNEL = "windows"
WINDOWS_EXECUTABLE_SUFFIX = ".exe"

_WHITESPACE_RE = re.compile(r"\s+")


def _strip_all_whitespace(value: str) -> str:
    return _WHITESPACE_RE.sub("", value)


@dataclass(frozen=True)
class TargetDescriptor:
    """One cross-compilation destination.

    Attributes:
        kernel: Operating system identifier passed as GOOS (e.g. "linux", "windows")
        arch: CPU architecture identifier passed as GOARCH (e.g. "amd64", "arm64")
    """

    kernel: str
    arch: str

    @classmethod
    def parse(cls, spec: str) -> "TargetDescriptor":
        """Parse a ``kernel/arch`` string.

        Args:
            spec: Target specification, e.g. "linux/amd64"

        Returns:
            TargetDescriptor with whitespace-stripped fields

        Raises:
            ConfigurationError: If the string does not contain exactly one
                separator or either field is empty
        """
        parts = spec.split(TARGET_SEPARATOR)
        if len(parts) != 2:
            raise ConfigurationError(
                f"Invalid target '{spec.strip()}': expected exactly one '{TARGET_SEPARATOR}' (kernel{TARGET_SEPARATOR}arch)",
                input_name=ENV_PLATFORMS,
            )
        kernel, arch = (_strip_all_whitespace(part) for part in parts)
        if not kernel or not arch:
            raise ConfigurationError(
                f"Invalid target '{spec.strip()}': both kernel and arch are required",
                input_name=ENV_PLATFORMS,
            )
        return cls(kernel=kernel, arch=arch)

    @property
    def is_windows(self) -> bool:
        return self.kernel == WINDOWS_KERNEL

    @property
    def slug(self) -> str:
        """Platform suffix used in file names ("linux-amd64")."""
        return f"{self.kernel}-{self.arch}"

    def __str__(self) -> str:
        return f"{self.kernel}{TARGET_SEPARATOR}{self.arch}"


@dataclass(frozen=True)
class BuildConfig:
    """Immutable build configuration, created once at startup.

    Attributes:
        package_name: Package subdirectory to build ("" builds the root package)
        dest_dir: Output directory, relative to the workspace root
        compress: Whether each binary is packed into a .tar.gz archive
        ldflags: Linker flags passed verbatim to the compiler
        binary_name: Base name of produced binaries
        workspace: Workspace root supplied by the runner ("" if unset)
        working_dir: Directory the action was invoked from (README/LICENSE source)
        github_output: Runner output file, if the runner supplies one
    """

    package_name: str
    dest_dir: str
    compress: bool
    ldflags: str
    binary_name: str
    workspace: str
    working_dir: Path
    github_output: Optional[Path] = None

    @property
    def dest_path(self) -> Path:
        """Destination directory resolved against the workspace root."""
        base = Path(self.workspace) if self.workspace else self.working_dir
        return base / self.dest_dir

    @property
    def package_path(self) -> str:
        """Package argument for the compiler ("." or "./<package>")."""
        if not self.package_name:
            return "."
        return f"./{self.package_name}"


def parse_compress(value: Optional[str]) -> bool:
    """Return True iff ``value`` is "true" (case-insensitive, whitespace ignored)."""
    if value is None:
        return False
    return value.strip().lower() == "true"


def parse_targets(value: Optional[str]) -> tuple[TargetDescriptor, ...]:
    """Parse a comma-separated target list.

    Args:
        value: e.g. "linux/amd64, windows/arm64"

    Returns:
        Targets in the order given

    Raises:
        ConfigurationError: If the list is empty or any element is malformed
    """
    if value is None or not value.strip():
        raise ConfigurationError("No target platforms given", input_name=ENV_PLATFORMS)
    return tuple(TargetDescriptor.parse(item) for item in value.strip().split(TARGET_LIST_SEPARATOR))


def read_config(
    environ: Mapping[str, str],
    working_dir: Optional[Path] = None,
) -> tuple[BuildConfig, tuple[TargetDescriptor, ...]]:
    """Build the configuration from action inputs.

    Targets are validated here, before anything is compiled. Missing binary
    name or destination are left empty; the orchestrator rejects them when it
    needs them.

    Args:
        environ: Environment mapping (``os.environ`` in production)
        working_dir: Invocation directory (defaults to the current directory)

    Returns:
        Tuple of (BuildConfig, targets)

    Raises:
        ConfigurationError: If the target list is malformed
    """
    targets = parse_targets(environ.get(ENV_PLATFORMS))

    github_output = environ.get(ENV_GITHUB_OUTPUT, "")
    config = BuildConfig(
        package_name=_strip_all_whitespace(environ.get(ENV_PACKAGE, "")),
        dest_dir=_strip_all_whitespace(environ.get(ENV_DEST, "")),
        compress=parse_compress(environ.get(ENV_COMPRESS)),
        ldflags=environ.get(ENV_LDFLAGS, ""),
        binary_name=environ.get(ENV_NAME, ""),
        workspace=environ.get(ENV_WORKSPACE, ""),
        working_dir=working_dir if working_dir is not None else Path(os.getcwd()),
        github_output=Path(github_output) if github_output else None,
    )
    return config, targets
