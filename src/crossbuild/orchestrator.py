"""
Multi-target build-and-package orchestration.

For each target the orchestrator compiles one binary and, when compression is
enabled, packs it together with README.md/LICENSE into a flat .tar.gz and
removes the loose files, so the archive is the only artifact left for that
target. After all targets it enumerates the destination directory.

Targets are processed strictly in order. The first failing step aborts the
run; artifacts of earlier targets stay on disk.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from .actions import format_output_value
from .config import WINDOWS_EXECUTABLE_SUFFIX, BuildConfig, TargetDescriptor
from .errors import ConfigurationError, CrossBuildError
from .output import TimedLogger, log, log_detail, log_warning, render_listing
from .steps import ExternalSteps

# Module-level logger
logger = logging.getLogger(__name__)

# Files copied next to the binary before archiving, in archive order
ANCILLARY_FILES = ("README.md", "LICENSE")

ARCHIVE_SUFFIX = ".tar.gz"


def binary_file_name(name: str, target: TargetDescriptor, compress: bool) -> str:
    """File name of the compiled binary.

    With compression the name is only used inside the per-target archive, so
    it carries no platform suffix.
    """
    file_name = name if compress else f"{name}-{target.slug}"
    if target.is_windows:
        file_name += WINDOWS_EXECUTABLE_SUFFIX
    return file_name


def archive_file_name(name: str, target: TargetDescriptor) -> str:
    return f"{name}-{target.slug}{ARCHIVE_SUFFIX}"


@dataclass
class ArtifactSet:
    """Artifacts of one invocation.

    Attributes:
        produced: Paths created per target, in build order
        files: Every file found in the destination directory after the run,
            reported relative to the workspace (e.g. "dist/app-linux-amd64")
    """

    produced: list[Path] = field(default_factory=list)
    files: list[Path] = field(default_factory=list)

    def to_output_value(self) -> str:
        return format_output_value(self.files)


class BuildOrchestrator:
    """Builds and optionally packages a Go program for a list of targets."""

    def __init__(self, config: BuildConfig, steps: ExternalSteps):
        """
        Args:
            config: Build configuration
            steps: External step implementation (ShellSteps in CI)
        """
        self.config = config
        self.steps = steps

    def _require(self, value: str, description: str, input_name: str) -> str:
        if not value:
            raise ConfigurationError(f"{description} is required", input_name=input_name)
        return value

    @property
    def binary_name(self) -> str:
        return self._require(self.config.binary_name, "Binary name", "INPUT_NAME")

    @property
    def dest_path(self) -> Path:
        self._require(self.config.dest_dir, "Destination directory", "INPUT_DEST")
        return self.config.dest_path

    def run(self, targets: Sequence[TargetDescriptor]) -> ArtifactSet:
        """Build every target, then collect the destination directory.

        Args:
            targets: Targets in build order

        Returns:
            ArtifactSet for this run

        Raises:
            CrossBuildError: On the first failing step
        """
        dest = self.dest_path
        name = self.binary_name
        try:
            dest.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(f"Cannot create destination directory {dest}: {e}", input_name="INPUT_DEST") from e

        logger.debug(f"Building '{name}' for {len(targets)} target(s) into {dest} (compress={self.config.compress})")

        produced: list[Path] = []
        for index, target in enumerate(targets, start=1):
            with TimedLogger(f"Building {target}", phase=(index, len(targets))):
                produced.extend(self.build_target(target))

        return self.collect_artifacts(produced)

    def build_target(self, target: TargetDescriptor) -> list[Path]:
        """Compile one target and package it if compression is enabled.

        Args:
            target: Target to build

        Returns:
            Paths left on disk for this target (the binary, or the archive)
        """
        dest = self.dest_path
        binary = binary_file_name(self.binary_name, target, self.config.compress)
        output_path = dest / binary

        log_detail(f"Package: {self.config.package_path}")
        log_detail(f"Output: {output_path}")
        self.steps.compile(
            output_path=output_path,
            package_path=self.config.package_path,
            ldflags=self.config.ldflags,
            kernel=target.kernel,
            arch=target.arch,
        )

        if not self.config.compress:
            return [output_path]
        return [self.package_target(target, binary)]

    def stage_ancillary_files(self) -> list[str]:
        """Copy README.md and LICENSE into the destination directory when present.

        Returns:
            Names of the staged files
        """
        dest = self.dest_path
        staged: list[str] = []
        for file_name in ANCILLARY_FILES:
            source = self.config.working_dir / file_name
            if not self.steps.exists(source):
                logger.debug(f"{file_name} not found in {self.config.working_dir}, skipping")
                continue
            self.steps.copy(source, dest / file_name)
            staged.append(file_name)
        return staged

    def package_target(self, target: TargetDescriptor, binary: str) -> Path:
        """Archive the binary with ancillary files and remove the loose copies.

        Args:
            target: Target the binary was built for
            binary: Binary file name inside the destination directory

        Returns:
            Path to the archive
        """
        dest = self.dest_path
        archive_name = archive_file_name(self.binary_name, target)

        include_files = [binary, *self.stage_ancillary_files()]

        log_detail(f"Compressing {', '.join(include_files)} into {archive_name}")
        self.steps.archive(archive_name, include_files, cwd=dest)

        log_detail(f"Cleaning up {', '.join(include_files)}", verbose_only=True)
        self.steps.cleanup(include_files, cwd=dest)

        self._run_diagnostic(dest)
        return dest / archive_name

    def _run_diagnostic(self, dest: Path) -> None:
        # Inspects state only; a failure here must not fail the build.
        try:
            report = self.steps.inspect(dest)
        except CrossBuildError as e:
            log_warning(f"Diagnostic listing of {dest} failed: {e}")
            return
        logger.debug(f"Destination after packaging:\n{report}")

    def collect_artifacts(self, produced: Sequence[Path]) -> ArtifactSet:
        """List and walk the destination directory.

        Args:
            produced: Paths recorded while building

        Returns:
            ArtifactSet whose ``files`` holds every file under the destination
        """
        dest = self.dest_path

        entries = self.steps.list(dest)
        render_listing(str(dest), entries)

        report_root = Path(self.config.dest_dir)
        files = [report_root / path.relative_to(dest) for path in self.steps.walk(dest)]
        log(f"Found {len(files)} build file(s)")
        return ArtifactSet(produced=list(produced), files=files)
