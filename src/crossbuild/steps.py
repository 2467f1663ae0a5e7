"""External build steps.

The orchestrator never touches the compiler, the archiver or the filesystem
directly. It calls an ``ExternalSteps`` implementation, one method per step:

- compile: ``go build`` for one GOOS/GOARCH pair
- exists / copy / cleanup: staging of ancillary files
- archive: ``tar -czvf`` in the destination directory
- list / walk: final enumeration of the destination directory
- inspect: best-effort diagnostic after packaging

``ShellSteps`` is the implementation used in CI. Tests substitute a fake.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Protocol, Sequence, runtime_checkable

from .errors import FilesystemQueryError, ToolInvocationError
from .subprocess_utils import format_command, merge_env, safe_run

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirectoryEntry:
    """One entry of a directory listing."""

    name: str
    size: int
    mode: str
    is_dir: bool


@runtime_checkable
class ExternalSteps(Protocol):
    """Protocol for the external operations a build is made of.

    Every method raises a ``CrossBuildError`` subclass on failure and returns
    normally on success.
    """

    def compile(self, output_path: Path, package_path: str, ldflags: str, kernel: str, arch: str) -> None:
        """Compile ``package_path`` into a single executable at ``output_path``.

        Args:
            output_path: Executable to produce
            package_path: Package argument ("." or "./<package>")
            ldflags: Linker flags, passed through verbatim
            kernel: Target operating system (GOOS)
            arch: Target architecture (GOARCH)
        """
        ...

    def exists(self, path: Path) -> bool:
        """Return True if ``path`` exists, False only if it does not."""
        ...

    def copy(self, src: Path, dest: Path) -> None:
        """Copy file ``src`` to ``dest``, overwriting ``dest``."""
        ...

    def archive(self, archive_name: str, members: Sequence[str], cwd: Path) -> None:
        """Create gzip-compressed tarball ``archive_name`` from ``members``, relative to ``cwd``."""
        ...

    def cleanup(self, names: Sequence[str], cwd: Path) -> None:
        """Remove each of ``names`` from ``cwd``. Already-missing files are ignored."""
        ...

    def list(self, directory: Path) -> list[DirectoryEntry]:
        """List the immediate entries of ``directory``."""
        ...

    def walk(self, directory: Path) -> list[Path]:
        """Return every file below ``directory`` (recursive, sorted).

        Symlinks to directories are reported as entries and not descended into.
        """
        ...

    def inspect(self, directory: Path) -> str:
        """Return diagnostic text describing ``directory``."""
        ...


class ShellSteps:
    """Runs the Go toolchain and tar as subprocesses and uses the local filesystem."""

    def __init__(self, tool: str = "go", archiver: str = "tar", env: Optional[Mapping[str, str]] = None):
        """
        Args:
            tool: Go executable
            archiver: tar executable
            env: Base environment for subprocesses (defaults to os.environ)
        """
        self.tool = tool
        self.archiver = archiver
        self.env = env

    def _run(self, step: str, cmd: list[str], cwd: Optional[Path] = None, env: Optional[dict[str, str]] = None) -> subprocess.CompletedProcess:
        try:
            result = safe_run(cmd, cwd=cwd, env=env, capture_output=True, text=True, check=False)
        except OSError as e:
            raise ToolInvocationError(f"Could not start {cmd[0]}: {e}", step=step, command=cmd) from e

        if result.returncode != 0:
            raise ToolInvocationError(
                f"{step} failed",
                step=step,
                command=cmd,
                returncode=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
            )
        if result.stdout and result.stdout.strip():
            logger.debug(f"{step} output:\n{result.stdout.rstrip()}")
        return result

    def compile_command(self, output_path: Path, package_path: str, ldflags: str) -> list[str]:
        return [self.tool, "build", "-buildmode", "exe", "-ldflags", ldflags, "-o", str(output_path), package_path]

    def compile(self, output_path: Path, package_path: str, ldflags: str, kernel: str, arch: str) -> None:
        cmd = self.compile_command(output_path, package_path, ldflags)
        env = merge_env({"GOOS": kernel, "GOARCH": arch}, base=self.env)
        logger.debug(f"GOOS={kernel} GOARCH={arch} {format_command(cmd)}")
        self._run("compile", cmd, env=env)

    def exists(self, path: Path) -> bool:
        try:
            os.stat(path)
        except FileNotFoundError:
            return False
        except NotADirectoryError:
            return False
        except OSError as e:
            raise FilesystemQueryError(path, e) from e
        return True

    def copy(self, src: Path, dest: Path) -> None:
        try:
            shutil.copyfile(src, dest)
        except OSError as e:
            raise ToolInvocationError(f"Could not copy {src} => {dest}: {e}", step="copy") from e

    def archive(self, archive_name: str, members: Sequence[str], cwd: Path) -> None:
        cmd = [self.archiver, "-czvf", archive_name, *members]
        logger.debug(f"{format_command(cmd)} (in {cwd})")
        self._run("archive", cmd, cwd=cwd, env=merge_env(None, base=self.env))

    def cleanup(self, names: Sequence[str], cwd: Path) -> None:
        for name in names:
            try:
                (cwd / name).unlink(missing_ok=True)
            except OSError as e:
                raise ToolInvocationError(f"Could not remove {cwd / name}: {e}", step="cleanup") from e
            logger.debug(f"Removed {cwd / name}")

    def list(self, directory: Path) -> list[DirectoryEntry]:
        entries: list[DirectoryEntry] = []
        try:
            for child in sorted(directory.iterdir(), key=lambda p: p.name):
                info = child.lstat()
                entries.append(
                    DirectoryEntry(
                        name=child.name,
                        size=info.st_size,
                        mode=stat.filemode(info.st_mode),
                        is_dir=stat.S_ISDIR(info.st_mode),
                    )
                )
        except OSError as e:
            raise ToolInvocationError(f"Could not list {directory}: {e}", step="list") from e
        return entries

    def walk(self, directory: Path) -> list[Path]:
        if not directory.is_dir():
            raise ToolInvocationError(f"Not a directory: {directory}", step="walk")

        def _raise(error: OSError) -> None:
            raise error

        files: list[Path] = []
        try:
            for dirpath, dirnames, filenames in os.walk(directory, onerror=_raise):
                # os.walk lists directory symlinks in dirnames but never enters them
                linked = [d for d in dirnames if os.path.islink(os.path.join(dirpath, d))]
                dirnames[:] = sorted(d for d in dirnames if d not in linked)
                for filename in sorted([*filenames, *linked]):
                    files.append(Path(dirpath) / filename)
        except OSError as e:
            raise ToolInvocationError(f"Could not walk {directory}: {e}", step="walk") from e
        return files

    def inspect(self, directory: Path) -> str:
        lines = [str(directory)]
        for entry in self.list(directory):
            lines.append(f"{entry.mode} {entry.size:>10} {entry.name}")
        return "\n".join(lines)
