"""Tests for the multi-target build-and-package orchestrator."""

import tarfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from crossbuild.actions import format_output_value
from crossbuild.config import BuildConfig, TargetDescriptor, parse_targets
from crossbuild.errors import ConfigurationError, FilesystemQueryError, ToolInvocationError
from crossbuild.orchestrator import ArtifactSet, BuildOrchestrator, archive_file_name, binary_file_name
from crossbuild.steps import ExternalSteps
from tests.fakes import FakeSteps

LINUX = TargetDescriptor("linux", "amd64")
WINDOWS = TargetDescriptor("windows", "arm64")


def make_config(workspace: Path, **overrides) -> BuildConfig:
    values = dict(
        package_name="",
        dest_dir="dist",
        compress=False,
        ldflags="-s -w",
        binary_name="app",
        workspace=str(workspace),
        working_dir=workspace,
    )
    values.update(overrides)
    return BuildConfig(**values)


def archive_members(path: Path) -> list[str]:
    with tarfile.open(path, "r:gz") as tar:
        return sorted(tar.getnames())


class TestFileNames:
    """Tests for binary and archive naming."""

    def test_binary_name_without_compression(self):
        assert binary_file_name("app", LINUX, compress=False) == "app-linux-amd64"

    def test_binary_name_windows_gets_exe(self):
        assert binary_file_name("app", WINDOWS, compress=False) == "app-windows-arm64.exe"

    def test_binary_name_with_compression_is_bare(self):
        assert binary_file_name("app", LINUX, compress=True) == "app"
        assert binary_file_name("app", WINDOWS, compress=True) == "app.exe"

    def test_archive_name(self):
        assert archive_file_name("app", WINDOWS) == "app-windows-arm64.tar.gz"

    def test_artifact_set_output_value(self):
        artifacts = ArtifactSet(files=[Path("dist/a"), Path("dist/b")])
        assert artifacts.to_output_value() == "dist/a dist/b"

    def test_artifact_set_output_value_matches_formatter(self):
        files = [Path("dist/app-linux-amd64"), Path("dist/app-windows-arm64.exe")]
        assert ArtifactSet(files=files).to_output_value() == format_output_value(files)


class TestCompileOnly:
    """Builds with compression disabled."""

    def test_compile_arguments(self, workspace):
        steps = FakeSteps()
        orchestrator = BuildOrchestrator(make_config(workspace, package_name="cmd/app"), steps)
        dest = workspace / "dist"
        dest.mkdir()

        produced = orchestrator.build_target(LINUX)

        assert produced == [dest / "app-linux-amd64"]
        assert steps.calls == [("compile", dest / "app-linux-amd64", "./cmd/app", "-s -w", "linux", "amd64")]

    def test_no_packaging_steps_run(self, workspace):
        (workspace / "README.md").write_text("readme")
        (workspace / "LICENSE").write_text("license")
        steps = FakeSteps()

        BuildOrchestrator(make_config(workspace), steps).run([LINUX])

        assert steps.step_names() == ["compile"]
        assert not (workspace / "dist" / "README.md").exists()

    def test_end_to_end_two_targets(self, workspace):
        steps = FakeSteps()
        orchestrator = BuildOrchestrator(make_config(workspace), steps)

        artifacts = orchestrator.run(parse_targets("linux/amd64,windows/arm64"))

        dest = workspace / "dist"
        assert sorted(p.name for p in dest.iterdir()) == ["app-linux-amd64", "app-windows-arm64.exe"]
        assert artifacts.files == [Path("dist/app-linux-amd64"), Path("dist/app-windows-arm64.exe")]
        assert artifacts.produced == [dest / "app-linux-amd64", dest / "app-windows-arm64.exe"]
        assert artifacts.to_output_value() == "dist/app-linux-amd64 dist/app-windows-arm64.exe"

    def test_targets_are_built_in_order(self, workspace):
        steps = FakeSteps()
        BuildOrchestrator(make_config(workspace), steps).run(parse_targets("windows/arm64,linux/amd64,darwin/arm64"))
        assert [(c[4], c[5]) for c in steps.calls] == [("windows", "arm64"), ("linux", "amd64"), ("darwin", "arm64")]

    def test_creates_destination_directory(self, workspace):
        config = make_config(workspace, dest_dir="out/bin")
        BuildOrchestrator(config, FakeSteps()).run([LINUX])
        assert (workspace / "out" / "bin" / "app-linux-amd64").is_file()

    def test_rerun_overwrites_previous_artifacts(self, workspace):
        dest = workspace / "dist"
        dest.mkdir()
        (dest / "app-linux-amd64").write_text("stale")

        artifacts = BuildOrchestrator(make_config(workspace), FakeSteps()).run([LINUX])

        assert (dest / "app-linux-amd64").read_bytes() == b"binary for linux/amd64"
        assert artifacts.files == [Path("dist/app-linux-amd64")]

    def test_walk_reports_nested_files(self, workspace):
        dest = workspace / "dist"
        (dest / "extra").mkdir(parents=True)
        (dest / "extra" / "notes.txt").write_text("x")

        artifacts = BuildOrchestrator(make_config(workspace), FakeSteps()).run([LINUX])

        assert artifacts.files == [Path("dist/app-linux-amd64"), Path("dist/extra/notes.txt")]


class TestPackaging:
    """Builds with compression enabled."""

    def test_binary_only_archive(self, workspace):
        steps = FakeSteps()
        artifacts = BuildOrchestrator(make_config(workspace, compress=True), steps).run([LINUX])

        dest = workspace / "dist"
        archive = dest / "app-linux-amd64.tar.gz"
        assert archive_members(archive) == ["app"]
        assert sorted(p.name for p in dest.iterdir()) == ["app-linux-amd64.tar.gz"]
        assert artifacts.files == [Path("dist/app-linux-amd64.tar.gz")]
        assert artifacts.produced == [archive]
        assert steps.step_names() == ["compile", "archive", "cleanup", "inspect"]

    def test_archive_with_readme_and_license(self, workspace):
        (workspace / "README.md").write_text("readme")
        (workspace / "LICENSE").write_text("license")
        steps = FakeSteps()

        BuildOrchestrator(make_config(workspace, compress=True), steps).run([WINDOWS])

        dest = workspace / "dist"
        archive = dest / "app-windows-arm64.tar.gz"
        assert archive_members(archive) == ["LICENSE", "README.md", "app.exe"]
        assert sorted(p.name for p in dest.iterdir()) == ["app-windows-arm64.tar.gz"]

        archive_call = next(c for c in steps.calls if c[0] == "archive")
        assert archive_call == ("archive", "app-windows-arm64.tar.gz", ["app.exe", "README.md", "LICENSE"], dest)
        cleanup_call = next(c for c in steps.calls if c[0] == "cleanup")
        assert cleanup_call == ("cleanup", ["app.exe", "README.md", "LICENSE"], dest)

        # Originals in the working directory are untouched
        assert (workspace / "README.md").read_text() == "readme"

    def test_only_readme_present(self, workspace):
        (workspace / "README.md").write_text("readme")
        BuildOrchestrator(make_config(workspace, compress=True), FakeSteps()).run([LINUX])
        assert archive_members(workspace / "dist" / "app-linux-amd64.tar.gz") == ["README.md", "app"]

    def test_ancillary_files_come_from_working_dir(self, workspace, tmp_path):
        source = tmp_path / "checkout"
        source.mkdir()
        (source / "LICENSE").write_text("license")
        (workspace / "README.md").write_text("not this one")

        config = make_config(workspace, compress=True, working_dir=source)
        BuildOrchestrator(config, FakeSteps()).run([LINUX])

        assert archive_members(workspace / "dist" / "app-linux-amd64.tar.gz") == ["LICENSE", "app"]

    def test_multiple_targets_each_get_an_archive(self, workspace):
        (workspace / "LICENSE").write_text("license")
        artifacts = BuildOrchestrator(make_config(workspace, compress=True), FakeSteps()).run([LINUX, WINDOWS])
        assert artifacts.files == [Path("dist/app-linux-amd64.tar.gz"), Path("dist/app-windows-arm64.tar.gz")]

    def test_diagnostic_failure_is_not_fatal(self, workspace):
        steps = FakeSteps(fail_on="inspect")
        artifacts = BuildOrchestrator(make_config(workspace, compress=True), steps).run([LINUX])
        assert artifacts.files == [Path("dist/app-linux-amd64.tar.gz")]

    def test_existence_check_error_propagates(self, workspace):
        steps = MagicMock(spec=ExternalSteps)
        steps.exists.side_effect = FilesystemQueryError(workspace / "README.md", PermissionError(13, "denied"))

        with pytest.raises(FilesystemQueryError):
            BuildOrchestrator(make_config(workspace, compress=True), steps).run([LINUX])

        steps.archive.assert_not_called()


class TestFailures:
    """Fail-fast behavior."""

    @pytest.mark.parametrize("step", ["compile", "archive", "cleanup"])
    def test_step_failure_aborts_run(self, workspace, step):
        steps = FakeSteps(fail_on=step)
        with pytest.raises(ToolInvocationError) as exc_info:
            BuildOrchestrator(make_config(workspace, compress=True), steps).run([LINUX, WINDOWS])
        assert exc_info.value.step == step
        # Second target is never attempted
        assert all(c[4:] != ("windows", "arm64") for c in steps.calls if c[0] == "compile")

    def test_copy_failure_aborts_run(self, workspace):
        (workspace / "README.md").write_text("readme")
        steps = FakeSteps(fail_on="copy")
        with pytest.raises(ToolInvocationError):
            BuildOrchestrator(make_config(workspace, compress=True), steps).run([LINUX])
        assert "archive" not in steps.step_names()

    def test_earlier_artifacts_remain_after_failure(self, workspace):
        steps = MagicMock(wraps=FakeSteps())
        calls = {"n": 0}

        def compile_then_fail(**kwargs):
            calls["n"] += 1
            if calls["n"] == 2:
                raise ToolInvocationError("compile failed", step="compile", returncode=1)
            kwargs["output_path"].write_bytes(b"ok")

        steps.compile.side_effect = compile_then_fail

        with pytest.raises(ToolInvocationError):
            BuildOrchestrator(make_config(workspace), steps).run([LINUX, WINDOWS])

        assert (workspace / "dist" / "app-linux-amd64").is_file()
        steps.walk.assert_not_called()

    def test_missing_binary_name(self, workspace):
        steps = FakeSteps()
        with pytest.raises(ConfigurationError) as exc_info:
            BuildOrchestrator(make_config(workspace, binary_name=""), steps).run([LINUX])
        assert exc_info.value.input_name == "INPUT_NAME"
        assert steps.calls == []

    def test_missing_destination(self, workspace):
        with pytest.raises(ConfigurationError) as exc_info:
            BuildOrchestrator(make_config(workspace, dest_dir=""), FakeSteps()).run([LINUX])
        assert exc_info.value.input_name == "INPUT_DEST"

    def test_list_failure_is_fatal(self, workspace):
        steps = MagicMock(wraps=FakeSteps())
        steps.list.side_effect = ToolInvocationError("Could not list", step="list")
        with pytest.raises(ToolInvocationError, match="Could not list"):
            BuildOrchestrator(make_config(workspace), steps).run([LINUX])
