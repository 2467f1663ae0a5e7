"""
Command-line interface for crossbuild.

This module provides the `crossbuild` entry point run by the action. All
configuration comes from the action's environment variables; the only flags
control verbosity.
"""

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional, Sequence

from crossbuild import __version__
from crossbuild.actions import set_output
from crossbuild.config import BuildConfig, TargetDescriptor, read_config
from crossbuild.errors import CrossBuildError
from crossbuild.orchestrator import ArtifactSet, BuildOrchestrator
from crossbuild.output import init_timer, log, log_error, log_header, log_success, set_verbose
from crossbuild.steps import ExternalSteps, ShellSteps

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(funcName)s:%(lineno)d] - %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

OUTPUT_NAME = "files"
HANDLER_NAME = "crossbuild"


@dataclass
class CliArgs:
    """Parsed command-line arguments."""

    verbose: bool = False


def setup_logging(verbose: bool) -> None:
    """Route library logging to stderr; DEBUG when verbose, WARNING otherwise."""
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)
    for existing in list(root.handlers):
        if existing.get_name() == HANDLER_NAME:
            root.removeHandler(existing)

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
    root.addHandler(handler)


def parse_args(argv: Optional[Sequence[str]] = None) -> CliArgs:
    parser = argparse.ArgumentParser(
        prog="crossbuild",
        description="Cross-compile a Go program for the targets in INPUT_PLATFORMS and report the produced files.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=os.environ.get("RUNNER_DEBUG") == "1",
        help="Show debug output (also enabled by RUNNER_DEBUG=1)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    ns = parser.parse_args(argv)
    return CliArgs(verbose=ns.verbose)


def run(config: BuildConfig, targets: Sequence[TargetDescriptor], steps: ExternalSteps) -> ArtifactSet:
    """Build all targets and publish the ``files`` output.

    Raises:
        CrossBuildError: If any step fails
    """
    artifacts = BuildOrchestrator(config, steps).run(targets)
    set_output(OUTPUT_NAME, artifacts.to_output_value(), output_file=config.github_output)
    return artifacts


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Entry point. Always exits: 0 on success, 1 on any build failure."""
    args = parse_args(argv)

    init_timer(sys.stdout)
    set_verbose(args.verbose)
    setup_logging(args.verbose)
    log_header("crossbuild", __version__)

    try:
        config, targets = read_config(os.environ)
        log(f"Targets: {', '.join(str(t) for t in targets)}")
        artifacts = run(config, targets, ShellSteps())
    except CrossBuildError as e:
        log_error(e.format())
        sys.exit(1)
    except KeyboardInterrupt:
        log_error("Interrupted")
        sys.exit(130)

    log_success(f"Built {len(artifacts.produced)} artifact(s) for {len(targets)} target(s)")
    sys.exit(0)


if __name__ == "__main__":
    main()
