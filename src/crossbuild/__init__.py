"""
crossbuild - cross-compile a Go program for several platforms inside a CI action.

Reads the action inputs, builds one binary per ``kernel/arch`` target,
optionally packs each into a .tar.gz with README.md and LICENSE, and reports
the produced files as the ``files`` step output.
"""

from .config import BuildConfig, TargetDescriptor, read_config
from .errors import ConfigurationError, CrossBuildError, FilesystemQueryError, ToolInvocationError
from .orchestrator import ArtifactSet, BuildOrchestrator
from .steps import ExternalSteps, ShellSteps

__version__ = "0.1.0"

__all__ = [
    "ArtifactSet",
    "BuildConfig",
    "BuildOrchestrator",
    "ConfigurationError",
    "CrossBuildError",
    "ExternalSteps",
    "FilesystemQueryError",
    "ShellSteps",
    "TargetDescriptor",
    "ToolInvocationError",
    "__version__",
    "read_config",
]
