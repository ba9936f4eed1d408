"""CLI module for web-toolbox.

This package provides the command-line surface: configuration loading,
artifact persistence and the runner that drives the capture layer.
"""

from .runner import (
    # Exit codes
    ExitCode,
    exit_code_for,

    # Main CLI runner
    CLIRunner,
    setup_logging,
)

from .config import (
    ToolboxConfiguration,
    load_configuration,
    adjust_timeout,
    resolve_target,
)

from .output import ArtifactWriter

__all__ = [
    # Exit codes
    'ExitCode',
    'exit_code_for',

    # Main CLI runner
    'CLIRunner',
    'setup_logging',

    # Configuration
    'ToolboxConfiguration',
    'load_configuration',
    'adjust_timeout',
    'resolve_target',

    # Output
    'ArtifactWriter',
]
