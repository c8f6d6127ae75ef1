"""Configuration module for crosskit.

This module reads the run configuration from an optional YAML file and the
environment variables used by the GitHub Action.
"""

from crosskit.config.parser import (
    CommandKind,
    CrossConfig,
    load_config,
    parse_config,
)

__all__ = [
    "CommandKind",
    "CrossConfig",
    "load_config",
    "parse_config",
]
