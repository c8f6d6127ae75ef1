"""
Cross-compilation target model for crosskit.

This module provides the supported target catalogue, target pattern
matching and the environment composition that turns a provisioned
toolchain into cargo and cc-rs variables.
"""

from crosskit.cross.targets import TARGETS, TargetConfig, TargetRegistry, get_target_config
from crosskit.cross.matcher import expand_patterns, glob_match
from crosskit.cross.env import CrossEnv, UserOverrides, compose

__all__ = [
    "TARGETS",
    "TargetConfig",
    "TargetRegistry",
    "get_target_config",
    "expand_patterns",
    "glob_match",
    "CrossEnv",
    "UserOverrides",
    "compose",
]
