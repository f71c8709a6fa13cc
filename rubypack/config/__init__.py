"""Configuration module for rubypack.

This module provides the immutable build configuration (defaults,
rubypack.yaml and environment overrides) and Gemfile.lock parsing.
"""

from rubypack.config.parser import (
    BuildConfig,
    CONFIG_FILE_NAME,
    load_build_config,
)
from rubypack.config.lockfile import (
    LOCKFILE_NAME,
    LockedDependencySet,
    LockedSpec,
    LockfileParseError,
    LockfileParser,
)

__all__ = [
    "BuildConfig",
    "CONFIG_FILE_NAME",
    "load_build_config",
    "LOCKFILE_NAME",
    "LockedDependencySet",
    "LockedSpec",
    "LockfileParseError",
    "LockfileParser",
]
