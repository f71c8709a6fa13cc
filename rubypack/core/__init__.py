"""
Core functionality for rubypack.

This package contains the foundational modules that other components depend on.
"""

from .exceptions import (
    RubypackError,
    ConfigurationError,
    ProcessExecutionError,
    VersionResolutionError,
    ProvisioningError,
    PackageManagerError,
    MissingLockfileError,
    DependencyInstallError,
    ArtifactFetchError,
    CacheError,
)

from .process import (
    ProcessExecutor,
    ProcessResult,
    format_command,
)

from .environment import (
    EnvironmentVariable,
    EnvironmentVariableSet,
    WritePolicy,
)

from .cache import CacheManager

__all__ = [
    # Exceptions
    "RubypackError",
    "ConfigurationError",
    "ProcessExecutionError",
    "VersionResolutionError",
    "ProvisioningError",
    "PackageManagerError",
    "MissingLockfileError",
    "DependencyInstallError",
    "ArtifactFetchError",
    "CacheError",
    # Processes
    "ProcessExecutor",
    "ProcessResult",
    "format_command",
    # Environment
    "EnvironmentVariable",
    "EnvironmentVariableSet",
    "WritePolicy",
    # Cache
    "CacheManager",
]
