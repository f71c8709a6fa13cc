"""
Centralized exception hierarchy for rubypack.

Every build-fatal condition raised by the pipeline derives from
RubypackError so the CLI can report it with a single handler.
"""

from typing import Optional


# ============================================================================
# Base Exceptions
# ============================================================================


class RubypackError(Exception):
    """Base exception for all rubypack errors."""

    pass


class ConfigurationError(RubypackError):
    """Invalid build configuration (config file or environment)."""

    pass


# ============================================================================
# Process Exceptions
# ============================================================================


class ProcessExecutionError(RubypackError):
    """Raised when a command cannot be started at all.

    A command that starts and exits non-zero is not an error at this
    level; it is reported through ProcessResult.
    """

    def __init__(self, command: str, reason: str):
        self.command = command
        self.reason = reason
        super().__init__(f"Failed to execute '{command}': {reason}")


# ============================================================================
# Runtime Exceptions
# ============================================================================


class VersionResolutionError(RubypackError):
    """No source produced a usable Ruby version."""

    pass


class ProvisioningError(RubypackError):
    """No prebuilt runtime matches the resolved version."""

    def __init__(self, version: str, install_path):
        self.version = version
        self.install_path = install_path
        super().__init__(
            f"Ruby {version} is not available on this stack "
            f"(expected a prebuilt runtime at {install_path})."
        )


# ============================================================================
# Package Manager Exceptions
# ============================================================================


class PackageManagerError(RubypackError):
    """Base exception for package manager errors."""

    pass


class MissingLockfileError(PackageManagerError):
    """The application has no committed lock file."""

    def __init__(self, lockfile_name: str = "Gemfile.lock"):
        self.lockfile_name = lockfile_name
        super().__init__(
            f"{lockfile_name} is required. Please run \"bundle install\" locally\n"
            f"and commit your {lockfile_name}."
        )


class DependencyInstallError(PackageManagerError):
    """The package manager exited non-zero.

    Attributes:
        output: Captured output of the failed command
    """

    def __init__(self, message: str, output: Optional[str] = None):
        self.message = message
        self.output = output or ""
        super().__init__(message)

    def __str__(self) -> str:
        if not self.output:
            return self.message
        return f"{self.message}\n{self.output.rstrip()}"


class ArtifactFetchError(RubypackError):
    """A vendored artifact could not be downloaded or unpacked."""

    pass


class CacheError(RubypackError):
    """Raised when a cache entry cannot be restored or stored."""

    pass
