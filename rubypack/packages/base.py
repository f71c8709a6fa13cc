"""
Base package manager abstraction for rubypack.

Classes:
    PackageManager: Abstract base class for dependency installers
"""

from abc import ABC, abstractmethod
from pathlib import Path

from rubypack.config.lockfile import LockedDependencySet
from rubypack.core.environment import EnvironmentVariableSet
from rubypack.runtime.version import RuntimeVersion


class PackageManager(ABC):
    """
    Abstract base class for package manager implementations.

    A package manager drives an external installer; it never resolves a
    dependency graph itself.

    Attributes:
        build_dir: Application build directory

    Abstract Methods:
        detect(): Detect if this package manager is used by the app
        ensure_lockfile(): Fail unless the app has a committed lock file
        install(): Install the locked dependency set
        get_name(): Get the package manager name
    """

    def __init__(self, build_dir: Path):
        """
        Initialize package manager.

        Args:
            build_dir: Application build directory

        Raises:
            TypeError: If build_dir is not a Path
            ValueError: If build_dir doesn't exist
        """
        if not isinstance(build_dir, Path):
            raise TypeError(f"build_dir must be Path, got {type(build_dir)}")
        if not build_dir.exists():
            raise ValueError(f"Build directory does not exist: {build_dir}")

        self.build_dir = build_dir

    @abstractmethod
    def detect(self) -> bool:
        """
        Detect if this package manager is used in the app.

        Returns:
            True if the app's manifest file is present
        """
        pass

    @abstractmethod
    def ensure_lockfile(self) -> Path:
        """
        Verify the lock file exists.

        Returns:
            Path to the lock file

        Raises:
            MissingLockfileError: If the app has no lock file
        """
        pass

    @abstractmethod
    def install(
        self,
        version: RuntimeVersion,
        lockfile: LockedDependencySet,
        env: EnvironmentVariableSet,
    ) -> None:
        """
        Install the locked dependencies against a provisioned runtime.

        Args:
            version: Runtime the dependencies are installed for
            lockfile: Parsed lock file
            env: Build-time environment for child processes

        Raises:
            MissingLockfileError: If the app has no lock file
            DependencyInstallError: If the installer exits non-zero
        """
        pass

    @abstractmethod
    def get_name(self) -> str:
        """
        Get the package manager name.

        Returns:
            Package manager name (e.g., 'bundler')
        """
        pass
