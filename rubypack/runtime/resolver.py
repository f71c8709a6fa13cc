"""
Ruby version resolution.

Precedence, first success wins:

1. The lock file's RUBY VERSION declaration, when it normalizes to a
   strict "(engine-)?X.Y.Z" shape.
2. The RUBY_VERSION override, only when the lock file declares nothing
   (absent or "unspecified"). The value is used verbatim and flagged as
   environment-sourced.
3. A bootstrap copy of bundler fetched into a scratch directory and run
   as `bundle platform --ruby` against the application.

The result is memoized per resolver: the bootstrap probe may hit the
network and must run at most once per build.
"""

import logging
from pathlib import Path
from typing import Optional

from rubypack.config.lockfile import LockedDependencySet
from rubypack.config.parser import BuildConfig
from rubypack.core.exceptions import (
    ArtifactFetchError,
    ProcessExecutionError,
    VersionResolutionError,
)
from rubypack.core.filesystem import temporary_directory
from rubypack.core.process import ProcessExecutor
from rubypack.packages.fetcher import ArtifactFetcher
from rubypack.runtime.version import (
    STRICT_VERSION_RE,
    RuntimeVersion,
    VersionSource,
    is_unspecified,
    normalize_version_string,
)

logger = logging.getLogger(__name__)


class VersionResolver:
    """
    Resolve the Ruby version for one build.

    Attributes:
        build_dir: Application build directory
        config: Build configuration (supplies the RUBY_VERSION override)
        lockfile: Parsed lock file, or None when the app has none
    """

    def __init__(
        self,
        build_dir: Path,
        config: BuildConfig,
        executor: ProcessExecutor,
        fetcher: ArtifactFetcher,
        lockfile: Optional[LockedDependencySet] = None,
    ):
        self.build_dir = Path(build_dir)
        self.config = config
        self.lockfile = lockfile
        self._executor = executor
        self._fetcher = fetcher
        self._resolved: Optional[RuntimeVersion] = None

    @property
    def is_resolved(self) -> bool:
        return self._resolved is not None

    def resolve(self) -> RuntimeVersion:
        """
        Determine the Ruby version, computing it at most once.

        Returns:
            The resolved RuntimeVersion

        Raises:
            VersionResolutionError: If every source is exhausted
        """
        if self._resolved is not None:
            return self._resolved

        declared = self.lockfile.ruby_version if self.lockfile else None

        version = self._from_lockfile(declared)
        if version is None and is_unspecified(declared):
            version = self._from_environment()
        if version is None:
            version = self._from_bootstrap()

        logger.debug(f"Resolved Ruby version {version} from {version.source.value}")
        self._resolved = version
        return version

    def _from_lockfile(self, declared: Optional[str]) -> Optional[RuntimeVersion]:
        if is_unspecified(declared):
            return None
        candidate = normalize_version_string(declared)
        if STRICT_VERSION_RE.match(candidate):
            return RuntimeVersion(candidate, VersionSource.LOCKFILE)
        logger.debug(f"Ignoring malformed lock file Ruby version: {declared!r}")
        return None

    def _from_environment(self) -> Optional[RuntimeVersion]:
        override = self.config.ruby_version
        if not override or not override.strip():
            return None
        return RuntimeVersion(override.strip(), VersionSource.ENVIRONMENT)

    def _from_bootstrap(self) -> RuntimeVersion:
        """Ask a scratch copy of bundler which Ruby the Gemfile wants."""
        with temporary_directory(prefix="bundler-") as bundler_path:
            try:
                self._fetcher.fetch(
                    "bundler",
                    self.config.bundler_version,
                    bundler_path,
                    strip_components=1,
                )
            except ArtifactFetchError as e:
                raise VersionResolutionError(
                    f"Could not determine the Ruby version: {e}"
                ) from e

            env = dict(self.config.platform_env)
            env["GEM_PATH"] = str(bundler_path)
            try:
                result = self._executor.run(
                    [bundler_path / "bin" / "bundle", "platform", "--ruby"],
                    env=env,
                    cwd=self.build_dir,
                )
            except ProcessExecutionError as e:
                raise VersionResolutionError(
                    f"Could not determine the Ruby version: {e}"
                ) from e

        lines = result.stdout.strip().splitlines()
        reported = lines[-1].strip() if lines else ""
        if not result.success or is_unspecified(reported):
            raise VersionResolutionError(
                "Could not determine the Ruby version. Declare one in your Gemfile\n"
                "(e.g. ruby \"3.0.2\") or set RUBY_VERSION."
            )
        return RuntimeVersion(
            normalize_version_string(reported), VersionSource.BOOTSTRAP
        )
