"""
Bundler integration for rubypack.

Installs the application's gems into vendor/bundle with a deployment
(frozen) install against the vendored runtime. The .bundle config
directory and vendor/bundle are restored from the build cache before
the install and stored back after a successful one.

Classes:
    BundlerInstaller: Dependency installer driving `bundle install`

Example:
    installer = BundlerInstaller(build_dir, config, executor, fetcher, cache)
    installer.install(version, lockfile, env)
"""

import logging
from pathlib import Path
from typing import Dict, List

from rubypack.config.lockfile import LOCKFILE_NAME, LockedDependencySet
from rubypack.config.parser import BuildConfig
from rubypack.core.cache import CacheManager
from rubypack.core.environment import EnvironmentVariableSet
from rubypack.core.exceptions import (
    ArtifactFetchError,
    DependencyInstallError,
    MissingLockfileError,
)
from rubypack.core.filesystem import safe_rmtree, temporary_directory
from rubypack.core.process import ProcessExecutor
from rubypack.packages.base import PackageManager
from rubypack.packages.fetcher import ArtifactFetcher
from rubypack.runtime.provisioner import (
    BIN_DIR,
    VENDOR_DIR,
    slug_vendor_bundler,
    vendored_ruby_path,
)
from rubypack.runtime.version import RuntimeVersion

logger = logging.getLogger(__name__)

BUNDLE_CONFIG_DIR = ".bundle"
BUNDLE_PATH = f"{VENDOR_DIR}/bundle"

# Restored before the install, stored after a successful one
CACHED_PATHS = (BUNDLE_CONFIG_DIR, BUNDLE_PATH)


class BundlerInstaller(PackageManager):
    """
    Bundler dependency installer.

    Attributes:
        build_dir: Application build directory
        config: Build configuration
        executor: Runs every bundler/gem command
        fetcher: Supplies the libyaml archive for native extensions
        cache: Build cache for .bundle and vendor/bundle
    """

    def __init__(
        self,
        build_dir: Path,
        config: BuildConfig,
        executor: ProcessExecutor,
        fetcher: ArtifactFetcher,
        cache: CacheManager,
    ):
        super().__init__(Path(build_dir))
        self.config = config
        self.executor = executor
        self.fetcher = fetcher
        self.cache = cache

    @property
    def gemfile(self) -> Path:
        return self.build_dir / "Gemfile"

    @property
    def lockfile_path(self) -> Path:
        return self.build_dir / LOCKFILE_NAME

    def detect(self) -> bool:
        return self.gemfile.exists()

    def get_name(self) -> str:
        return "bundler"

    def ensure_lockfile(self) -> Path:
        if not self.lockfile_path.is_file():
            raise MissingLockfileError(LOCKFILE_NAME)
        return self.lockfile_path

    def _ruby_bin(self, version: RuntimeVersion) -> Path:
        return self.build_dir / vendored_ruby_path(version) / BIN_DIR

    def install_command(self, version: RuntimeVersion) -> List[str]:
        """The `bundle install` invocation for a deployment build."""
        return [
            str(self._ruby_bin(version) / "bundle"),
            "install",
            "--without",
            self.config.bundle_without,
            "--path",
            BUNDLE_PATH,
            "--binstubs",
            f"{BIN_DIR}/",
            "--deployment",
            "--no-clean",
        ]

    def native_build_env(
        self, env: EnvironmentVariableSet, libyaml_dir: Path
    ) -> Dict[str, str]:
        """
        Variables added to the install command only.

        Points bundler at the app's Gemfile and config, and puts the
        fetched libyaml headers and libraries ahead of any inherited
        compiler search paths.
        """
        include_dir = str(libyaml_dir / "include")
        lib_dir = str(libyaml_dir / "lib")

        def prepended(key: str, entry: str) -> str:
            current = env.get(key)
            return f"{entry}:{current}" if current else entry

        return {
            "BUNDLE_GEMFILE": str(self.gemfile),
            "BUNDLE_CONFIG": str(self.build_dir / BUNDLE_CONFIG_DIR / "config"),
            "CPATH": prepended("CPATH", include_dir),
            "CPPATH": prepended("CPPATH", include_dir),
            "LIBRARY_PATH": prepended("LIBRARY_PATH", lib_dir),
        }

    def install_bundler(self, version: RuntimeVersion, env: EnvironmentVariableSet):
        """Install the pinned bundler release into the vendored runtime."""
        result = self.executor.run(
            [
                str(self._ruby_bin(version) / "gem"),
                "install",
                "bundler",
                f"-v={self.config.bundler_version}",
                "--no-document",
            ],
            env=env.as_environ(),
        )
        if not result.success:
            raise DependencyInstallError(
                f"Failed to install bundler {self.config.bundler_version}.",
                result.output,
            )
        return result

    def bundler_version(
        self, version: RuntimeVersion, env: EnvironmentVariableSet
    ) -> str:
        return self.executor.run_stdout(
            [str(self._ruby_bin(version) / "bundle"), "version"],
            env=env.as_environ(),
        )

    def install(
        self,
        version: RuntimeVersion,
        lockfile: LockedDependencySet,
        env: EnvironmentVariableSet,
    ) -> None:
        """
        Run a deployment `bundle install`.

        Raises:
            MissingLockfileError: If Gemfile.lock is absent; nothing is run
            DependencyInstallError: If bundler exits non-zero or libyaml
                cannot be fetched
        """
        self.ensure_lockfile()

        self.install_bundler(version, env)
        self.cache.restore(BUNDLE_CONFIG_DIR)

        bundler_version = self.bundler_version(version, env)
        logger.info(f"-----> Installing dependencies using {bundler_version}")
        if version.from_environment:
            logger.debug(f"Ruby {version} was set through RUBY_VERSION")

        self.cache.restore(BUNDLE_PATH)

        logger.debug(
            f"Bundling {len(lockfile.specs)} locked gem(s) "
            f"without {self.config.bundle_without}"
        )

        command = self.install_command(version)
        with temporary_directory(prefix="libyaml-") as scratch:
            libyaml_dir = scratch / f"libyaml-{self.config.libyaml_version}"
            try:
                self.fetcher.fetch("libyaml", self.config.libyaml_version, libyaml_dir)
            except ArtifactFetchError as e:
                raise DependencyInstallError(
                    f"Failed to install gems via Bundler: {e}"
                ) from e

            logger.info(f"Running: {' '.join(command)}")
            result = self.executor.pipe(
                command,
                env=env.as_environ(self.native_build_env(env, libyaml_dir)),
            )

        if not result.success:
            raise DependencyInstallError(
                "Failed to install gems via Bundler.", result.output
            )

        logger.info("Cleaning up the bundler cache.")
        clean = self.executor.run(
            [str(self._ruby_bin(version) / "bundle"), "clean"],
            env=env.as_environ(),
        )
        if not clean.success:
            logger.warning(f"bundle clean exited with status {clean.returncode}")

        for path in CACHED_PATHS:
            self.cache.store(path)

        # Downloaded .gem archives are only needed in the cache
        safe_rmtree(
            self.build_dir / slug_vendor_bundler(version) / "cache",
            require_prefix=self.build_dir,
        )
