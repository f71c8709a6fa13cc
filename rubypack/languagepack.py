"""
The Ruby build pipeline.

RubyLanguagePack.compile() runs the stages in order, each one either
completing or aborting the build with a RubypackError:

    remove checked-in vendor/bundle
    resolve the Ruby version and provision it
    vendor node when execjs is bundled
    build-time environment and .profile.d script
    with GIT_DIR suppressed: bundle install, then rake assets:precompile

Example:
    >>> context = BuildContext.create(build_dir, cache_dir, os.environ)
    >>> RubyLanguagePack(context).compile()
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, TextIO

from rubypack.config.lockfile import (
    LOCKFILE_NAME,
    LockedDependencySet,
    LockfileParseError,
    LockfileParser,
)
from rubypack.config.parser import BuildConfig, load_build_config
from rubypack.core.cache import CacheManager
from rubypack.core.environment import EnvironmentVariableSet
from rubypack.core.exceptions import (
    ConfigurationError,
    MissingLockfileError,
)
from rubypack.core.filesystem import safe_rmtree
from rubypack.core.process import ProcessExecutor
from rubypack.hooks.rake import ASSETS_PRECOMPILE, HookOutcome, RakeTaskRunner
from rubypack.packages.bundler import BUNDLE_PATH, BundlerInstaller
from rubypack.packages.fetcher import ArtifactFetcher, HttpArtifactFetcher
from rubypack.runtime.configurator import EnvironmentConfigurator
from rubypack.runtime.provisioner import BIN_DIR, RuntimeProvisioner
from rubypack.runtime.resolver import VersionResolver
from rubypack.runtime.version import RuntimeVersion

logger = logging.getLogger(__name__)


@dataclass
class BuildContext:
    """
    Everything one build needs, created once and passed explicitly.

    Attributes:
        build_dir: Application build directory
        cache_dir: Cache directory carried between builds
        config: Immutable build configuration
        executor: Spawns every child process of the build
        fetcher: Supplies vendored archives
    """

    build_dir: Path
    cache_dir: Path
    config: BuildConfig
    executor: ProcessExecutor
    fetcher: ArtifactFetcher

    @classmethod
    def create(
        cls,
        build_dir: Path,
        cache_dir: Path,
        environ: Mapping[str, str],
        config_file: Optional[Path] = None,
        output: Optional[TextIO] = None,
    ) -> "BuildContext":
        build_dir = Path(build_dir).resolve()
        config = load_build_config(
            environ, config_file=config_file, build_dir=build_dir
        )
        return cls(
            build_dir=build_dir,
            cache_dir=Path(cache_dir).resolve(),
            config=config,
            executor=ProcessExecutor(build_dir, env=config.platform_env, output=output),
            fetcher=HttpArtifactFetcher(config.vendor_url),
        )


class RubyLanguagePack:
    """Provision Ruby and the app's gems into a build directory."""

    def __init__(self, context: BuildContext):
        self.context = context
        self.build_dir = context.build_dir
        self.config = context.config
        self._lockfile: Optional[LockedDependencySet] = None
        self._resolver: Optional[VersionResolver] = None
        self.build_env: Optional[EnvironmentVariableSet] = None

    @property
    def lockfile(self) -> LockedDependencySet:
        """
        The parsed Gemfile.lock, read once per build.

        Raises:
            MissingLockfileError: If the app has no Gemfile.lock
            ConfigurationError: If it cannot be read
        """
        if self._lockfile is None:
            path = self.build_dir / LOCKFILE_NAME
            if not path.is_file():
                raise MissingLockfileError(LOCKFILE_NAME)
            try:
                self._lockfile = LockfileParser.parse_file(path)
            except LockfileParseError as e:
                raise ConfigurationError(str(e)) from e
        return self._lockfile

    @property
    def resolver(self) -> VersionResolver:
        if self._resolver is None:
            self._resolver = VersionResolver(
                self.build_dir,
                self.config,
                self.context.executor,
                self.context.fetcher,
                lockfile=self.lockfile,
            )
        return self._resolver

    def ruby_version(self) -> RuntimeVersion:
        return self.resolver.resolve()

    def remove_vendor_bundle(self) -> bool:
        """Delete a checked-in vendor/bundle. Returns True if one existed."""
        vendor_bundle = self.build_dir / BUNDLE_PATH
        if not (vendor_bundle.exists() or vendor_bundle.is_symlink()):
            return False
        logger.warning(
            "-----> WARNING:  Removing `vendor/bundle`.\n"
            "Checking in `vendor/bundle` is not supported. "
            "Please remove this directory\n"
            "and add it to your .gitignore. To vendor your gems with Bundler, use\n"
            "`bundle pack` instead."
        )
        safe_rmtree(vendor_bundle, require_prefix=self.build_dir)
        return True

    def install_node_if_needed(self) -> bool:
        """Vendor a node binary into bin/ when execjs is bundled."""
        if not self.lockfile.has_gem("execjs"):
            return False
        node_version = self.config.node_version
        logger.info(f"-----> Installing node-{node_version}")
        self.context.fetcher.fetch("node", node_version, self.build_dir / BIN_DIR)
        return True

    def compile(self) -> HookOutcome:
        """
        Run the whole pipeline.

        Returns:
            Outcome of the assets:precompile hook

        Raises:
            RubypackError: If any stage up to the dependency install fails
        """
        context = self.context
        self.remove_vendor_bundle()

        # Checked before resolution so a missing lock file is reported as such
        lockfile = self.lockfile
        version = self.ruby_version()

        RuntimeProvisioner(self.build_dir, self.config.ruby_install_root).provision(
            version
        )
        self.install_node_if_needed()

        configurator = EnvironmentConfigurator(self.build_dir, self.config)
        env = self.build_env = configurator.build_time_env(version)
        configurator.write_profile(configurator.persisted_profile(version))

        cache = CacheManager(
            self.build_dir,
            context.cache_dir,
            lock_timeout=self.config.cache_lock_timeout,
        )
        installer = BundlerInstaller(
            self.build_dir, self.config, context.executor, context.fetcher, cache
        )
        hooks = RakeTaskRunner(self.build_dir, context.executor)

        with env.suppressed("GIT_DIR"):
            installer.install(version, lockfile, env)
            outcome = hooks.run_if_defined(ASSETS_PRECOMPILE, env)

        return outcome
