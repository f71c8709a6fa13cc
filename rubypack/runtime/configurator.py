"""
Build-time and runtime environment configuration.

Two independent EnvironmentVariableSets come out of here:

- the build-time set, with absolute paths under the build directory,
  handed to every child process of the remaining build steps
- the persisted set, with $HOME-relative paths, written to
  .profile.d/ruby.sh for the running application
"""

import logging
from pathlib import Path

from rubypack.config.parser import BuildConfig
from rubypack.core.environment import EnvironmentVariableSet
from rubypack.core.filesystem import atomic_write
from rubypack.runtime.provisioner import (
    BIN_DIR,
    slug_vendor_bundler,
    vendored_ruby_path,
)
from rubypack.runtime.version import RuntimeVersion

logger = logging.getLogger(__name__)

PROFILE_SCRIPT = Path(".profile.d") / "ruby.sh"

SYSTEM_PATH = "/usr/local/bin:/usr/bin:/bin"


class EnvironmentConfigurator:
    """
    Compute the build-time and persisted environments for a runtime.

    Attributes:
        build_dir: Application build directory
        config: Build configuration
    """

    def __init__(self, build_dir: Path, config: BuildConfig):
        self.build_dir = Path(build_dir)
        self.config = config

    def default_path(self, version: RuntimeVersion) -> str:
        """bin:<gem bin>:<system dirs>, rooted at the build directory."""
        gem_bin = self.build_dir / slug_vendor_bundler(version) / BIN_DIR
        return f"{self.build_dir / BIN_DIR}:{gem_bin}:{SYSTEM_PATH}"

    def build_time_env(self, version: RuntimeVersion) -> EnvironmentVariableSet:
        """
        Environment for the rest of the build.

        The vendored runtime's bin and lib directories come first so the
        freshly provisioned interpreter shadows any platform default. The
        inherited PATH is kept after the default path.
        """
        env = EnvironmentVariableSet(self.config.platform_env)
        ruby_dir = self.build_dir / vendored_ruby_path(version)
        gem_dir = str(self.build_dir / slug_vendor_bundler(version))

        path = f"{ruby_dir / BIN_DIR}:{self.default_path(version)}"
        inherited = self.config.platform_env.get("PATH")
        env.set_override("PATH", f"{path}:{inherited}" if inherited else path)
        env.prepend_path("LD_LIBRARY_PATH", str(ruby_dir / "lib"))

        env.set_default("LANG", self.config.lang)
        env.set_default("GEM_PATH", gem_dir)
        env.set_override("GEM_HOME", gem_dir)
        return env

    def persisted_profile(self, version: RuntimeVersion) -> EnvironmentVariableSet:
        """
        Environment for the running application.

        GEM_PATH and LANG are defaults the app may override; PATH is
        always overridden so the vendored binaries are found first.
        """
        gem_dir = f"$HOME/{slug_vendor_bundler(version)}"

        env = EnvironmentVariableSet()
        env.set_default("GEM_PATH", gem_dir)
        env.set_default("LANG", self.config.lang)
        env.set_override("PATH", f"$HOME/{BIN_DIR}:{gem_dir}/{BIN_DIR}:$PATH")
        return env

    def write_profile(self, env: EnvironmentVariableSet) -> Path:
        """
        Write the persisted environment to .profile.d/ruby.sh.

        Returns:
            Path of the written script
        """
        script = self.build_dir / PROFILE_SCRIPT
        atomic_write(script, env.to_profile_script())
        logger.debug(f"Wrote {len(env)} variable(s) to {script}")
        return script
