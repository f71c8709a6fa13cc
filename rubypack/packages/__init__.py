"""
Package manager integrations for rubypack.

Available Components:
--------------------
- PackageManager: Abstract base class for dependency installers
- BundlerInstaller: Deployment `bundle install` with build caching
- ArtifactFetcher: Fetch-by-name-and-version capability for vendored archives
- HttpArtifactFetcher: ArtifactFetcher backed by the vendor URL

Example Usage:
-------------
    from rubypack.packages import BundlerInstaller

    installer = BundlerInstaller(build_dir, config, executor, fetcher, cache)
    installer.ensure_lockfile()
    installer.install(version, lockfile, env)
"""

from rubypack.packages.base import PackageManager
from rubypack.packages.fetcher import ArtifactFetcher, HttpArtifactFetcher
from rubypack.packages.bundler import BundlerInstaller

from rubypack.core.exceptions import (
    PackageManagerError,
    MissingLockfileError,
    DependencyInstallError,
)

__all__ = [
    "PackageManager",
    "ArtifactFetcher",
    "HttpArtifactFetcher",
    "BundlerInstaller",
    "PackageManagerError",
    "MissingLockfileError",
    "DependencyInstallError",
]
