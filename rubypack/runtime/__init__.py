"""
Ruby runtime management for rubypack.

This module provides functionality for:
- Ruby version values and resolution (lock file, RUBY_VERSION, bundler probe)
- Provisioning a prebuilt runtime into the build directory
- Relative binstub links in bin/
- Build-time and persisted environment configuration
"""

from rubypack.runtime.version import (
    RuntimeVersion,
    VersionSource,
    normalize_version_string,
)
from rubypack.runtime.linking import BinstubLinkManager
from rubypack.runtime.provisioner import (
    RuntimeProvisioner,
    slug_vendor_bundler,
    vendored_ruby_path,
)
from rubypack.runtime.configurator import EnvironmentConfigurator
from rubypack.runtime.resolver import VersionResolver

__all__ = [
    "RuntimeVersion",
    "VersionSource",
    "normalize_version_string",
    "BinstubLinkManager",
    "RuntimeProvisioner",
    "slug_vendor_bundler",
    "vendored_ruby_path",
    "EnvironmentConfigurator",
    "VersionResolver",
]
