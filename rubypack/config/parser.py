"""Build configuration for rubypack.

A BuildConfig is assembled once per build from built-in defaults, an
optional rubypack.yaml file and the inherited environment, then passed
explicitly to every component. Nothing downstream reads os.environ.
"""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

import yaml

from rubypack.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "rubypack.yaml"

DEFAULT_VENDOR_URL = "https://s3-external-1.amazonaws.com/heroku-buildpack-ruby"

# Environment variable -> BuildConfig field
ENVIRONMENT_KEYS = {
    "RUBY_VERSION": "ruby_version",
    "BUNDLE_WITHOUT": "bundle_without",
    "RUBYPACK_VENDOR_URL": "vendor_url",
    "RUBYPACK_RUBY_ROOT": "ruby_install_root",
}


@dataclass(frozen=True)
class BuildConfig:
    """
    Immutable configuration for one build.

    Attributes:
        ruby_version: Runtime version override (RUBY_VERSION)
        bundle_without: Bundler groups to exclude (BUNDLE_WITHOUT)
        vendor_url: Base URL for vendored archives
        ruby_install_root: Directory holding prebuilt runtimes by version
        bundler_version: Bundler release used to bootstrap and install
        libyaml_version: libyaml release for native extension builds
        node_version: node release vendored when execjs is bundled
        lang: Default locale
        cache_lock_timeout: Seconds to wait for the cache lock
        platform_env: Snapshot of the inherited process environment
    """

    ruby_version: Optional[str] = None
    bundle_without: str = "development:test"
    vendor_url: str = DEFAULT_VENDOR_URL
    ruby_install_root: Path = Path("/opt/ruby")
    bundler_version: str = "2.0.2"
    libyaml_version: str = "0.1.4"
    node_version: str = "0.4.7"
    lang: str = "en_US.UTF-8"
    cache_lock_timeout: float = 300
    platform_env: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self):
        if not self.bundle_without:
            raise ConfigurationError("bundle_without cannot be empty")
        if not self.vendor_url:
            raise ConfigurationError("vendor_url cannot be empty")
        if not isinstance(self.ruby_install_root, Path):
            object.__setattr__(self, "ruby_install_root", Path(self.ruby_install_root))
        if not isinstance(self.platform_env, MappingProxyType):
            object.__setattr__(
                self, "platform_env", MappingProxyType(dict(self.platform_env))
            )


def _file_settings(config_file: Path) -> Dict[str, Any]:
    """Load and validate settings from a YAML config file."""
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML syntax in {config_file}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Failed to read {config_file}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_file} must contain a mapping")

    known = {f.name for f in fields(BuildConfig)} - {"platform_env"}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(
            f"Unknown setting(s) in {config_file}: {', '.join(unknown)}"
        )

    settings = {}
    for key, value in data.items():
        if value is None:
            continue
        if key == "ruby_install_root":
            value = Path(value)
        elif key == "cache_lock_timeout":
            try:
                value = float(value)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"cache_lock_timeout must be a number, got {value!r}"
                ) from e
        else:
            value = str(value)
        settings[key] = value
    return settings


def load_build_config(
    environ: Mapping[str, str],
    config_file: Optional[Path] = None,
    build_dir: Optional[Path] = None,
) -> BuildConfig:
    """
    Assemble the BuildConfig for a build.

    Precedence, lowest first: defaults, config file, environment.

    Args:
        environ: Inherited process environment
        config_file: Explicit config file (must exist when given)
        build_dir: Build directory searched for rubypack.yaml

    Returns:
        Immutable build configuration

    Raises:
        ConfigurationError: If the config file is invalid

    Example:
        >>> config = load_build_config(os.environ, build_dir=Path('/tmp/build'))
        >>> config.bundle_without
        'development:test'
    """
    settings: Dict[str, Any] = {}

    if config_file is not None:
        config_file = Path(config_file)
        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_file}")
    elif build_dir is not None and (Path(build_dir) / CONFIG_FILE_NAME).exists():
        config_file = Path(build_dir) / CONFIG_FILE_NAME

    if config_file is not None:
        logger.debug(f"Loading configuration from {config_file}")
        settings.update(_file_settings(config_file))

    for env_key, field_name in ENVIRONMENT_KEYS.items():
        value = environ.get(env_key)
        if value:
            settings[field_name] = (
                Path(value) if field_name == "ruby_install_root" else value
            )

    return BuildConfig(platform_env=dict(environ), **settings)
