"""
Ruby runtime version values.

A RuntimeVersion is the canonical identifier of the interpreter a build
installs: an optional engine name, a three-part version number and an
optional pre-release suffix, rendered as "engine-major.minor.patch" or
"major.minor.patch".
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from packaging.version import InvalidVersion, Version

# "ruby 3.0.2p107" -> "ruby 3.0.2"
_PATCHLEVEL_RE = re.compile(r"p\d+$")

# Accepted shape for lock-file and probe values
STRICT_VERSION_RE = re.compile(r"^(?:\w+-)?\d+\.\d+\.\d+(?:[-.]?[A-Za-z][\w.]*)?$")

_PARTS_RE = re.compile(
    r"^(?:(?P<engine>[A-Za-z][\w]*)-)?"
    r"(?P<number>\d+\.\d+\.\d+)"
    r"(?:[-.]?(?P<suffix>[A-Za-z][\w.]*))?$"
)

UNSPECIFIED_MARKERS = ("unspecified", "no ruby version specified")


class VersionSource(Enum):
    """Where a resolved version came from."""

    LOCKFILE = "lockfile"
    ENVIRONMENT = "environment"
    BOOTSTRAP = "bootstrap"


def normalize_version_string(raw: Optional[str]) -> str:
    """
    Normalize a Bundler-style version declaration.

    Strips surrounding whitespace and the trailing patchlevel marker,
    and joins engine and number with a dash.

    Example:
        >>> normalize_version_string("ruby 3.0.2p107\\n")
        'ruby-3.0.2'
    """
    if not raw:
        return ""
    value = _PATCHLEVEL_RE.sub("", raw.strip())
    return re.sub(r"\s+", "-", value, count=1)


def is_unspecified(raw: Optional[str]) -> bool:
    """True when a declaration is absent or explicitly unspecified."""
    if not raw or not raw.strip():
        return True
    return raw.strip().lower() in UNSPECIFIED_MARKERS


@dataclass(frozen=True)
class RuntimeVersion:
    """
    A resolved Ruby runtime version.

    Attributes:
        canonical: Canonical identifier, used to name the vendored directory
        source: Which resolution source produced the value
    """

    canonical: str
    source: VersionSource = VersionSource.LOCKFILE

    def __post_init__(self):
        if not self.canonical or not self.canonical.strip():
            raise ValueError("Runtime version cannot be empty")

    def __str__(self) -> str:
        return self.canonical

    @property
    def from_environment(self) -> bool:
        """Environment-sourced values are not trusted for cache decisions."""
        return self.source is VersionSource.ENVIRONMENT

    @property
    def engine(self) -> Optional[str]:
        match = _PARTS_RE.match(self.canonical)
        return match.group("engine") if match else None

    @property
    def suffix(self) -> Optional[str]:
        match = _PARTS_RE.match(self.canonical)
        return match.group("suffix") if match else None

    @property
    def number(self) -> str:
        """
        The bare version number, used to locate the prebuilt runtime.

        Example:
            >>> RuntimeVersion("ruby-3.0.2").number
            '3.0.2'
        """
        match = _PARTS_RE.match(self.canonical)
        if match:
            return match.group("number")
        return re.split(r"[- ]", self.canonical)[-1]

    @property
    def abi_version(self) -> str:
        """
        Gem ABI directory name: the version with its patch level zeroed.

        Example:
            >>> RuntimeVersion("3.2.4").abi_version
            '3.2.0'
        """
        try:
            release = Version(self.number).release
        except InvalidVersion:
            return re.sub(r"\d+$", "0", self.number)
        major = release[0]
        minor = release[1] if len(release) > 1 else 0
        return f"{major}.{minor}.0"
