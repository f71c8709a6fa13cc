"""
Gemfile.lock parsing for rubypack.

The lock file is Bundler's textual format: unindented section headers
(GEM, GIT, PATH, PLATFORMS, DEPENDENCIES, RUBY VERSION, BUNDLED WITH)
followed by indented bodies. Source sections carry a `remote:` line and
a `specs:` block whose four-space entries are the locked gems.

Example:
    >>> lock = LockfileParser.parse_file(Path('/app/Gemfile.lock'))
    >>> lock.ruby_version
    'ruby 3.0.2p107'
    >>> lock.has_gem('rails')
    True
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

LOCKFILE_NAME = "Gemfile.lock"

SOURCE_SECTIONS = ("GEM", "GIT", "PATH", "PLUGIN SOURCE")

_SPEC_RE = re.compile(r"^    (?P<name>[^ (]+)(?: \((?P<version>[^)]*)\))?$")
_DEPENDENCY_RE = re.compile(r"^  (?P<name>[^ (!]+)")


class LockfileParseError(Exception):
    """Raised when a lock file cannot be read."""

    pass


@dataclass(frozen=True)
class LockedSpec:
    """
    A single locked gem.

    Attributes:
        name: Gem name
        version: Locked version (may carry a platform suffix)
        source: Source section type and remote, e.g. 'GEM https://rubygems.org/'
    """

    name: str
    version: str
    source: str


@dataclass(frozen=True)
class LockedDependencySet:
    """
    Parsed representation of an application's Gemfile.lock.

    Read-only once parsed.

    Attributes:
        ruby_version: Raw RUBY VERSION value, or None when absent
        specs: Locked gems in file order
        platforms: Declared platforms
        dependencies: Top-level dependency names
        bundled_with: Bundler version that wrote the file
    """

    ruby_version: Optional[str] = None
    specs: Tuple[LockedSpec, ...] = field(default_factory=tuple)
    platforms: Tuple[str, ...] = field(default_factory=tuple)
    dependencies: Tuple[str, ...] = field(default_factory=tuple)
    bundled_with: Optional[str] = None

    @property
    def gem_names(self) -> List[str]:
        return [spec.name for spec in self.specs]

    def has_gem(self, name: str) -> bool:
        """Check whether a gem is part of the locked bundle."""
        return any(spec.name == name for spec in self.specs)

    def find(self, name: str) -> Optional[LockedSpec]:
        for spec in self.specs:
            if spec.name == name:
                return spec
        return None


class LockfileParser:
    """Parse Gemfile.lock content into a LockedDependencySet."""

    @classmethod
    def parse_file(cls, path: Path) -> LockedDependencySet:
        """
        Read and parse a lock file.

        Raises:
            LockfileParseError: If the file cannot be read
        """
        try:
            content = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise LockfileParseError(f"Failed to read {path}: {e}") from e
        return cls.parse(content)

    @classmethod
    def parse(cls, content: str) -> LockedDependencySet:
        """Parse lock file text. Unknown sections are ignored."""
        section: Optional[str] = None
        remote: Optional[str] = None
        in_specs = False

        specs: List[LockedSpec] = []
        platforms: List[str] = []
        dependencies: List[str] = []
        ruby_version: Optional[str] = None
        bundled_with: Optional[str] = None

        for raw_line in content.splitlines():
            line = raw_line.rstrip()
            if not line:
                continue

            if not line.startswith(" "):
                section = line.strip()
                remote = None
                in_specs = False
                continue

            if section in SOURCE_SECTIONS:
                stripped = line.strip()
                if stripped.startswith("remote:"):
                    remote = stripped[len("remote:"):].strip()
                elif stripped == "specs:":
                    in_specs = True
                elif in_specs:
                    match = _SPEC_RE.match(line)
                    if match:
                        specs.append(
                            LockedSpec(
                                name=match.group("name"),
                                version=match.group("version") or "",
                                source=f"{section} {remote}" if remote else section,
                            )
                        )
            elif section == "PLATFORMS":
                platforms.append(line.strip())
            elif section == "DEPENDENCIES":
                match = _DEPENDENCY_RE.match(line)
                if match:
                    dependencies.append(match.group("name"))
            elif section == "RUBY VERSION":
                ruby_version = ruby_version or line.strip()
            elif section == "BUNDLED WITH":
                bundled_with = bundled_with or line.strip()

        logger.debug(
            f"Parsed lock file: {len(specs)} specs, ruby version {ruby_version!r}"
        )
        return LockedDependencySet(
            ruby_version=ruby_version,
            specs=tuple(specs),
            platforms=tuple(platforms),
            dependencies=tuple(dependencies),
            bundled_with=bundled_with,
        )
