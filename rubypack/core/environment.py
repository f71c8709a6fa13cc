"""
Environment variable sets for rubypack.

An EnvironmentVariableSet is an ordered mapping of variable name to
value with two write policies:

- set_default: write only if the platform environment (or this set)
  does not already define the key
- set_override: always write, last writer wins

The same type backs the build-time environment (rendered to a child
process environment with as_environ()) and the persisted runtime
environment (rendered to a profile.d shell script with
to_profile_script()).
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


class WritePolicy(Enum):
    """How a variable was written into the set."""

    DEFAULT = "default"
    OVERRIDE = "override"


@dataclass(frozen=True)
class EnvironmentVariable:
    """A single entry of an EnvironmentVariableSet."""

    name: str
    value: str
    policy: WritePolicy


class EnvironmentVariableSet:
    """
    Ordered environment with default/override write semantics.

    Attributes:
        platform_env: Read-only snapshot of the environment the platform
            already provides; set_default never shadows it
    """

    def __init__(self, platform_env: Optional[Mapping[str, str]] = None):
        self._platform_env: Dict[str, str] = dict(platform_env or {})
        self._vars: Dict[str, EnvironmentVariable] = {}
        self._suppressed: Dict[str, int] = {}

    @property
    def platform_env(self) -> Mapping[str, str]:
        return dict(self._platform_env)

    def is_defined(self, key: str) -> bool:
        """True if the key is visible, either from the platform or this set."""
        if key in self._suppressed:
            return False
        return key in self._vars or key in self._platform_env

    def set_default(self, key: str, value: str) -> bool:
        """
        Write value unless the key is already defined.

        Returns:
            True if the value was written
        """
        if self.is_defined(key):
            logger.debug(f"Keeping existing {key}")
            return False
        self._vars[key] = EnvironmentVariable(key, value, WritePolicy.DEFAULT)
        return True

    def set_override(self, key: str, value: str) -> None:
        """Write value unconditionally."""
        self._vars.pop(key, None)
        self._vars[key] = EnvironmentVariable(key, value, WritePolicy.OVERRIDE)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        if key in self._suppressed:
            return default
        if key in self._vars:
            return self._vars[key].value
        return self._platform_env.get(key, default)

    def prepend_path(self, key: str, entry: str, separator: str = ":") -> None:
        """Override key with entry placed ahead of any current value."""
        current = self.get(key)
        self.set_override(key, f"{entry}{separator}{current}" if current else entry)

    def variables(self) -> Tuple[EnvironmentVariable, ...]:
        """Variables written into this set, in write order."""
        return tuple(self._vars.values())

    def __contains__(self, key: str) -> bool:
        return key in self._vars

    def __getitem__(self, key: str) -> str:
        return self._vars[key].value

    def __iter__(self) -> Iterator[str]:
        return iter(self._vars)

    def __len__(self) -> int:
        return len(self._vars)

    def as_environ(self, extra: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """
        Render the complete child-process environment.

        Platform values are overlaid by this set's values, then by extra.
        Suppressed keys are removed from the result.
        """
        environ = dict(self._platform_env)
        environ.update({name: var.value for name, var in self._vars.items()})
        if extra:
            environ.update(extra)
        for key in self._suppressed:
            environ.pop(key, None)
        return environ

    def to_profile_script(self) -> str:
        """
        Render the set as a shell script for .profile.d.

        Defaults use ${KEY:-value} so a value set on the running dyno
        wins; overrides are exported as-is and may reference other
        variables such as $HOME and $PATH.
        """
        lines = []
        for var in self._vars.values():
            if var.policy is WritePolicy.DEFAULT:
                lines.append(f"export {var.name}=${{{var.name}:-{var.value}}}")
            else:
                lines.append(f'export {var.name}="{_escape_double_quoted(var.value)}"')
        return "\n".join(lines) + "\n" if lines else ""

    @contextmanager
    def suppressed(self, key: str):
        """
        Hide key for the duration of the block.

        The previous visibility is restored on every exit path, including
        when the block raises.

        Example:
            >>> with env.suppressed('GIT_DIR'):
            ...     installer.install(...)
        """
        self._suppressed[key] = self._suppressed.get(key, 0) + 1
        logger.debug(f"Suppressing {key}")
        try:
            yield self
        finally:
            remaining = self._suppressed[key] - 1
            if remaining:
                self._suppressed[key] = remaining
            else:
                del self._suppressed[key]
            logger.debug(f"Restored {key}")


def _escape_double_quoted(value: str) -> str:
    # $ is left alone so $HOME and $PATH expand at runtime
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("`", "\\`")
