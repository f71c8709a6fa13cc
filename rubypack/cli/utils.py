"""
Shared utilities for CLI commands.
"""

import logging
import sys
from pathlib import Path

from rubypack.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def print_error(message: str):
    """Print a possibly multi-line error message to stderr."""
    for line in message.rstrip().splitlines():
        print(f" !     {line}", file=sys.stderr)


def require_directory(path: Path, description: str = "directory") -> Path:
    """
    Resolve a directory argument that must already exist.

    Raises:
        ConfigurationError: If path is missing or not a directory
    """
    path = Path(path).resolve()
    if not path.is_dir():
        raise ConfigurationError(f"{description.capitalize()} does not exist: {path}")
    return path


def ensure_directory(path: Path, description: str = "directory") -> Path:
    """
    Ensure directory exists, create if needed.

    Raises:
        ConfigurationError: If directory cannot be created
    """
    path = Path(path).resolve()
    try:
        path.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Ensured {description} exists: {path}")
    except OSError as e:
        raise ConfigurationError(
            f"Could not create {description} at {path}: {e}"
        ) from e
    return path
