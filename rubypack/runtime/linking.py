"""
rubypack/runtime/linking.py

Binstub links for the vendored runtime.

Every executable of the vendored runtime gets a path-relative symlink in
the build's top-level bin/ directory, so `bin/ruby` and `bin/gem` keep
resolving after the build directory is moved into the final slug.
"""

import logging
import os
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)


class BinstubLinkManager:
    """Manages relative symlinks from a bin directory into a vendored tree."""

    def __init__(self, bin_dir: Path):
        """
        Initialize link manager.

        Args:
            bin_dir: Directory that receives the links
        """
        self.bin_dir = Path(bin_dir)

    def create_link(self, target_path: Path, force: bool = True) -> Path:
        """
        Create bin_dir/<name> pointing at target_path with a relative path.

        Args:
            target_path: Executable the link should resolve to
            force: Replace an existing entry of the same name

        Returns:
            Path of the created link

        Raises:
            FileNotFoundError: If target doesn't exist
            FileExistsError: If the link exists and force=False
        """
        if not target_path.exists():
            raise FileNotFoundError(f"Target does not exist: {target_path}")

        self.bin_dir.mkdir(parents=True, exist_ok=True)
        link_path = self.bin_dir / target_path.name

        if link_path.exists() or link_path.is_symlink():
            if not force:
                raise FileExistsError(f"Link path already exists: {link_path}")
            self.remove_link(link_path)

        relative_target = os.path.relpath(target_path, self.bin_dir)
        os.symlink(relative_target, link_path)
        logger.debug(f"Created symlink: {link_path} -> {relative_target}")
        return link_path

    def link_directory(self, source_bin: Path) -> List[Path]:
        """
        Link every entry of source_bin into bin_dir.

        Returns:
            Created link paths, sorted by name
        """
        links = []
        for executable in sorted(source_bin.iterdir()):
            if executable.is_dir() and not executable.is_symlink():
                continue
            links.append(self.create_link(executable))
        return links

    def remove_link(self, link_path: Path) -> bool:
        """
        Remove a symlink or file.

        Returns:
            True if something was removed
        """
        if not link_path.exists() and not link_path.is_symlink():
            return False
        if link_path.is_dir() and not link_path.is_symlink():
            raise IsADirectoryError(f"Refusing to replace directory: {link_path}")
        link_path.unlink()
        return True
