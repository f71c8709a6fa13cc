"""
Build-to-build cache for rubypack.

The cache directory is a direct mirror of selected build-directory
paths. There is no eviction: store() replaces whatever the cache held
for a path, restore() copies it back into a fresh build directory.

Every mirror operation holds a file lock on the cache directory so two
builds that share a cache never interleave a copy.

Example:
    >>> cache = CacheManager(build_dir, cache_dir)
    >>> cache.restore("vendor/bundle")
    >>> # ... bundle install ...
    >>> cache.store("vendor/bundle")
"""

import logging
from contextlib import contextmanager
from pathlib import Path, PurePosixPath
from typing import Union

from filelock import FileLock, Timeout as LockTimeout

from rubypack.core.exceptions import CacheError
from rubypack.core.filesystem import FilesystemError, recursive_copy, safe_rmtree

logger = logging.getLogger(__name__)

LOCK_FILE_NAME = ".rubypack.lock"


class CacheManager:
    """
    Mirror relative build paths into a persistent cache directory.

    Attributes:
        build_dir: Current build directory
        cache_dir: Cache directory carried between builds
        lock_timeout: Seconds to wait for the cache lock
    """

    def __init__(self, build_dir: Path, cache_dir: Path, lock_timeout: float = 300):
        self.build_dir = Path(build_dir)
        self.cache_dir = Path(cache_dir)
        self.lock_timeout = lock_timeout

    def _entry(self, path: Union[str, Path]) -> PurePosixPath:
        entry = PurePosixPath(str(path).replace("\\", "/").rstrip("/"))
        if not entry.parts or entry.is_absolute() or ".." in entry.parts:
            raise ValueError(
                f"Cache path must be a relative path inside the build: {path}"
            )
        return entry

    @contextmanager
    def _locked(self):
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        lock = FileLock(self.cache_dir / LOCK_FILE_NAME, timeout=self.lock_timeout)
        try:
            with lock:
                yield
        except LockTimeout as e:
            raise CacheError(
                f"Could not acquire cache lock after {self.lock_timeout}s. "
                "Another build may be using this cache directory."
            ) from e

    def has_entry(self, path: Union[str, Path]) -> bool:
        return (self.cache_dir / self._entry(path)).exists()

    def restore(self, path: Union[str, Path]) -> bool:
        """
        Copy a cached path into the build directory.

        Args:
            path: Path relative to the build directory

        Returns:
            True if something was restored, False if the cache had no entry
        """
        entry = self._entry(path)
        source = self.cache_dir / entry
        target = self.build_dir / entry

        with self._locked():
            if not source.exists():
                logger.debug(f"No cache entry for {entry}")
                return False

            logger.debug(f"Restoring {entry} from cache")
            try:
                if source.is_dir():
                    recursive_copy(source, target)
                else:
                    target.parent.mkdir(parents=True, exist_ok=True)
                    target.write_bytes(source.read_bytes())
            except (OSError, FilesystemError) as e:
                raise CacheError(f"Failed to restore {entry} from cache: {e}") from e
        return True

    def store(self, path: Union[str, Path]) -> bool:
        """
        Replace the cache entry for a path with the build's current copy.

        Args:
            path: Path relative to the build directory

        Returns:
            True if the path existed in the build and was stored
        """
        entry = self._entry(path)
        source = self.build_dir / entry
        target = self.cache_dir / entry

        with self._locked():
            try:
                if target.is_dir() and not target.is_symlink():
                    safe_rmtree(target, require_prefix=self.cache_dir)
                elif target.exists() or target.is_symlink():
                    target.unlink()

                if not source.exists():
                    logger.debug(f"Nothing to cache for {entry}")
                    return False

                logger.debug(f"Storing {entry} in cache")
                if source.is_dir():
                    recursive_copy(source, target)
                else:
                    target.parent.mkdir(parents=True, exist_ok=True)
                    target.write_bytes(source.read_bytes())
            except (OSError, FilesystemError) as e:
                raise CacheError(f"Failed to store {entry} in cache: {e}") from e
        return True
