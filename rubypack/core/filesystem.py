"""
File system utilities for rubypack.

This module provides the file operations the build pipeline relies on:
- Archive extraction (tar.gz, tar.bz2, tar.xz, zip) with path validation
- Tree mirroring that preserves symlinks (vendored runtimes, binstubs)
- Safe file operations (atomic writes, guarded deletion)
- Scratch directories with automatic cleanup
"""

import os
import shutil
import sys
import tarfile
import tempfile
import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Union


# ============================================================================
# Error Handling
# ============================================================================


class FilesystemError(Exception):
    """Base exception for filesystem operations."""

    pass


class ArchiveExtractionError(FilesystemError):
    """Failed to extract an archive."""

    pass


class UnsupportedArchiveFormat(ArchiveExtractionError):
    """Archive format is not supported."""

    pass


class InsecureArchiveError(ArchiveExtractionError):
    """Archive contains insecure paths (directory traversal attempt)."""

    pass


# ============================================================================
# Archive Extraction
# ============================================================================


def _validate_archive_path(path: str, destination: Path) -> None:
    """
    Validate that an archive member path is safe to extract.

    Args:
        path: Member path from archive
        destination: Extraction destination

    Raises:
        InsecureArchiveError: If path attempts directory traversal
    """
    member_path = (destination / path).resolve()

    if not member_path.is_relative_to(destination.resolve()):
        raise InsecureArchiveError(
            f"Archive member '{path}' attempts directory traversal. "
            "This is a security risk and extraction has been blocked."
        )


def extract_archive(
    archive_path: Union[str, Path],
    destination: Union[str, Path],
    strip_components: int = 0,
) -> None:
    """
    Extract an archive to a destination directory.

    Supported formats:
    - .zip
    - .tar.gz, .tgz
    - .tar.bz2, .tbz2
    - .tar.xz

    Args:
        archive_path: Path to the archive file
        destination: Directory to extract to
        strip_components: Leading path components to drop from every
            member, like `tar --strip-components`

    Raises:
        UnsupportedArchiveFormat: If archive format is not recognized
        ArchiveExtractionError: If extraction fails
        InsecureArchiveError: If archive contains malicious paths

    Example:
        >>> extract_archive('bundler-2.0.2.tar.gz', '/tmp/bundler', strip_components=1)
    """
    archive_path = Path(archive_path)
    destination = Path(destination)

    if not archive_path.exists():
        raise ArchiveExtractionError(f"Archive not found: {archive_path}")

    destination.mkdir(parents=True, exist_ok=True)
    archive_name = archive_path.name.lower()

    if strip_components:
        target = Path(tempfile.mkdtemp(prefix=".extract-", dir=destination))
    else:
        target = destination

    try:
        if archive_name.endswith(".zip"):
            _extract_zip(archive_path, target)
        elif archive_name.endswith((".tar.gz", ".tgz")):
            _extract_tar(archive_path, target, "r:gz")
        elif archive_name.endswith((".tar.bz2", ".tbz2")):
            _extract_tar(archive_path, target, "r:bz2")
        elif archive_name.endswith(".tar.xz"):
            _extract_tar(archive_path, target, "r:xz")
        else:
            raise UnsupportedArchiveFormat(
                f"Unsupported archive format: {archive_path.name}. "
                "Supported: .zip, .tar.gz, .tgz, .tar.bz2, .tar.xz"
            )
        if strip_components:
            _strip_into(target, destination, strip_components)
    except (InsecureArchiveError, UnsupportedArchiveFormat):
        raise
    except Exception as e:
        raise ArchiveExtractionError(f"Failed to extract {archive_path}: {e}") from e
    finally:
        if strip_components and target.exists():
            shutil.rmtree(target)


def _extract_zip(archive_path: Path, destination: Path) -> None:
    """Extract a ZIP archive."""
    with zipfile.ZipFile(archive_path, "r") as zf:
        for member in zf.namelist():
            _validate_archive_path(member, destination)
        zf.extractall(destination)


def _extract_tar(archive_path: Path, destination: Path, mode: str) -> None:
    """Extract a tar archive with specified compression."""
    with tarfile.open(archive_path, mode) as tar:
        for member in tar.getmembers():
            _validate_archive_path(member.name, destination)

        # Members are already validated above for interpreters without filters
        if sys.version_info >= (3, 12):
            tar.extractall(destination, filter="tar")
        else:
            tar.extractall(destination)


def _strip_into(extracted: Path, destination: Path, depth: int) -> None:
    """Move entries below the first `depth` path components into destination."""
    level = [extracted]
    for _ in range(depth + 1):
        level = [
            child
            for parent in level
            if parent.is_dir() and not parent.is_symlink()
            for child in parent.iterdir()
        ]
    for entry in level:
        _move_replacing(entry, destination / entry.name)


def _move_replacing(source: Path, target: Path) -> None:
    if target.is_dir() and not target.is_symlink():
        shutil.rmtree(target)
    elif target.exists() or target.is_symlink():
        target.unlink()
    shutil.move(str(source), str(target))


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    If the write fails, the original file (if any) remains unchanged.

    Args:
        file_path: Path to write to
        content: Content to write (string or bytes)
        encoding: Text encoding (used only for string content)
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        temp_path.replace(file_path)

    except Exception:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError:
            pass
        raise


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Safely remove a directory tree with safeguards.

    Args:
        path: Directory to remove; a symlink is unlinked, never followed
        require_prefix: If specified, path must be under this directory

    Raises:
        ValueError: If path is not under require_prefix
        FilesystemError: If deletion fails

    Example:
        >>> safe_rmtree('/tmp/build/vendor/bundle', require_prefix='/tmp/build')
    """
    path = Path(path)

    if require_prefix is not None:
        require_prefix = Path(require_prefix).resolve()
        # A link is checked by where it lives, not where it points
        if path.is_symlink():
            location = path.parent.resolve() / path.name
        else:
            location = path.resolve()
        if not location.is_relative_to(require_prefix):
            raise ValueError(
                f"Refusing to delete '{path}': "
                f"not under required prefix '{require_prefix}'"
            )

    if path.is_symlink():
        path.unlink()
        return

    if not path.exists():
        return

    if not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")

    try:
        shutil.rmtree(path)
    except OSError as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}") from e


def recursive_copy(source: Union[str, Path], destination: Union[str, Path]) -> None:
    """
    Merge a directory tree into destination.

    Symlinks are recreated as symlinks with the same target text, so
    relative links inside a runtime stay valid after the copy. Existing
    entries in destination are replaced, others are left alone.

    Raises:
        FilesystemError: If source is missing or not a directory

    Example:
        >>> recursive_copy('/opt/ruby/3.0.2', '/tmp/build/vendor/ruby-3.0.2')
    """
    source = Path(source)
    destination = Path(destination)

    if not source.is_dir():
        reason = "is not a directory" if source.exists() else "does not exist"
        raise FilesystemError(f"Source {reason}: {source}")

    destination.mkdir(parents=True, exist_ok=True)

    for root, dirs, files in os.walk(source):
        root_path = Path(root)
        target_root = destination / root_path.relative_to(source)

        # os.walk lists linked directories in dirs; copy them as links
        linked = [name for name in dirs if (root_path / name).is_symlink()]
        dirs[:] = [name for name in dirs if name not in linked]

        for name in dirs:
            (target_root / name).mkdir(parents=True, exist_ok=True)

        for name in files + linked:
            item = root_path / name
            target = target_root / name
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            elif target.exists() or target.is_symlink():
                target.unlink()

            if item.is_symlink():
                os.symlink(os.readlink(item), target)
            else:
                shutil.copy2(item, target)



# ============================================================================
# Temporary File/Directory Management
# ============================================================================


@contextmanager
def temporary_directory(prefix: str = "rubypack_"):
    """
    Scratch directory removed when the block exits, even on error.

    Yields:
        Path to the directory
    """
    temp_dir = Path(tempfile.mkdtemp(prefix=prefix))
    try:
        yield temp_dir
    finally:
        safe_rmtree(temp_dir)



__all__ = [
    "FilesystemError",
    "ArchiveExtractionError",
    "UnsupportedArchiveFormat",
    "InsecureArchiveError",
    "extract_archive",
    "atomic_write",
    "safe_rmtree",
    "recursive_copy",
    "temporary_directory",
]
