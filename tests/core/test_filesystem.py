"""
Unit tests for filesystem helpers.
"""

import io
import os
import tarfile
import zipfile
from pathlib import Path

import pytest

from rubypack.core.filesystem import (
    ArchiveExtractionError,
    FilesystemError,
    InsecureArchiveError,
    UnsupportedArchiveFormat,
    atomic_write,
    extract_archive,
    recursive_copy,
    safe_rmtree,
    temporary_directory,
)


def make_tarball(path: Path, members: dict, mode: str = "w:gz") -> Path:
    """Write a tar archive of name -> bytes."""
    with tarfile.open(path, mode) as tar:
        for name, data in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755
            tar.addfile(info, io.BytesIO(data))
    return path


class TestExtractArchive:
    """Test extract_archive()."""

    def test_extracts_tgz(self, tmp_path):
        """.tgz archives extract as-is."""
        archive = make_tarball(
            tmp_path / "libyaml-0.1.4.tgz",
            {"include/yaml.h": b"/* yaml */", "lib/libyaml.a": b"!<arch>"},
        )
        extract_archive(archive, tmp_path / "out")

        assert (tmp_path / "out" / "include" / "yaml.h").read_bytes() == b"/* yaml */"
        assert (tmp_path / "out" / "lib" / "libyaml.a").exists()

    def test_strip_one_component(self, tmp_path):
        """strip_components=1 drops the archive's top directory."""
        archive = make_tarball(
            tmp_path / "bundler-2.0.2.tar.gz",
            {
                "bundler-2.0.2/bin/bundle": b"#!/usr/bin/env ruby",
                "bundler-2.0.2/lib/bundler.rb": b"module Bundler; end",
            },
        )
        destination = tmp_path / "bundler"
        extract_archive(archive, destination, strip_components=1)

        assert (destination / "bin" / "bundle").exists()
        assert (destination / "lib" / "bundler.rb").exists()
        assert sorted(p.name for p in destination.iterdir()) == ["bin", "lib"]

    def test_strip_two_components(self, tmp_path):
        """Deeper stripping removes each leading level."""
        archive = make_tarball(
            tmp_path / "node.tar.gz", {"pkg/node-0.4.7/bin/node": b"\x7fELF"}
        )
        destination = tmp_path / "out"
        extract_archive(archive, destination, strip_components=2)

        assert (destination / "bin" / "node").read_bytes() == b"\x7fELF"

    def test_strip_replaces_existing_entries(self, tmp_path):
        """Stripped entries replace what the destination already holds."""
        destination = tmp_path / "out"
        (destination / "bin").mkdir(parents=True)
        (destination / "bin" / "stale").write_text("old")
        archive = make_tarball(tmp_path / "a.tgz", {"top/bin/new": b"new"})

        extract_archive(archive, destination, strip_components=1)

        assert (destination / "bin" / "new").exists()
        assert not (destination / "bin" / "stale").exists()

    def test_extracts_zip(self, tmp_path):
        """.zip archives are supported."""
        archive = tmp_path / "a.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("bin/node", "node")
        extract_archive(archive, tmp_path / "out")

        assert (tmp_path / "out" / "bin" / "node").read_text() == "node"

    def test_blocks_path_traversal(self, tmp_path):
        """Members escaping the destination are rejected."""
        archive = make_tarball(tmp_path / "evil.tgz", {"../escape.txt": b"x"})

        with pytest.raises(InsecureArchiveError):
            extract_archive(archive, tmp_path / "out")
        assert not (tmp_path / "escape.txt").exists()

    def test_unsupported_format(self, tmp_path):
        """Unknown extensions raise UnsupportedArchiveFormat."""
        archive = tmp_path / "file.rar"
        archive.write_bytes(b"Rar!")

        with pytest.raises(UnsupportedArchiveFormat):
            extract_archive(archive, tmp_path / "out")

    def test_missing_archive(self, tmp_path):
        with pytest.raises(ArchiveExtractionError, match="not found"):
            extract_archive(tmp_path / "missing.tgz", tmp_path / "out")

    def test_corrupt_archive(self, tmp_path):
        """A corrupt archive is an ArchiveExtractionError."""
        archive = tmp_path / "broken.tar.gz"
        archive.write_bytes(b"not gzip at all")

        with pytest.raises(ArchiveExtractionError):
            extract_archive(archive, tmp_path / "out")

    def test_scratch_dir_removed_after_strip(self, tmp_path):
        """No .extract- directory is left behind."""
        archive = make_tarball(tmp_path / "a.tgz", {"top/file": b"x"})
        destination = tmp_path / "out"
        extract_archive(archive, destination, strip_components=1)

        assert [p.name for p in destination.iterdir()] == ["file"]


class TestAtomicWrite:
    """Test atomic_write()."""

    def test_writes_text_and_creates_parents(self, tmp_path):
        """Parent directories are created."""
        target = tmp_path / ".profile.d" / "ruby.sh"
        atomic_write(target, "export LANG=${LANG:-en_US.UTF-8}\n")

        assert target.read_text() == "export LANG=${LANG:-en_US.UTF-8}\n"

    def test_replaces_existing_file(self, tmp_path):
        target = tmp_path / "file"
        target.write_text("old")
        atomic_write(target, b"new")

        assert target.read_bytes() == b"new"
        assert [p.name for p in tmp_path.iterdir()] == ["file"]


class TestSafeRmtree:
    """Test safe_rmtree()."""

    def test_removes_tree(self, tmp_path):
        (tmp_path / "a" / "b").mkdir(parents=True)
        safe_rmtree(tmp_path / "a", require_prefix=tmp_path)
        assert not (tmp_path / "a").exists()

    def test_refuses_outside_prefix(self, tmp_path):
        """Paths outside require_prefix are refused."""
        (tmp_path / "keep").mkdir()
        with pytest.raises(ValueError, match="Refusing"):
            safe_rmtree(tmp_path / "keep", require_prefix=tmp_path / "build")
        assert (tmp_path / "keep").exists()

    def test_missing_path_is_noop(self, tmp_path):
        safe_rmtree(tmp_path / "missing")

    def test_symlink_is_unlinked_not_followed(self, tmp_path):
        """A linked directory's target survives."""
        target = tmp_path / "target"
        target.mkdir()
        (target / "keep").write_text("x")
        link = tmp_path / "link"
        os.symlink(target, link)

        safe_rmtree(link)

        assert not link.is_symlink()
        assert (target / "keep").exists()

    def test_symlink_to_outside_prefix(self, tmp_path):
        """A link inside the prefix is removed even if it points elsewhere."""
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "keep").write_text("x")
        build = tmp_path / "build"
        build.mkdir()
        link = build / "bundle"
        os.symlink(outside, link)

        safe_rmtree(link, require_prefix=build)

        assert not link.is_symlink()
        assert (outside / "keep").exists()

    def test_file_is_rejected(self, tmp_path):
        (tmp_path / "file").write_text("x")
        with pytest.raises(FilesystemError):
            safe_rmtree(tmp_path / "file")


class TestRecursiveCopy:
    """Test recursive_copy()."""

    def test_copies_files_and_preserves_symlinks(self, tmp_path):
        """Symlinks are copied as links with their original target."""
        source = tmp_path / "src"
        (source / "bin").mkdir(parents=True)
        (source / "bin" / "ruby").write_text("ruby")
        os.symlink("ruby", source / "bin" / "ruby3")
        (source / "lib").mkdir()
        os.symlink("../bin", source / "lib" / "bin-link")

        destination = tmp_path / "dst"
        recursive_copy(source, destination)

        assert (destination / "bin" / "ruby").read_text() == "ruby"
        assert os.readlink(destination / "bin" / "ruby3") == "ruby"
        assert os.readlink(destination / "lib" / "bin-link") == "../bin"

    def test_merges_into_existing_destination(self, tmp_path):
        """Copying twice gives the same tree."""
        source = tmp_path / "src"
        (source / "bin").mkdir(parents=True)
        (source / "bin" / "gem").write_text("gem")
        os.symlink("gem", source / "bin" / "gem-link")
        destination = tmp_path / "dst"

        recursive_copy(source, destination)
        recursive_copy(source, destination)

        assert sorted(p.name for p in (destination / "bin").iterdir()) == [
            "gem",
            "gem-link",
        ]

    def test_missing_source(self, tmp_path):
        with pytest.raises(FilesystemError, match="does not exist"):
            recursive_copy(tmp_path / "missing", tmp_path / "dst")


class TestTemporaryDirectory:
    """Test temporary_directory()."""

    def test_removed_on_exit(self):
        with temporary_directory(prefix="bundler-") as scratch:
            assert scratch.is_dir()
            assert scratch.name.startswith("bundler-")
        assert not scratch.exists()

    def test_removed_on_error(self):
        with pytest.raises(RuntimeError):
            with temporary_directory() as scratch:
                raise RuntimeError("boom")
        assert not scratch.exists()
