"""
Tests for the end-to-end Ruby build pipeline with a fake executor.
"""

import logging
import os

import pytest

from rubypack.core.exceptions import (
    ConfigurationError,
    DependencyInstallError,
    MissingLockfileError,
    ProvisioningError,
)
from rubypack.core.process import ProcessExecutor
from rubypack.hooks.rake import ASSETS_PRECOMPILE
from rubypack.languagepack import BuildContext, RubyLanguagePack
from rubypack.packages.fetcher import HttpArtifactFetcher
from rubypack.runtime.version import VersionSource


@pytest.fixture
def make_pack(build_dir, cache_dir, make_config, executor, fetcher):
    """Factory for a pipeline wired to the fake executor and fetcher."""

    def _make(**overrides) -> RubyLanguagePack:
        context = BuildContext(
            build_dir=build_dir,
            cache_dir=cache_dir,
            config=make_config(**overrides),
            executor=executor,
            fetcher=fetcher,
        )
        return RubyLanguagePack(context)

    return _make


class TestBuildContext:
    """Test BuildContext.create()."""

    def test_create_from_environment(self, build_dir, cache_dir):
        environ = {"PATH": "/bin", "RUBY_VERSION": "3.2.0"}

        context = BuildContext.create(build_dir, cache_dir, environ)

        assert context.build_dir == build_dir.resolve()
        assert context.config.ruby_version == "3.2.0"
        assert context.config.platform_env["PATH"] == "/bin"
        assert isinstance(context.executor, ProcessExecutor)
        assert isinstance(context.fetcher, HttpArtifactFetcher)
        assert context.fetcher.vendor_url == context.config.vendor_url

    def test_create_reads_config_file(self, build_dir, cache_dir):
        (build_dir / "rubypack.yaml").write_text("bundle_without: test\n")

        context = BuildContext.create(build_dir, cache_dir, {})

        assert context.config.bundle_without == "test"


class TestRubyVersion:
    """Test version resolution through the pipeline."""

    def test_lockfile_version(self, make_pack, build_dir, lockfile_builder):
        lockfile_builder.with_ruby_version("ruby 3.0.2p107").write(build_dir)

        version = make_pack().ruby_version()

        assert version.canonical == "ruby-3.0.2"
        assert version.source is VersionSource.LOCKFILE

    def test_unreadable_lockfile(self, make_pack, build_dir):
        (build_dir / "Gemfile.lock").write_bytes(b"\xff\xfe\x00GEM")

        with pytest.raises(ConfigurationError, match="Failed to read"):
            make_pack().ruby_version()


class TestCompile:
    """Test compile()."""

    def test_environment_override_when_unspecified(
        self, make_pack, build_dir, lockfile_builder, make_runtime, executor
    ):
        """An unspecified lock file version falls back to RUBY_VERSION."""
        lockfile_builder.with_ruby_version("unspecified").write(build_dir)
        make_runtime("3.2.0")
        pack = make_pack(ruby_version="3.2.0")

        outcome = pack.compile()

        assert (build_dir / "vendor" / "3.2.0" / "bin" / "ruby").exists()
        assert (build_dir / "bin" / "ruby").is_symlink()
        assert pack.ruby_version().from_environment is True
        assert outcome.task == ASSETS_PRECOMPILE
        assert outcome.succeeded is True
        assert executor.calls_matching("bundle install")[0].argv[0] == str(
            build_dir / "vendor" / "3.2.0" / "bin" / "bundle"
        )

    def test_missing_lockfile(self, make_pack, executor, fetcher):
        with pytest.raises(MissingLockfileError):
            make_pack().compile()

        assert executor.calls == []
        assert fetcher.fetches == []

    def test_missing_runtime(self, make_pack, build_dir, lockfile_builder, executor):
        lockfile_builder.with_ruby_version("ruby 3.0.2p107").write(build_dir)

        with pytest.raises(ProvisioningError, match="3.0.2"):
            make_pack().compile()

        assert executor.calls == []

    def test_writes_profile(self, make_pack, build_dir, lockfile_builder, make_runtime):
        lockfile_builder.with_ruby_version("ruby 3.0.2p107").write(build_dir)
        make_runtime("3.0.2")

        make_pack().compile()

        script = (build_dir / ".profile.d" / "ruby.sh").read_text()
        assert "GEM_PATH=${GEM_PATH:-$HOME/vendor/bundle/ruby/3.0.0}" in script
        assert str(build_dir) not in script

    def test_removes_checked_in_vendor_bundle(
        self, make_pack, build_dir, lockfile_builder, make_runtime, caplog
    ):
        lockfile_builder.write(build_dir)
        make_runtime("3.0.2")
        stale = build_dir / "vendor" / "bundle" / "ruby" / "2.7.0" / "stale.rb"
        stale.parent.mkdir(parents=True)
        stale.write_text("")

        with caplog.at_level(logging.WARNING):
            make_pack(ruby_version="3.0.2").compile()

        assert "Removing `vendor/bundle`" in caplog.text
        assert not stale.exists()

    def test_removes_symlinked_vendor_bundle(self, make_pack, build_dir, tmp_path):
        """A checked-in link to outside the build is removed, its target kept."""
        outside = tmp_path / "shared-gems"
        outside.mkdir()
        (outside / "rack.rb").write_text("")
        (build_dir / "vendor").mkdir()
        link = build_dir / "vendor" / "bundle"
        os.symlink(outside, link)

        assert make_pack().remove_vendor_bundle() is True

        assert not link.is_symlink()
        assert (outside / "rack.rb").exists()

    def test_installs_node_for_execjs(
        self, make_pack, build_dir, lockfile_builder, make_runtime, fetcher
    ):
        lockfile_builder.with_gem("execjs", "2.8.1").write(build_dir)
        make_runtime("3.0.2")

        make_pack(ruby_version="3.0.2").compile()

        node_fetch = next(f for f in fetcher.fetches if f[0] == "node")
        assert node_fetch[1:3] == ("0.4.7", build_dir / "bin")

    def test_no_node_without_execjs(
        self, make_pack, build_dir, lockfile_builder, make_runtime, fetcher
    ):
        lockfile_builder.write(build_dir)
        make_runtime("3.0.2")

        make_pack(ruby_version="3.0.2").compile()

        assert "node" not in fetcher.fetched_names()

    def test_git_dir_hidden_and_restored_on_failure(
        self, make_pack, build_dir, lockfile_builder, make_runtime, executor
    ):
        """GIT_DIR is hidden from bundler and visible again after a failure."""
        lockfile_builder.write(build_dir)
        make_runtime("3.0.2")
        executor.on("bundle install", returncode=1, stderr="boom")
        pack = make_pack(
            ruby_version="3.0.2",
            platform_env={"PATH": "/usr/bin", "GIT_DIR": "/src/.git"},
        )

        with pytest.raises(DependencyInstallError, match="boom"):
            pack.compile()

        assert all("GIT_DIR" not in call.env for call in executor.calls)
        assert pack.build_env.get("GIT_DIR") == "/src/.git"
        assert pack.build_env.as_environ()["GIT_DIR"] == "/src/.git"

    def test_precompile_skipped_when_undefined(
        self, make_pack, build_dir, lockfile_builder, make_runtime, executor
    ):
        lockfile_builder.write(build_dir)
        make_runtime("3.0.2")
        executor.on("rake assets:precompile --dry-run", returncode=1)

        outcome = make_pack(ruby_version="3.0.2").compile()

        assert outcome.defined is False
        assert executor.calls_matching("rake")[-1].command.endswith("--dry-run")

    def test_precompile_failure_does_not_fail_build(
        self, make_pack, build_dir, lockfile_builder, make_runtime, executor
    ):
        lockfile_builder.write(build_dir)
        make_runtime("3.0.2")
        executor.on("rake assets:precompile --dry-run", returncode=0)
        executor.on("rake assets:precompile", returncode=1)

        outcome = make_pack(ruby_version="3.0.2").compile()

        assert outcome.defined is True
        assert outcome.succeeded is False
