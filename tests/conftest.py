"""
Pytest configuration and shared fixtures for rubypack tests.
"""

import os
import stat
from pathlib import Path

import pytest

from rubypack.config.parser import BuildConfig
from tests.utils.builders import LockfileBuilder
from tests.utils.mocks import FakeExecutor, FakeFetcher


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests that require network access",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --integration flag is provided."""
    if not config.getoption("--integration"):
        skip_integration = pytest.mark.skip(reason="need --integration option to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (requires --integration)",
    )
    config.addinivalue_line("markers", "unit: marks tests as unit tests")


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def build_dir(tmp_path: Path) -> Path:
    """Application build directory with a Gemfile."""
    path = tmp_path / "build"
    path.mkdir()
    (path / "Gemfile").write_text('source "https://rubygems.org"\ngem "rack"\n')
    return path


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    """Empty build cache directory."""
    path = tmp_path / "cache"
    path.mkdir()
    return path


@pytest.fixture
def ruby_root(tmp_path: Path) -> Path:
    """Stack directory holding prebuilt runtimes by version number."""
    path = tmp_path / "opt" / "ruby"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def make_runtime(ruby_root: Path):
    """Factory creating a fake prebuilt runtime under ruby_root."""

    def _make(number: str) -> Path:
        runtime = ruby_root / number
        (runtime / "bin").mkdir(parents=True)
        (runtime / "lib").mkdir()
        for name in ("ruby", "gem", "bundle", "irb"):
            executable = runtime / "bin" / name
            executable.write_text(f"#!/bin/sh\necho {name} {number}\n")
            executable.chmod(executable.stat().st_mode | stat.S_IEXEC)
        (runtime / "lib" / "libruby.so").write_bytes(b"\x7fELF")
        return runtime

    return _make


@pytest.fixture
def make_config(ruby_root: Path):
    """Factory for BuildConfig values rooted at the fake stack."""

    def _make(**overrides) -> BuildConfig:
        settings = {
            "ruby_install_root": ruby_root,
            "vendor_url": "https://vendor.example.com",
            "platform_env": {"PATH": "/usr/bin:/bin", "HOME": "/app"},
        }
        settings.update(overrides)
        return BuildConfig(**settings)

    return _make


@pytest.fixture
def lockfile_builder() -> LockfileBuilder:
    return LockfileBuilder()


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def clean_environ(monkeypatch):
    """Strip variables that change resolution or config from os.environ."""
    for key in (
        "RUBY_VERSION",
        "BUNDLE_WITHOUT",
        "RUBYPACK_VENDOR_URL",
        "RUBYPACK_RUBY_ROOT",
        "GIT_DIR",
    ):
        monkeypatch.delenv(key, raising=False)
    return os.environ
