"""
Integration tests for HttpArtifactFetcher against the real vendor bucket.

Run with: pytest --integration
"""

import pytest

from rubypack.config.parser import DEFAULT_VENDOR_URL
from rubypack.packages.fetcher import HttpArtifactFetcher


@pytest.mark.integration
def test_fetch_libyaml(tmp_path):
    destination = tmp_path / "libyaml-0.1.4"

    HttpArtifactFetcher(DEFAULT_VENDOR_URL).fetch("libyaml", "0.1.4", destination)

    assert any(destination.rglob("yaml.h"))
