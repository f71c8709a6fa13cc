"""
Vendored artifact fetching.

The pipeline needs a handful of prebuilt archives (the bundler bootstrap
used to probe the Ruby version, libyaml for native extension builds, a
node binary for execjs). ArtifactFetcher hides how they are obtained:
fetch a name and version, get back an extracted local directory.

Classes:
    ArtifactFetcher: Abstract fetch-by-name-and-version capability
    HttpArtifactFetcher: Downloads `<vendor_url>/<name>-<version>.<ext>`
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

import requests

from rubypack.core.download import ChecksumError, DownloadError, download_file
from rubypack.core.exceptions import ArtifactFetchError
from rubypack.core.filesystem import (
    ArchiveExtractionError,
    extract_archive,
    temporary_directory,
)

logger = logging.getLogger(__name__)

# Archive extension published for each artifact
ARCHIVE_EXTENSIONS: Dict[str, str] = {
    "bundler": "tar.gz",
    "libyaml": "tgz",
    "node": "tgz",
}


class ArtifactFetcher(ABC):
    """
    Capability to materialize a vendored artifact as a local directory.

    Example:
        fetcher.fetch("libyaml", "0.1.4", tmp / "libyaml-0.1.4")
    """

    @abstractmethod
    def fetch(
        self,
        name: str,
        version: str,
        destination: Path,
        strip_components: int = 0,
    ) -> Path:
        """
        Fetch and extract an artifact.

        Args:
            name: Artifact name (e.g., 'bundler', 'libyaml')
            version: Artifact version
            destination: Directory to extract into (created if missing)
            strip_components: Leading path components to drop

        Returns:
            The destination directory

        Raises:
            ArtifactFetchError: If the artifact cannot be obtained
        """
        pass


class HttpArtifactFetcher(ArtifactFetcher):
    """
    Fetch artifacts from the buildpack vendor URL.

    Attributes:
        vendor_url: Base URL artifacts are published under
        checksums: Optional 'name-version' -> SHA256 map
    """

    def __init__(
        self,
        vendor_url: str,
        checksums: Optional[Dict[str, str]] = None,
        session: Optional[requests.Session] = None,
    ):
        self.vendor_url = vendor_url.rstrip("/")
        self.checksums = dict(checksums or {})
        self.session = session

    def artifact_url(self, name: str, version: str) -> str:
        extension = ARCHIVE_EXTENSIONS.get(name, "tgz")
        return f"{self.vendor_url}/{name}-{version}.{extension}"

    def fetch(
        self,
        name: str,
        version: str,
        destination: Path,
        strip_components: int = 0,
    ) -> Path:
        url = self.artifact_url(name, version)
        destination = Path(destination)
        logger.debug(f"Fetching {name} {version} from {url}")

        with temporary_directory(prefix=f"{name}-") as scratch:
            archive = scratch / url.rsplit("/", 1)[-1]
            try:
                download_file(
                    url,
                    archive,
                    expected_sha256=self.checksums.get(f"{name}-{version}"),
                    session=self.session,
                )
                extract_archive(archive, destination, strip_components=strip_components)
            except (DownloadError, ChecksumError, ArchiveExtractionError) as e:
                raise ArtifactFetchError(
                    f"Failed to fetch {name} {version} from {url}: {e}"
                ) from e

        return destination
