"""
Ruby runtime provisioning.

Prebuilt runtimes live on the build stack under
`<ruby_install_root>/<version number>`. Provisioning copies the matching
tree to `vendor/<canonical version>` inside the build directory and links
each of its executables into the top-level `bin/` directory.
"""

import logging
from pathlib import Path
from typing import List

from rubypack.core.exceptions import ProvisioningError
from rubypack.core.filesystem import FilesystemError, recursive_copy
from rubypack.runtime.linking import BinstubLinkManager
from rubypack.runtime.version import RuntimeVersion

logger = logging.getLogger(__name__)

BIN_DIR = "bin"
VENDOR_DIR = "vendor"


def vendored_ruby_path(version: RuntimeVersion) -> str:
    """Build-relative path of the vendored runtime, e.g. 'vendor/ruby-3.0.2'."""
    return f"{VENDOR_DIR}/{version.canonical}"


def slug_vendor_bundler(version: RuntimeVersion) -> str:
    """Build-relative gem install path, e.g. 'vendor/bundle/ruby/3.0.0'."""
    return f"{VENDOR_DIR}/bundle/ruby/{version.abi_version}"


class RuntimeProvisioner:
    """
    Install a prebuilt Ruby into the build directory.

    Attributes:
        build_dir: Application build directory
        install_root: Directory holding prebuilt runtimes by version number
    """

    def __init__(self, build_dir: Path, install_root: Path):
        self.build_dir = Path(build_dir)
        self.install_root = Path(install_root)

    def source_path(self, version: RuntimeVersion) -> Path:
        return self.install_root / version.number

    def vendor_path(self, version: RuntimeVersion) -> Path:
        return self.build_dir / vendored_ruby_path(version)

    def provision(self, version: RuntimeVersion) -> List[Path]:
        """
        Copy the runtime for version and create bin/ links to it.

        Running this twice with the same version leaves the same tree.

        Returns:
            Created binstub links

        Raises:
            ProvisioningError: If no prebuilt runtime exists for version
        """
        source = self.source_path(version)
        if not source.is_dir():
            raise ProvisioningError(version.canonical, source)

        target = self.vendor_path(version)
        logger.debug(f"Copying {source} to {target}")
        try:
            recursive_copy(source, target)
        except FilesystemError as e:
            raise ProvisioningError(version.canonical, source) from e

        ruby_bin = target / BIN_DIR
        if not ruby_bin.is_dir():
            raise ProvisioningError(version.canonical, source)

        linker = BinstubLinkManager(self.build_dir / BIN_DIR)
        links = linker.link_directory(ruby_bin)

        logger.info(f"-----> Using Ruby version: {version}")
        return links
