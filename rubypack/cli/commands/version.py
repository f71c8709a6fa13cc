"""
Version command implementation.

Prints the Ruby version a compile of BUILD_DIR would install.
"""

import logging
import os

from rubypack.cli.utils import require_directory
from rubypack.core.filesystem import temporary_directory
from rubypack.languagepack import BuildContext, RubyLanguagePack

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the version command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    build_dir = require_directory(args.build_dir, "build directory")

    with temporary_directory(prefix="rubypack-cache-") as cache_dir:
        context = BuildContext.create(
            build_dir, cache_dir, os.environ, config_file=args.config
        )
        version = RubyLanguagePack(context).ruby_version()

    print(version)
    logger.debug(f"Resolved from {version.source.value}")
    return 0
