"""
Compile command implementation.

Runs the full build pipeline against BUILD_DIR, using CACHE_DIR as the
build-to-build cache.
"""

import logging
import os

from rubypack.cli.utils import ensure_directory, require_directory
from rubypack.languagepack import BuildContext, RubyLanguagePack

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the compile command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)

    Raises:
        RubypackError: If a build stage fails
    """
    build_dir = require_directory(args.build_dir, "build directory")
    cache_dir = ensure_directory(args.cache_dir, "cache directory")

    context = BuildContext.create(
        build_dir, cache_dir, os.environ, config_file=args.config
    )
    outcome = RubyLanguagePack(context).compile()
    logger.debug(f"Post-install hook: {outcome}")
    return 0
