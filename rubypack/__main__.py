"""
Entry point for running the rubypack CLI as a module.

Usage: python -m rubypack [command] [options]
"""

from rubypack.cli.parser import main

if __name__ == "__main__":
    main()
