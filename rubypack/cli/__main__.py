"""
Entry point for running the rubypack CLI as a module.

Usage: python -m rubypack.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
