"""
Post-install hooks for rubypack.

Hooks run after the dependency install and never fail the build.
"""

from rubypack.hooks.rake import HookOutcome, RakeTaskRunner

__all__ = ["HookOutcome", "RakeTaskRunner"]
