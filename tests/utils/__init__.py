"""
Test utilities for rubypack testing.

This package provides custom assertions, test data builders and fakes
for the process and artifact-fetching boundaries.
"""

from .assertions import (
    assert_trees_equal,
    snapshot_tree,
)
from .builders import LockfileBuilder
from .mocks import (
    FakeExecutor,
    FakeFetcher,
    RecordedCall,
)

__all__ = [
    # Assertions
    "assert_trees_equal",
    "snapshot_tree",
    # Builders
    "LockfileBuilder",
    # Mocks
    "FakeExecutor",
    "FakeFetcher",
    "RecordedCall",
]
