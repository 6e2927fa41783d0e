"""
EMC Utilities
=============

Classes:
- DependencyGraph: Reverse-dependency index with incremental cycle detection
"""

from .dependency_graph import DependencyGraph

__all__ = [
    "DependencyGraph",
]
