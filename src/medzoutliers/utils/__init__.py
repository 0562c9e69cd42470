"""Utility modules for pipeline output handling."""

from medzoutliers.utils.fileio import (
    atomic_open,
    atomic_write_lines,
)

__all__ = [
    'atomic_open',
    'atomic_write_lines',
]
