"""
Exception hierarchy for the median-Z outlier pipeline.

Every failure in the pipeline is fatal: there is no partial output to recover
and re-running from scratch is always safe. The classes below let the CLI
boundary map a failure to an exit status and a readable message.

    MedzOutlierError
    ├── DataFormatError   malformed or inconsistent input files
    ├── ReshapeError      aggregate table does not cover gene × sample exactly
    └── UsageError        wrong command-line arity or unusable configuration
"""

from __future__ import annotations

__all__ = [
    'MedzOutlierError',
    'DataFormatError',
    'ReshapeError',
    'UsageError',
]


class MedzOutlierError(Exception):
    """Base class for all pipeline errors."""
    pass


class DataFormatError(MedzOutlierError, ValueError):
    """Raised when an expression matrix, gene-type reference or ID list is malformed."""
    pass


class ReshapeError(MedzOutlierError, RuntimeError):
    """Raised when aggregate records cannot be pivoted into a complete dense matrix."""
    pass


class UsageError(MedzOutlierError):
    """Raised for command-line or configuration misuse."""
    pass
