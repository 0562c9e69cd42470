"""
Core data structures and error types for the median-Z outlier pipeline.

1. TissueExpressionMatrix: stacked (gene, tissue) × individual expression table
2. Error taxonomy: DataFormatError, ReshapeError, UsageError

Examples:
    >>> from medzoutliers.core import TissueExpressionMatrix, DataFormatError
"""

from medzoutliers.core.expression import TissueExpressionMatrix
from medzoutliers.core.errors import (
    MedzOutlierError,
    DataFormatError,
    ReshapeError,
    UsageError,
)

__all__ = [
    'TissueExpressionMatrix',
    'MedzOutlierError',
    'DataFormatError',
    'ReshapeError',
    'UsageError',
]
