"""
medzoutliers - Median-Z Multi-Tissue Expression Outlier Calling

Aggregates per-tissue expression Z-scores into a cross-tissue median Z per
gene and individual, picks one outlier individual per gene, and removes
individuals with an excessive outlier burden before downstream rare-variant
analysis.
"""

__version__ = "0.1.0"

from medzoutliers.core.expression import TissueExpressionMatrix
from medzoutliers.core.errors import DataFormatError, ReshapeError, UsageError
from medzoutliers.stats.aggregation import aggregate_by_gene
from medzoutliers.stats.reshape import reshape_aggregates
from medzoutliers.quality.outliers import MedianZOutlierCaller, call_outliers

__all__ = [
    "TissueExpressionMatrix",
    "DataFormatError",
    "ReshapeError",
    "UsageError",
    "aggregate_by_gene",
    "reshape_aggregates",
    "MedianZOutlierCaller",
    "call_outliers",
]
