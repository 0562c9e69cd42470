"""
Cross-tissue statistics for the median-Z outlier pipeline.

    aggregate_by_gene: per-gene tissue counts and masked median Z
    reshape_aggregates: long records → dense count / Z matrices
"""

from medzoutliers.stats.aggregation import (
    DEFAULT_TISSUE_THRESHOLD,
    AggregateRecord,
    AggregateTable,
    GeneSummary,
    summarize_gene,
    mask_low_coverage,
    aggregate_by_gene,
)
from medzoutliers.stats.reshape import reshape_aggregates

__all__ = [
    'DEFAULT_TISSUE_THRESHOLD',
    'AggregateRecord',
    'AggregateTable',
    'GeneSummary',
    'summarize_gene',
    'mask_low_coverage',
    'aggregate_by_gene',
    'reshape_aggregates',
]
