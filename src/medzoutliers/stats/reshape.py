"""
Pivot long-form aggregate records into dense gene × sample matrices.

The reshape is an explicit keyed pass rather than a library pivot: genes are
assigned row positions (sorted), samples are assigned column positions (the
canonical header order), and each record fills exactly one cell. A coverage
mask tracks which cells were filled so gaps and duplicates are detected.
"""

from __future__ import annotations

import logging
from typing import Iterable
import numpy as np
import pandas as pd

from medzoutliers.core.errors import ReshapeError
from medzoutliers.stats.aggregation import (
    AggregateRecord,
    AggregateTable,
    GENE_COL,
    SAMPLE_COL,
    COUNT_COL,
    MEDIAN_COL,
)

logger = logging.getLogger(__name__)

__all__ = ['reshape_aggregates']


def _as_frame(aggregates: AggregateTable | Iterable[AggregateRecord]) -> pd.DataFrame:
    if isinstance(aggregates, AggregateTable):
        return aggregates.frame
    return pd.DataFrame(list(aggregates), columns=AggregateTable.COLUMNS)


def reshape_aggregates(
    aggregates: AggregateTable | Iterable[AggregateRecord],
    sample_ids=None,
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    Build the tissue-count and median-Z matrices from aggregate records.

    Args:
        aggregates: AggregateTable or iterable of AggregateRecords
        sample_ids: Canonical column order. Defaults to the AggregateTable's
            own sample order; required when passing bare records.

    Returns:
        (counts, zscores): DataFrames indexed by gene (sorted) with columns in
        canonical sample order. counts is int64; zscores is float with NaN
        for missing.

    Raises:
        ReshapeError: If a (gene, sample) pair is missing or duplicated, or a
            record names a sample outside the canonical list
        ValueError: If no sample order is available
    """
    if sample_ids is None:
        if not isinstance(aggregates, AggregateTable):
            raise ValueError("sample_ids is required when reshaping bare records")
        sample_ids = aggregates.sample_ids
    sample_ids = pd.Index(sample_ids)

    frame = _as_frame(aggregates)
    genes = pd.Index(sorted(frame[GENE_COL].unique()))

    n_genes, n_samples = len(genes), len(sample_ids)
    counts = np.zeros((n_genes, n_samples), dtype=np.int64)
    zscores = np.full((n_genes, n_samples), np.nan)
    filled = np.zeros((n_genes, n_samples), dtype=bool)

    rows = genes.get_indexer(frame[GENE_COL])
    cols = sample_ids.get_indexer(frame[SAMPLE_COL])

    unknown = cols < 0
    if unknown.any():
        examples = frame.loc[unknown, SAMPLE_COL].unique()[:5].tolist()
        raise ReshapeError(f"Aggregate records reference unknown samples: {examples}")

    cell_ids = rows * n_samples + cols
    duplicated = pd.Series(cell_ids).duplicated().to_numpy()
    if duplicated.any():
        first = frame.loc[duplicated].iloc[0]
        raise ReshapeError(
            f"Duplicate aggregate record for gene {first[GENE_COL]!r}, "
            f"sample {first[SAMPLE_COL]!r}"
        )

    counts[rows, cols] = frame[COUNT_COL].to_numpy(dtype=np.int64)
    zscores[rows, cols] = frame[MEDIAN_COL].to_numpy(dtype=float)
    filled[rows, cols] = True

    if not filled.all():
        gene_idx, sample_idx = np.nonzero(~filled)
        raise ReshapeError(
            f"{len(gene_idx)} gene-sample cells have no aggregate record "
            f"(first: gene {genes[gene_idx[0]]!r}, sample {sample_ids[sample_idx[0]]!r})"
        )

    logger.info(f"Reshaped {len(frame)} records into {n_genes} × {n_samples} matrices")

    counts_df = pd.DataFrame(counts, index=genes, columns=sample_ids)
    zscores_df = pd.DataFrame(zscores, index=genes, columns=sample_ids)
    counts_df.index.name = zscores_df.index.name = "GENE"
    return counts_df, zscores_df
