"""
Per-gene cross-tissue aggregation of Z-scores.

For each gene, the tissue × individual block of per-tissue Z-scores is reduced
to two per-individual statistics:

    n_tissues(g, s) = number of tissues with a non-missing value
    median_z(g, s)  = median of the non-missing values (missing if none)

After every gene has been reduced, median_z is masked (set to NaN) wherever
fewer than ``tissue_threshold`` tissues contributed. Masking is a separate pass
over the finished table, never interleaved with the per-gene reduction.

Parallelism:
    Each gene is an independent unit of work. With ``n_jobs != 1`` genes are
    dispatched through a joblib worker pool. Worker results are keyed by gene
    and assembled in sorted gene order, so the table is identical for any
    worker count or completion order.

Examples:
    >>> from medzoutliers.stats.aggregation import aggregate_by_gene
    >>> table = aggregate_by_gene(matrix, tissue_threshold=5, n_jobs=4)
    >>> table.frame.head()
          GENE     SAMPLE  N_TISSUES  MEDIAN_Z
    0  ENSG001  GTEX-1117F         12     0.412
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, NamedTuple
import numpy as np
import pandas as pd
from numpy.typing import NDArray

from medzoutliers.core.expression import TissueExpressionMatrix

logger = logging.getLogger(__name__)

__all__ = [
    'DEFAULT_TISSUE_THRESHOLD',
    'AggregateRecord',
    'AggregateTable',
    'GeneSummary',
    'summarize_gene',
    'mask_low_coverage',
    'aggregate_by_gene',
]

DEFAULT_TISSUE_THRESHOLD = 5

GENE_COL = "GENE"
SAMPLE_COL = "SAMPLE"
COUNT_COL = "N_TISSUES"
MEDIAN_COL = "MEDIAN_Z"


class AggregateRecord(NamedTuple):
    """Cross-tissue summary for one (gene, sample) pair."""
    gene: str
    sample: str
    tissue_count: int
    median_z: float


@dataclass(frozen=True)
class GeneSummary:
    """Per-sample tissue counts and median Z for a single gene."""
    gene: str
    tissue_counts: NDArray[np.int64]
    median_z: NDArray[np.float64]


class AggregateTable:
    """
    Long-form table of AggregateRecords (one row per gene × sample).

    Columns: GENE, SAMPLE, N_TISSUES (int), MEDIAN_Z (float, NaN = missing).
    Row order carries no meaning; consumers join on (GENE, SAMPLE).
    """

    COLUMNS = [GENE_COL, SAMPLE_COL, COUNT_COL, MEDIAN_COL]

    def __init__(self, frame: pd.DataFrame, sample_ids: pd.Index):
        missing = [c for c in self.COLUMNS if c not in frame.columns]
        if missing:
            raise ValueError(f"Aggregate frame is missing columns: {missing}")
        self._frame = frame[self.COLUMNS].reset_index(drop=True)
        self._sample_ids = pd.Index(sample_ids)

    @property
    def frame(self) -> pd.DataFrame:
        return self._frame

    @property
    def sample_ids(self) -> pd.Index:
        """Canonical sample order of the matrix the table was built from."""
        return self._sample_ids

    @property
    def genes(self) -> pd.Index:
        return pd.Index(sorted(self._frame[GENE_COL].unique()))

    def __len__(self) -> int:
        return len(self._frame)

    def records(self) -> Iterator[AggregateRecord]:
        for gene, sample, count, median in self._frame.itertuples(index=False, name=None):
            yield AggregateRecord(gene, sample, int(count), float(median))

    @classmethod
    def from_records(cls, records: Iterable[AggregateRecord], sample_ids) -> AggregateTable:
        frame = pd.DataFrame(list(records), columns=cls.COLUMNS)
        frame[COUNT_COL] = frame[COUNT_COL].astype(np.int64)
        frame[MEDIAN_COL] = frame[MEDIAN_COL].astype(float)
        return cls(frame, sample_ids)

    @classmethod
    def from_summaries(cls, summaries: dict[str, GeneSummary], sample_ids) -> AggregateTable:
        """Assemble a long table from per-gene summaries, in sorted gene order."""
        sample_ids = pd.Index(sample_ids)
        genes = sorted(summaries)
        n_samples = len(sample_ids)

        if genes:
            counts = np.concatenate([summaries[g].tissue_counts for g in genes])
            medians = np.concatenate([summaries[g].median_z for g in genes])
        else:
            counts = np.empty(0, dtype=np.int64)
            medians = np.empty(0, dtype=float)

        frame = pd.DataFrame({
            GENE_COL: np.repeat(np.asarray(genes, dtype=object), n_samples),
            SAMPLE_COL: np.tile(np.asarray(sample_ids, dtype=object), len(genes)),
            COUNT_COL: counts.astype(np.int64),
            MEDIAN_COL: medians.astype(float),
        })
        return cls(frame, sample_ids)

    def __repr__(self) -> str:
        return (
            f"AggregateTable({len(self.genes)} genes × {len(self._sample_ids)} samples, "
            f"{len(self)} records)"
        )


def summarize_gene(values: NDArray[np.float64]) -> tuple[NDArray[np.int64], NDArray[np.float64]]:
    """
    Reduce one gene's tissues × samples block.

    Args:
        values: Array of shape (n_tissues, n_samples), NaN for missing

    Returns:
        (tissue_counts, median_z), each of length n_samples. median_z is NaN
        for samples with no observed tissue.

    Examples:
        >>> block = np.array([[1.0], [2.0], [3.0], [-6.0], [2.0]])
        >>> summarize_gene(block)
        (array([5]), array([2.]))
    """
    values = np.asarray(values, dtype=float)
    if values.ndim != 2:
        raise ValueError(f"values must be 2D (tissues × samples), got shape {values.shape}")

    observed = ~np.isnan(values)
    counts = observed.sum(axis=0).astype(np.int64)

    medians = np.full(values.shape[1], np.nan)
    has_data = counts > 0
    if has_data.any():
        medians[has_data] = np.nanmedian(values[:, has_data], axis=0)

    return counts, medians


def _summarize_block(gene: str, block: NDArray[np.float64]) -> GeneSummary:
    counts, medians = summarize_gene(block)
    return GeneSummary(gene=gene, tissue_counts=counts, median_z=medians)


def mask_low_coverage(table: AggregateTable, tissue_threshold: int = DEFAULT_TISSUE_THRESHOLD) -> AggregateTable:
    """
    Return a copy of ``table`` with MEDIAN_Z set to NaN where N_TISSUES < threshold.

    Tissue counts are left untouched.
    """
    frame = table.frame.copy()
    low = frame[COUNT_COL] < tissue_threshold
    frame.loc[low, MEDIAN_COL] = np.nan
    logger.info(
        f"Masked median Z for {int(low.sum())}/{len(frame)} gene-sample pairs "
        f"with < {tissue_threshold} tissues"
    )
    return AggregateTable(frame, table.sample_ids)


def aggregate_by_gene(
    matrix: TissueExpressionMatrix,
    tissue_threshold: int = DEFAULT_TISSUE_THRESHOLD,
    n_jobs: int = 1,
) -> AggregateTable:
    """
    Compute tissue counts and masked median Z for every (gene, sample).

    Args:
        matrix: Gene-type-filtered expression matrix
        tissue_threshold: Minimum observed tissues for median_z to be kept
        n_jobs: Worker pool size for per-gene reduction (1 = sequential,
            -1 = all CPUs)

    Returns:
        AggregateTable covering every gene × sample of ``matrix``

    Raises:
        ValueError: If tissue_threshold is negative or n_jobs is 0
    """
    if tissue_threshold < 0:
        raise ValueError(f"tissue_threshold must be >= 0, got {tissue_threshold}")
    if n_jobs == 0:
        raise ValueError("n_jobs must be non-zero")

    blocks = list(matrix.iter_gene_blocks())
    logger.info(
        f"Aggregating {len(blocks)} genes × {matrix.n_samples} samples "
        f"(n_jobs={n_jobs})"
    )

    if n_jobs == 1 or len(blocks) <= 1:
        results = [_summarize_block(gene, block) for gene, block in blocks]
    else:
        from joblib import Parallel, delayed

        results = Parallel(n_jobs=n_jobs)(
            delayed(_summarize_block)(gene, block) for gene, block in blocks
        )

    summaries = {summary.gene: summary for summary in results}
    table = AggregateTable.from_summaries(summaries, matrix.sample_ids)

    return mask_low_coverage(table, tissue_threshold)
