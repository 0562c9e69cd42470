"""
Median-Z outlier calling with a per-individual burden filter.

Given the dense gene × individual median-Z matrix (and the matching tissue-count
matrix), the caller:

    1. Picks ONE outlier per gene: the individual with the largest |Z|.
       Ties go to the first individual in canonical column order; genes whose
       Z row is entirely missing contribute no pick.
    2. Thresholds the picks at |Z| >= z_threshold and sorts them by
       descending |Z| (stable, so ties keep gene order).
    3. Counts thresholded picks per individual and excludes individuals with
       max_outliers or more. Excluded individuals are dropped from the
       thresholded table.
    4. Drops the same individuals from the full, unthresholded pick table and
       only then sorts it by descending |Z|.

Steps 2-3 (sort, count, filter) and step 4 (filter, sort) are kept as separate
code paths; they are not interchangeable in general.

Biological Context:
    Individuals carrying an outlier for a very large number of genes usually
    reflect sample-level technical problems (RNA quality, ischemic time)
    rather than rare regulatory variation, so they are removed before
    outliers are associated with rare variants.

Examples:
    >>> from medzoutliers.quality.outliers import MedianZOutlierCaller
    >>>
    >>> caller = MedianZOutlierCaller(z_threshold=2.0, max_outliers=50)
    >>> result = caller.call(zscores, counts)
    >>> result.thresholded.head()
    >>> print(f"{result.n_excluded} individuals excluded")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional
import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

__all__ = [
    'DEFAULT_Z_THRESHOLD',
    'DEFAULT_MAX_OUTLIERS',
    'OutlierCallResult',
    'MedianZOutlierCaller',
    'pick_outliers',
    'sort_by_magnitude',
    'threshold_picks',
    'count_outliers_per_individual',
    'passing_individuals',
    'filter_to_individuals',
    'call_outliers',
]

DEFAULT_Z_THRESHOLD = 2.0
DEFAULT_MAX_OUTLIERS = 50

PICK_COLUMNS = ["GENE", "INDS", "DFS", "Z"]


def _empty_picks() -> pd.DataFrame:
    return pd.DataFrame({
        "GENE": pd.Series(dtype=object),
        "INDS": pd.Series(dtype=object),
        "DFS": pd.Series(dtype=np.int64),
        "Z": pd.Series(dtype=float),
    })


def _aligned_values(
    zscores: pd.DataFrame,
    counts: pd.DataFrame,
    sample_ids: Optional[Iterable[str]],
) -> tuple[np.ndarray, np.ndarray, pd.Index]:
    """Return Z and count arrays with columns in canonical order."""
    if sample_ids is None:
        sample_ids = zscores.columns
    sample_ids = pd.Index(sample_ids)

    if not zscores.index.equals(counts.index):
        raise ValueError("zscores and counts must share the same gene index")

    for name, frame in (("zscores", zscores), ("counts", counts)):
        missing = sample_ids.difference(frame.columns)
        if len(missing) > 0:
            raise ValueError(f"{name} is missing sample columns: {list(missing[:5])}")

    z = zscores.reindex(columns=sample_ids).to_numpy(dtype=float)
    n = counts.reindex(columns=sample_ids).to_numpy()
    return z, n, sample_ids


def pick_outliers(
    zscores: pd.DataFrame,
    counts: pd.DataFrame,
    sample_ids: Optional[Iterable[str]] = None,
) -> pd.DataFrame:
    """
    Pick the single most extreme individual per gene.

    For each gene row, the individual maximizing |Z| is selected. The reduction
    is explicit: missing cells are excluded, the row maximum of |Z| is found,
    and the FIRST column attaining it is taken.

    Args:
        zscores: Gene × individual median-Z matrix (NaN = missing)
        counts: Gene × individual tissue-count matrix, same gene index
        sample_ids: Canonical individual order (default: zscores columns)

    Returns:
        DataFrame with columns GENE, INDS, DFS, Z in input gene order, one row
        per gene that has at least one non-missing Z

    Raises:
        ValueError: If the two matrices are not aligned

    Examples:
        >>> picks = pick_outliers(zscores, counts)
        >>> picks.iloc[0]
        GENE    ENSG00000000003
        INDS         GTEX-1117F
        DFS                  12
        Z                  3.41
    """
    z, n, sample_ids = _aligned_values(zscores, counts, sample_ids)

    if z.size == 0:
        return _empty_picks()

    observed = ~np.isnan(z)
    has_pick = observed.any(axis=1)

    magnitude = np.where(observed, np.abs(np.where(observed, z, 0.0)), -np.inf)
    row_max = magnitude.max(axis=1)
    at_max = observed & (magnitude == row_max[:, None])
    # argmax over a boolean row returns the first True position
    first_idx = at_max.argmax(axis=1)

    rows = np.flatnonzero(has_pick)
    cols = first_idx[rows]

    picks = pd.DataFrame({
        "GENE": np.asarray(zscores.index[rows], dtype=object),
        "INDS": np.asarray(sample_ids[cols], dtype=object),
        "DFS": n[rows, cols].astype(np.int64),
        "Z": z[rows, cols],
    })

    n_dropped = len(has_pick) - len(rows)
    if n_dropped:
        logger.info(f"{n_dropped} genes have no non-missing median Z and yield no pick")
    return picks


def sort_by_magnitude(picks: pd.DataFrame) -> pd.DataFrame:
    """Stable sort by descending |Z|; ties keep their current relative order."""
    order = np.argsort(-np.abs(picks["Z"].to_numpy(dtype=float)), kind="stable")
    return picks.iloc[order].reset_index(drop=True)


def threshold_picks(picks: pd.DataFrame, z_threshold: float = DEFAULT_Z_THRESHOLD) -> pd.DataFrame:
    """Keep picks with |Z| >= z_threshold, sorted by descending |Z|."""
    kept = picks[np.abs(picks["Z"].to_numpy(dtype=float)) >= z_threshold]
    return sort_by_magnitude(kept)


def count_outliers_per_individual(picks: pd.DataFrame, sample_ids: Iterable[str]) -> pd.Series:
    """
    Count picks per individual over the full canonical individual list.

    Individuals without picks get 0. The Series follows canonical order.
    """
    sample_ids = pd.Index(sample_ids)
    counts = picks["INDS"].value_counts().reindex(sample_ids, fill_value=0).astype(np.int64)
    counts.name = "n_outliers"
    counts.index.name = "INDS"
    return counts


def passing_individuals(counts: pd.Series, max_outliers: int = DEFAULT_MAX_OUTLIERS) -> List[str]:
    """Individuals whose outlier count is strictly below ``max_outliers``, in count order."""
    return counts.index[counts < max_outliers].tolist()


def filter_to_individuals(picks: pd.DataFrame, individuals: Iterable[str]) -> pd.DataFrame:
    """Drop pick rows whose individual is not in ``individuals`` (order kept)."""
    keep = picks["INDS"].isin(set(individuals))
    return picks[keep].reset_index(drop=True)


@dataclass
class OutlierCallResult:
    """Outputs of median-Z outlier calling with full provenance."""
    # picks: one row per gene, input gene order, before thresholding or filtering
    picks: pd.DataFrame
    thresholded: pd.DataFrame
    unthresholded: pd.DataFrame
    counts_per_individual: pd.Series
    passing_individuals: List[str]
    excluded_individuals: List[str]
    parameters: Dict[str, Any] = field(default_factory=dict)

    @property
    def n_picks(self) -> int:
        return len(self.picks)

    @property
    def n_outliers(self) -> int:
        return len(self.thresholded)

    @property
    def n_excluded(self) -> int:
        return len(self.excluded_individuals)

    @property
    def n_passing(self) -> int:
        return len(self.passing_individuals)


class MedianZOutlierCaller:
    """
    Single-outlier-per-gene caller with an individual burden filter.

    Args:
        z_threshold: Minimum |median Z| for a pick to count as an outlier
        max_outliers: Individuals with this many thresholded outliers or more
            are excluded

    Examples:
        >>> caller = MedianZOutlierCaller()
        >>> result = caller.call(zscores, counts)
        >>> result.passing_individuals[:3]
        ['GTEX-1117F', 'GTEX-111CU', 'GTEX-111FC']
    """

    def __init__(
        self,
        z_threshold: float = DEFAULT_Z_THRESHOLD,
        max_outliers: int = DEFAULT_MAX_OUTLIERS,
    ):
        if z_threshold < 0:
            raise ValueError(f"z_threshold must be non-negative, got {z_threshold}")
        if max_outliers <= 0:
            raise ValueError(f"max_outliers must be positive, got {max_outliers}")

        self.z_threshold = z_threshold
        self.max_outliers = max_outliers
        self.params = {"z_threshold": z_threshold, "max_outliers": max_outliers}

    def call(
        self,
        zscores: pd.DataFrame,
        counts: pd.DataFrame,
        sample_ids: Optional[Iterable[str]] = None,
    ) -> OutlierCallResult:
        if sample_ids is None:
            sample_ids = zscores.columns
        sample_ids = pd.Index(sample_ids)

        picks = pick_outliers(zscores, counts, sample_ids)

        # Sort, count, then filter
        thresholded = threshold_picks(picks, self.z_threshold)
        per_individual = count_outliers_per_individual(thresholded, sample_ids)
        passing = passing_individuals(per_individual, self.max_outliers)
        excluded = per_individual.index[per_individual >= self.max_outliers].tolist()
        thresholded = filter_to_individuals(thresholded, passing)

        # Filter, then sort
        unthresholded = sort_by_magnitude(filter_to_individuals(picks, passing))

        logger.info(
            f"Picked {len(picks)} genes; {int(per_individual.sum())} with |Z| >= "
            f"{self.z_threshold}; excluded {len(excluded)} individuals with >= "
            f"{self.max_outliers} outliers; {len(thresholded)} outliers remain"
        )
        if excluded:
            logger.info(f"Excluded individuals: {excluded}")

        return OutlierCallResult(
            picks=picks,
            thresholded=thresholded,
            unthresholded=unthresholded,
            counts_per_individual=per_individual,
            passing_individuals=passing,
            excluded_individuals=excluded,
            parameters=dict(self.params),
        )

    def __repr__(self) -> str:
        return f"MedianZOutlierCaller(z_threshold={self.z_threshold}, max_outliers={self.max_outliers})"


def call_outliers(
    zscores: pd.DataFrame,
    counts: pd.DataFrame,
    sample_ids: Optional[Iterable[str]] = None,
    z_threshold: float = DEFAULT_Z_THRESHOLD,
    max_outliers: int = DEFAULT_MAX_OUTLIERS,
) -> OutlierCallResult:
    """Functional wrapper around :class:`MedianZOutlierCaller`."""
    caller = MedianZOutlierCaller(z_threshold=z_threshold, max_outliers=max_outliers)
    return caller.call(zscores, counts, sample_ids)
