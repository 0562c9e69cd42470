"""
Tab-delimited writers for pipeline outputs.

Serializes the in-memory results of the median-Z outlier pipeline:

    1. Summary matrices (tissue counts, median Z) - header ``GENE`` + samples
    2. Outlier pick tables - header ``GENE INDS DFS Z``
    3. Individual lists - one ID per line, no header
    4. Per-individual outlier counts - ``individual<TAB>count``, no header

Engineering Design:
    - Every file is written atomically (temp file + rename)
    - Parent directories are created as needed
    - Floats use 15 significant digits so values round-trip as text
    - Missing values use a configurable NA string (blank by default)

Examples:
    >>> from pathlib import Path
    >>> from medzoutliers.io.writers import write_summary_matrix, write_picks
    >>>
    >>> write_summary_matrix(counts, Path("data/outliers_medz_counts.txt"))
    >>> write_picks(result.thresholded, Path("data/outliers_medz_picked.txt"))
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable
import pandas as pd

from medzoutliers.utils.fileio import atomic_open, atomic_write_lines

logger = logging.getLogger(__name__)

__all__ = [
    'FLOAT_FORMAT',
    'PICK_COLUMNS',
    'write_summary_matrix',
    'write_picks',
    'write_id_list',
    'write_counts_per_individual',
]

FLOAT_FORMAT = "%.15g"
PICK_COLUMNS = ["GENE", "INDS", "DFS", "Z"]


def write_summary_matrix(matrix: pd.DataFrame, path: Path, na_rep: str = "") -> None:
    """
    Write a gene × sample summary matrix.

    Output format:
    ```
    GENE            GTEX-1117F  GTEX-111CU
    ENSG00000000003 12          9
    ```

    Args:
        matrix: DataFrame indexed by gene with one column per sample
        path: Output file path
        na_rep: String written for missing cells

    Raises:
        TypeError: If matrix is not a DataFrame
    """
    if not isinstance(matrix, pd.DataFrame):
        raise TypeError(f"matrix must be pd.DataFrame, got {type(matrix)}")

    path = Path(path)
    with atomic_open(path) as handle:
        matrix.to_csv(
            handle,
            sep="\t",
            index=True,
            index_label="GENE",
            na_rep=na_rep,
            float_format=FLOAT_FORMAT,
            lineterminator="\n",
        )
    logger.info(f"Wrote {matrix.shape[0]} × {matrix.shape[1]} matrix to {path}")


def write_picks(picks: pd.DataFrame, path: Path, na_rep: str = "") -> None:
    """
    Write an outlier pick table with header ``GENE INDS DFS Z``.

    Rows are written in the table's current order.

    Raises:
        ValueError: If any of the pick columns is absent
    """
    missing = [c for c in PICK_COLUMNS if c not in picks.columns]
    if missing:
        raise ValueError(f"Pick table is missing columns: {missing}")

    path = Path(path)
    with atomic_open(path) as handle:
        picks[PICK_COLUMNS].to_csv(
            handle,
            sep="\t",
            index=False,
            na_rep=na_rep,
            float_format=FLOAT_FORMAT,
            lineterminator="\n",
        )
    logger.info(f"Wrote {len(picks)} outlier picks to {path}")


def write_id_list(ids: Iterable[str], path: Path) -> None:
    """Write individual IDs one per line, no header."""
    ids = list(ids)
    atomic_write_lines(path, ids)
    logger.info(f"Wrote {len(ids)} individual IDs to {path}")


def write_counts_per_individual(counts: pd.Series, path: Path) -> None:
    """Write ``individual<TAB>count`` lines in the Series' order, no header."""
    atomic_write_lines(
        path,
        (f"{individual}\t{int(count)}" for individual, count in counts.items()),
    )
    logger.info(f"Wrote outlier counts for {len(counts)} individuals to {path}")
