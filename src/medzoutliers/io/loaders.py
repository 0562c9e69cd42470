"""
Loaders for multi-tissue expression matrices and their reference lists.

Provides robust loading of the stacked (gene, tissue) × individual expression
table into a TissueExpressionMatrix, plus the small reference files the
pipeline consumes: the gene-type annotation and single-column individual lists.

Biological Context:
    The normalized expression table has one row per (gene, tissue):
    ```
    Gene            Description   GTEX-1117F  GTEX-111CU  ...
    ENSG00000000003 Lung          0.53        NA          ...
    ENSG00000000003 Liver         -1.21       0.08        ...
    ```
    - Gene = Ensembl gene ID (repeats once per tissue)
    - Description = secondary key (tissue context)
    - Remaining columns = individuals, values are per-tissue Z-scores

    The gene-type reference (GENCODE) assigns a biotype to each gene; only
    protein_coding and lincRNA genes are analysed.

Engineering Design:
    - Field counts are validated line by line before parsing so that ragged
      rows are reported, not silently padded with NaN
    - Clear DataFormatError messages naming the offending line/cell
    - Missing values (NA, NaN, blank) load as NaN; infinities are rejected

Examples:
    >>> from pathlib import Path
    >>> from medzoutliers.io.loaders import load_expression_matrix, load_gene_types
    >>>
    >>> matrix = load_expression_matrix(Path("normalized_expression.txt"))
    >>> gene_types = load_gene_types(Path("gencode_genetypes.txt"))
    >>> matrix = filter_by_gene_type(matrix, gene_types)
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Iterable
import warnings
import numpy as np
import pandas as pd

from medzoutliers.core.errors import DataFormatError
from medzoutliers.core.expression import TissueExpressionMatrix

logger = logging.getLogger(__name__)

__all__ = [
    'DEFAULT_GENE_TYPES',
    'load_expression_matrix',
    'load_gene_types',
    'filter_by_gene_type',
    'load_id_list',
]

DEFAULT_GENE_TYPES = ("protein_coding", "lincRNA")

GENE_COLUMN = "Gene"
N_KEY_COLUMNS = 2

# Missing-value markers for measurement cells only; key columns are read verbatim
MISSING_VALUES = ["", "NA", "N/A", "n/a", "NaN", "nan", "-NaN", "-nan", "NULL", "null", "<NA>", "#N/A"]


def _check_path(path: Path) -> Path:
    if not isinstance(path, Path):
        path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    if not path.is_file():
        raise ValueError(f"Path is not a file: {path}")
    return path


def _validate_field_counts(path: Path, delimiter: str = "\t") -> list[str]:
    """
    Scan a delimited file and return its header after checking every row width.

    Raises:
        DataFormatError: If the file is empty or any row's field count differs
            from the header's
    """
    with open(path, newline="") as handle:
        reader = csv.reader(handle, delimiter=delimiter, quoting=csv.QUOTE_NONE)
        header = next(reader, None)
        if header is None or not any(field.strip() for field in header):
            raise DataFormatError(f"Expression matrix has no header line: {path}")

        n_fields = len(header)
        for line_no, row in enumerate(reader, start=2):
            if not row:
                continue
            if len(row) != n_fields:
                raise DataFormatError(
                    f"{path}: line {line_no} has {len(row)} fields, "
                    f"header has {n_fields}"
                )
    return header


def _validate_header(header: list[str], path: Path) -> None:
    if len(header) <= N_KEY_COLUMNS:
        raise DataFormatError(
            f"{path}: header must contain '{GENE_COLUMN}', a secondary key column "
            f"and at least one sample column, got {header}"
        )
    if header[0] != GENE_COLUMN:
        raise DataFormatError(
            f"{path}: first header column must be '{GENE_COLUMN}', got '{header[0]}'"
        )

    samples = header[N_KEY_COLUMNS:]
    blank = [i for i, s in enumerate(samples, start=N_KEY_COLUMNS + 1) if not s.strip()]
    if blank:
        raise DataFormatError(f"{path}: blank sample ID in header column(s) {blank}")

    duplicated = pd.Index(samples)[pd.Index(samples).duplicated()].unique().tolist()
    if duplicated:
        raise DataFormatError(f"{path}: duplicate sample IDs in header: {duplicated[:5]}")


def _non_numeric_examples(df: pd.DataFrame, limit: int = 5) -> list[str]:
    """Describe up to ``limit`` cells that fail numeric conversion."""
    examples = []
    coerced = df.apply(pd.to_numeric, errors="coerce")
    bad = coerced.isna() & df.notna()
    rows, cols = np.nonzero(bad.to_numpy())
    for i, j in zip(rows[:limit], cols[:limit]):
        examples.append(f"row {i} ({df.index[i]!r}), col {df.columns[j]!r}: {df.iat[i, j]!r}")
    return examples


def load_expression_matrix(path: Path) -> TissueExpressionMatrix:
    """
    Load a tab-delimited multi-tissue expression matrix.

    Expected format:
    - Header: ``Gene``, a secondary key (e.g. ``Description``), then one
      column per individual
    - One row per (gene, tissue) measurement
    - Numerical values; ``NA``/``NaN``/blank denote missing measurements

    Args:
        path: Path to the expression file

    Returns:
        TissueExpressionMatrix with samples in header order

    Raises:
        FileNotFoundError: If path does not exist
        DataFormatError: If the header is missing/malformed, row widths are
            inconsistent, or cells are non-numeric or infinite

    Examples:
        >>> matrix = load_expression_matrix(Path("gtex_normalized_expression.txt"))
        >>> print(f"Loaded {matrix.n_genes} genes, {matrix.n_samples} individuals")
    """
    path = _check_path(path)

    header = _validate_field_counts(path)
    _validate_header(header, path)

    try:
        df = pd.read_csv(
            path,
            sep="\t",
            dtype={header[0]: str, header[1]: str},
            quoting=csv.QUOTE_NONE,
            keep_default_na=False,
            na_values={sample: MISSING_VALUES for sample in header[N_KEY_COLUMNS:]},
        )
    except pd.errors.EmptyDataError as e:
        raise DataFormatError(f"Expression matrix is empty: {path}") from e
    except pd.errors.ParserError as e:
        raise DataFormatError(f"Failed to parse expression matrix {path}: {e}") from e

    no_gene = df[GENE_COLUMN].fillna("").str.strip() == ""
    if no_gene.any():
        raise DataFormatError(f"{path}: {int(no_gene.sum())} row(s) have no gene identifier")

    values = df.iloc[:, N_KEY_COLUMNS:]
    try:
        data = values.to_numpy(dtype=float)
    except (ValueError, TypeError) as e:
        examples = _non_numeric_examples(values.set_axis(df[GENE_COLUMN], axis=0))
        raise DataFormatError(
            f"{path}: expression matrix contains non-numeric values:\n" +
            "\n".join(f"  - {x}" for x in examples)
        ) from e

    if np.isinf(data).any():
        n_inf = int(np.isinf(data).sum())
        raise DataFormatError(f"{path}: expression matrix contains {n_inf} infinite values")

    row_labels = df.iloc[:, 1].fillna("")

    matrix = TissueExpressionMatrix(
        data=data,
        gene_ids=pd.Index(df[GENE_COLUMN].astype(str)),
        row_labels=pd.Index(row_labels.astype(str)),
        sample_ids=pd.Index(header[N_KEY_COLUMNS:]),
    )

    n_missing = int(np.isnan(data).sum())
    logger.info(
        f"Loaded {matrix.n_rows} rows ({matrix.n_genes} genes) × "
        f"{matrix.n_samples} samples from {path.name} "
        f"({100 * n_missing / max(data.size, 1):.1f}% missing)"
    )
    return matrix


def load_gene_types(path: Path) -> pd.Series:
    """
    Load a two-column gene-type reference (no header): gene ID, type label.

    Returns:
        Series indexed by gene ID with the type label as value. A gene listed
        more than once keeps every row.

    Raises:
        FileNotFoundError: If path does not exist
        DataFormatError: If the file is empty or has fewer than two columns
    """
    path = _check_path(path)

    try:
        df = pd.read_csv(path, sep="\t", header=None, dtype=str, quoting=csv.QUOTE_NONE)
    except pd.errors.EmptyDataError as e:
        raise DataFormatError(f"Gene-type reference is empty: {path}") from e
    except pd.errors.ParserError as e:
        raise DataFormatError(f"Failed to parse gene-type reference {path}: {e}") from e

    if df.shape[1] < 2:
        raise DataFormatError(
            f"{path}: gene-type reference needs two columns (gene ID, type), "
            f"got {df.shape[1]}"
        )

    gene_types = pd.Series(df.iloc[:, 1].to_numpy(), index=pd.Index(df.iloc[:, 0]), name="gene_type")

    if gene_types.index.duplicated().any():
        n_duplicates = int(gene_types.index.duplicated().sum())
        warnings.warn(
            f"Found {n_duplicates} duplicate gene IDs in gene-type reference. "
            "All rows are kept; a gene passes if any of its types is allowed.",
            UserWarning
        )

    return gene_types


def filter_by_gene_type(
    matrix: TissueExpressionMatrix,
    gene_types: pd.Series,
    keep: Iterable[str] = DEFAULT_GENE_TYPES,
) -> TissueExpressionMatrix:
    """
    Keep only rows whose gene carries one of the allowed type labels.

    Args:
        matrix: Expression matrix to filter
        gene_types: Series mapping gene ID → type label
        keep: Allowed type labels (default: protein_coding, lincRNA)

    Returns:
        Filtered TissueExpressionMatrix (sample axis unchanged)
    """
    keep = set(keep)
    allowed = gene_types.index[gene_types.isin(keep)].unique()
    filtered = matrix.select_genes(allowed)

    logger.info(
        f"Gene-type filter {sorted(keep)}: kept {filtered.n_genes}/{matrix.n_genes} genes "
        f"({filtered.n_rows}/{matrix.n_rows} rows)"
    )
    if filtered.n_rows == 0:
        warnings.warn(
            "No genes remain after gene-type filtering; outputs will be empty.",
            UserWarning
        )
    return filtered


def load_id_list(path: Path) -> list[str]:
    """
    Load a single-column list of individual IDs (no header).

    Only the first tab-separated column is used; blank lines are skipped.
    Order and repeats are preserved.
    """
    path = _check_path(path)

    ids = []
    with open(path) as handle:
        for line in handle:
            value = line.rstrip("\r\n").split("\t", 1)[0].strip()
            if value:
                ids.append(value)
    return ids
