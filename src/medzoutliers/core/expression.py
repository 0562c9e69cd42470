"""
Core data structure for multi-tissue expression matrices.

TissueExpressionMatrix holds a flat expression table in which each row is one
(gene, tissue) measurement and each column is one individual. Rows for the same
gene repeat with a different tissue context, so gene identifiers are NOT unique
across rows.

Biological Context:
    Multi-tissue projects (e.g. GTEx) normalize expression per tissue and then
    stack the per-tissue tables:
    - Rows = (gene, tissue) pairs, gene-major
    - Columns = individuals (one column per donor)
    - Values = per-tissue Z-scored expression, missing where the donor did not
      contribute that tissue

    Cross-tissue summaries (tissue counts, median Z) are computed per gene over
    its block of tissue rows.

Engineering Design:
    - Immutable: selections return new instances
    - NumPy array for values, Pandas indices for identifiers
    - Constructor checks shape consistency
    - Sample order is canonical and shared by every derived matrix

Examples:
    >>> import numpy as np
    >>> import pandas as pd
    >>> from medzoutliers.core.expression import TissueExpressionMatrix
    >>>
    >>> data = np.array([[0.5, np.nan], [1.2, -0.3], [0.1, 2.2]])
    >>> matrix = TissueExpressionMatrix(
    ...     data=data,
    ...     gene_ids=pd.Index(["ENSG001", "ENSG001", "ENSG002"]),
    ...     row_labels=pd.Index(["Lung", "Liver", "Lung"]),
    ...     sample_ids=pd.Index(["GTEX-1", "GTEX-2"]),
    ... )
    >>> matrix.genes
    Index(['ENSG001', 'ENSG002'], dtype='object')
"""

from __future__ import annotations

from typing import Iterator
import numpy as np
import pandas as pd

__all__ = ['TissueExpressionMatrix']


class TissueExpressionMatrix:
    """
    Immutable container for a stacked (gene, tissue) × sample expression table.

    Attributes:
        data: Float matrix (rows × samples), NaN for missing measurements
        gene_ids: Gene identifier for each row (repeats across tissues)
        row_labels: Secondary key for each row (tissue / description column)
        sample_ids: Column identifiers in canonical order

    Shape Invariants:
        - data.shape[0] == len(gene_ids) == len(row_labels)
        - data.shape[1] == len(sample_ids)
        - sample_ids are unique
    """

    def __init__(
        self,
        data: np.ndarray,
        gene_ids: pd.Index,
        row_labels: pd.Index,
        sample_ids: pd.Index,
    ):
        """
        Initialize TissueExpressionMatrix with validation.

        Args:
            data: Expression matrix (rows × samples)
            gene_ids: Gene identifier per row
            row_labels: Secondary key per row
            sample_ids: Sample identifiers (unique, canonical order)

        Raises:
            ValueError: If shapes are inconsistent or sample IDs repeat
            TypeError: If data types are incorrect
        """
        if not isinstance(data, np.ndarray):
            raise TypeError(f"data must be np.ndarray, got {type(data)}")
        for name, index in (("gene_ids", gene_ids), ("row_labels", row_labels), ("sample_ids", sample_ids)):
            if not isinstance(index, pd.Index):
                raise TypeError(f"{name} must be pd.Index, got {type(index)}")

        if data.ndim != 2:
            raise ValueError(f"data must be 2D, got shape {data.shape}")

        n_rows, n_samples = data.shape

        if len(gene_ids) != n_rows:
            raise ValueError(
                f"gene_ids length ({len(gene_ids)}) must match data rows ({n_rows})"
            )
        if len(row_labels) != n_rows:
            raise ValueError(
                f"row_labels length ({len(row_labels)}) must match data rows ({n_rows})"
            )
        if len(sample_ids) != n_samples:
            raise ValueError(
                f"sample_ids length ({len(sample_ids)}) must match data columns ({n_samples})"
            )
        if sample_ids.has_duplicates:
            raise ValueError("sample_ids must be unique")

        self._data = data
        self._gene_ids = gene_ids
        self._row_labels = row_labels
        self._sample_ids = sample_ids

    @property
    def data(self) -> np.ndarray:
        """Expression values (rows × samples)."""
        return self._data

    @property
    def gene_ids(self) -> pd.Index:
        """Gene identifier of each row."""
        return self._gene_ids

    @property
    def row_labels(self) -> pd.Index:
        """Secondary key of each row."""
        return self._row_labels

    @property
    def sample_ids(self) -> pd.Index:
        """Canonical sample order."""
        return self._sample_ids

    @property
    def shape(self) -> tuple[int, int]:
        return self._data.shape

    @property
    def n_rows(self) -> int:
        return self._data.shape[0]

    @property
    def n_samples(self) -> int:
        return self._data.shape[1]

    @property
    def genes(self) -> pd.Index:
        """Unique genes, sorted."""
        return pd.Index(sorted(self._gene_ids.unique()))

    @property
    def n_genes(self) -> int:
        return len(self._gene_ids.unique())

    def gene_positions(self) -> dict[str, np.ndarray]:
        """
        Map each gene to the row positions of its tissue measurements.

        Genes are keyed in sorted order; rows need not be contiguous.
        """
        positions = pd.Series(np.arange(self.n_rows), index=self._gene_ids)
        grouped = positions.groupby(level=0, sort=True)
        return {gene: group.to_numpy() for gene, group in grouped}

    def iter_gene_blocks(self) -> Iterator[tuple[str, np.ndarray]]:
        """
        Yield (gene, tissues × samples block) pairs in sorted gene order.

        Examples:
            >>> for gene, block in matrix.iter_gene_blocks():
            ...     print(gene, block.shape)
        """
        for gene, rows in self.gene_positions().items():
            yield gene, self._data[rows, :]

    def select_rows(self, mask: np.ndarray | pd.Series) -> TissueExpressionMatrix:
        """
        Subset matrix by rows.

        Args:
            mask: Boolean array/Series, one entry per row

        Returns:
            New TissueExpressionMatrix with selected rows

        Raises:
            ValueError: If mask length doesn't match n_rows
        """
        if isinstance(mask, pd.Series):
            mask = mask.values
        mask = np.asarray(mask, dtype=bool)

        if len(mask) != self.n_rows:
            raise ValueError(
                f"mask length ({len(mask)}) must match n_rows ({self.n_rows})"
            )

        return TissueExpressionMatrix(
            data=self._data[mask, :],
            gene_ids=self._gene_ids[mask],
            row_labels=self._row_labels[mask],
            sample_ids=self._sample_ids,
        )

    def select_genes(self, genes) -> TissueExpressionMatrix:
        """Keep only rows whose gene is in ``genes``."""
        return self.select_rows(self._gene_ids.isin(list(genes)))

    def to_frame(self) -> pd.DataFrame:
        """Flat DataFrame view with ``Gene`` and secondary key leading columns."""
        df = pd.DataFrame(self._data, columns=self._sample_ids)
        df.insert(0, "Description", self._row_labels)
        df.insert(0, "Gene", self._gene_ids)
        return df

    def __repr__(self) -> str:
        if self.n_rows == 0 or self.n_samples == 0:
            return f"TissueExpressionMatrix({self.n_rows} rows × {self.n_samples} samples)"
        return (
            f"TissueExpressionMatrix({self.n_rows} rows × {self.n_samples} samples, "
            f"{self.n_genes} genes)\n"
            f"  Genes: {self.gene_ids[0]}...{self.gene_ids[-1]}\n"
            f"  Samples: {self.sample_ids[0]}...{self.sample_ids[-1]}"
        )

    def __str__(self) -> str:
        return self.__repr__()
