"""
Pytest configuration and shared fixtures.

This module provides synthetic multi-tissue expression generators and a
complete on-disk data directory laid out the way the CLI expects.
"""

import tempfile
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from medzoutliers.core.expression import TissueExpressionMatrix


@pytest.fixture
def temp_dir():
    """Create temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def generate_synthetic_tissue_matrix(
    n_genes: int,
    n_tissues: int,
    n_samples: int,
    missing_fraction: float = 0.3,
    seed: int = 42,
) -> TissueExpressionMatrix:
    """
    Generate a stacked (gene, tissue) × sample Z-score matrix.

    Args:
        n_genes: Number of genes
        n_tissues: Tissue rows per gene
        n_samples: Number of individuals
        missing_fraction: Fraction of cells set to NaN (donor lacks tissue)
        seed: Random seed for reproducibility

    Design:
        - Standard-normal Z-scores per tissue
        - Missingness at random, so tissue counts vary around the threshold
        - Rows are interleaved by tissue (not gene-contiguous) to exercise
          grouping
    """
    rng = np.random.RandomState(seed)

    data = rng.randn(n_genes * n_tissues, n_samples)
    data[rng.rand(*data.shape) < missing_fraction] = np.nan

    genes = [f"ENSG{g:011d}" for g in range(n_genes)]
    tissues = [f"Tissue{t}" for t in range(n_tissues)]
    gene_ids = [genes[g] for t in range(n_tissues) for g in range(n_genes)]
    row_labels = [tissues[t] for t in range(n_tissues) for g in range(n_genes)]

    return TissueExpressionMatrix(
        data=data,
        gene_ids=pd.Index(gene_ids),
        row_labels=pd.Index(row_labels),
        sample_ids=pd.Index([f"GTEX-{i:04d}" for i in range(n_samples)]),
    )


@pytest.fixture
def synthetic_matrix():
    """Medium synthetic matrix (40 genes, 8 tissues, 12 individuals)."""
    return generate_synthetic_tissue_matrix(n_genes=40, n_tissues=8, n_samples=12)


def write_lines(path: Path, lines) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("".join(f"{line}\n" for line in lines))
    return path


# Hand-computed scenario used by the CLI tests:
#   G1 (protein_coding): A median 2 over 5 tissues, B 0, C 0.5    -> pick A, Z=2
#   G2 (lincRNA): 3 tissues only                                   -> all masked, no pick
#   G3 (pseudogene): filtered out by gene type
#   G4 (protein_coding): A 1, B only 3 tissues (masked), C -3     -> pick C, Z=-3
#   G5 (protein_coding): A 0.5, B 1, C 0.2                        -> pick B, Z=1
EXPRESSION_LINES = [
    "Gene\tDescription\tA\tB\tC",
    "G1\tLung\t1\t0\t0.5",
    "G1\tLiver\t2\t0\t0.5",
    "G1\tHeart\t3\t0\t0.5",
    "G1\tBrain\t-6\t0\t0.5",
    "G1\tSkin\t2\t0\t0.5",
    "G2\tLung\t4\t4\t4",
    "G2\tLiver\t4\t4\t4",
    "G2\tHeart\t4\t4\t4",
    "G3\tLung\t9\t9\t9",
    "G3\tLiver\t9\t9\t9",
    "G3\tHeart\t9\t9\t9",
    "G3\tBrain\t9\t9\t9",
    "G3\tSkin\t9\t9\t9",
    "G4\tLung\t1\t1\t-3",
    "G4\tLiver\t1\t1\t-3",
    "G4\tHeart\t1\t1\t-3",
    "G4\tBrain\t1\tNA\t-3",
    "G4\tSkin\t1\tNA\t-3",
    "G5\tLung\t0.5\t1\t0.2",
    "G5\tLiver\t0.5\t1\t0.2",
    "G5\tHeart\t0.5\t1\t0.2",
    "G5\tBrain\t0.5\t1\t0.2",
    "G5\tSkin\t0.5\t1\t0.2",
]

GENE_TYPE_LINES = [
    "G1\tprotein_coding",
    "G2\tlincRNA",
    "G3\tpseudogene",
    "G4\tprotein_coding",
    "G5\tprotein_coding",
]


@pytest.fixture
def rarevar_dir(temp_dir):
    """Data directory with the scenario inputs for suffix '.test'."""
    write_lines(temp_dir / "preprocessing" / "gtex_2015-01-12_normalized_expression.test", EXPRESSION_LINES)
    write_lines(
        temp_dir / "reference" / "gencode.v19.genes.v6p.patched_contigs_genetypes_autosomal.txt",
        GENE_TYPE_LINES,
    )
    write_lines(temp_dir / "preprocessing" / "gtex_2015-01-12_wgs_ids.txt", ["C", "B", "X", "A"])
    write_lines(temp_dir / "preprocessing" / "gtex_2015-01-12_wgs_ids_HallLabSV.txt", ["B", "Y"])
    return temp_dir
