"""
I/O module for loading pipeline inputs and writing pipeline outputs.

Key Functions:
    - load_expression_matrix: Load the stacked (gene, tissue) × individual table
    - load_gene_types: Load the gene → biotype reference
    - filter_by_gene_type: Keep protein_coding / lincRNA genes
    - load_id_list: Load a single-column individual list
    - write_summary_matrix / write_picks / write_id_list /
      write_counts_per_individual: Tab-delimited outputs

Examples:
    >>> from medzoutliers.io import load_expression_matrix, write_summary_matrix
    >>> matrix = load_expression_matrix(Path("normalized_expression.txt"))
"""

from medzoutliers.io.loaders import (
    DEFAULT_GENE_TYPES,
    load_expression_matrix,
    load_gene_types,
    filter_by_gene_type,
    load_id_list,
)
from medzoutliers.io.writers import (
    write_summary_matrix,
    write_picks,
    write_id_list,
    write_counts_per_individual,
)

__all__ = [
    'DEFAULT_GENE_TYPES',
    'load_expression_matrix',
    'load_gene_types',
    'filter_by_gene_type',
    'load_id_list',
    'write_summary_matrix',
    'write_picks',
    'write_id_list',
    'write_counts_per_individual',
]
