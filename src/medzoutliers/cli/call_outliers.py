"""
medzoutliers pipeline command - median-Z multi-tissue outlier calling.

Usage:
    medzoutliers SUFFIX [--config medz.yaml] [--n-jobs 12] [--data-dir DIR]

Reads ``$RAREVARDIR/preprocessing/gtex_2015-01-12_normalized_expression{SUFFIX}``,
writes the count / Z matrices and outlier tables under ``$RAREVARDIR/data`` and
the filtered WGS individual lists under ``$RAREVARDIR/preprocessing``.
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List

import pandas as pd

from medzoutliers.cli.config import PipelineConfig, PipelinePaths, build_config
from medzoutliers.core.errors import DataFormatError, ReshapeError, UsageError
from medzoutliers.io.loaders import (
    filter_by_gene_type,
    load_expression_matrix,
    load_gene_types,
    load_id_list,
)
from medzoutliers.io.writers import (
    write_counts_per_individual,
    write_id_list,
    write_picks,
    write_summary_matrix,
)
from medzoutliers.quality.filtering import filter_id_lists
from medzoutliers.quality.outliers import OutlierCallResult, call_outliers
from medzoutliers.stats.aggregation import aggregate_by_gene
from medzoutliers.stats.reshape import reshape_aggregates

logger = logging.getLogger(__name__)


@dataclass
class PipelineOutputs:
    """In-memory results of one pipeline run."""
    paths: PipelinePaths
    counts: pd.DataFrame
    zscores: pd.DataFrame
    result: OutlierCallResult
    wgs_ids: List[str]
    wgs_ids_sv: List[str]


def run_pipeline(config: PipelineConfig, suffix: str) -> PipelineOutputs:
    """
    Run the full median-Z outlier pipeline and write every output file.

    Stages: load → gene-type filter → per-gene aggregation → reshape → write
    matrices → outlier calling → write outlier tables → filter WGS lists.
    Files are written as each stage completes; any exception aborts the run.

    Raises:
        UsageError: If no data directory is configured
        FileNotFoundError: If an input file is missing
        DataFormatError: If an input file is malformed
        ReshapeError: If aggregation did not cover every gene × sample
    """
    paths = config.paths(suffix)

    logger.info(f"Loading expression matrix: {paths.expression}")
    matrix = load_expression_matrix(paths.expression)
    sample_ids = matrix.sample_ids

    logger.info(f"Loading gene types: {paths.gene_types}")
    gene_types = load_gene_types(paths.gene_types)
    matrix = filter_by_gene_type(matrix, gene_types, keep=config.gene_types)

    table = aggregate_by_gene(
        matrix,
        tissue_threshold=config.tissue_threshold,
        n_jobs=config.n_jobs,
    )
    counts, zscores = reshape_aggregates(table, sample_ids)

    write_summary_matrix(counts, paths.counts, na_rep=config.na_rep)
    write_summary_matrix(zscores, paths.zscores, na_rep=config.na_rep)

    result = call_outliers(
        zscores,
        counts,
        sample_ids,
        z_threshold=config.z_threshold,
        max_outliers=config.max_outliers_per_individual,
    )

    write_picks(result.thresholded, paths.picked, na_rep=config.na_rep)
    write_id_list(result.passing_individuals, paths.qc_samples)
    write_counts_per_individual(result.counts_per_individual, paths.counts_per_individual)
    write_picks(result.unthresholded, paths.nothreshold_picked, na_rep=config.na_rep)

    id_lists: Dict[str, List[str]] = {
        "wgs_ids": load_id_list(paths.wgs_ids),
        "wgs_ids_sv": load_id_list(paths.wgs_ids_sv),
    }
    filtered = filter_id_lists(id_lists, result.passing_individuals)
    write_id_list(filtered["wgs_ids"].kept, paths.wgs_ids_filtered)
    write_id_list(filtered["wgs_ids_sv"].kept, paths.wgs_ids_sv_filtered)

    return PipelineOutputs(
        paths=paths,
        counts=counts,
        zscores=zscores,
        result=result,
        wgs_ids=filtered["wgs_ids"].kept,
        wgs_ids_sv=filtered["wgs_ids_sv"].kept,
    )


def run_call_outliers(args: argparse.Namespace) -> int:
    """Execute the outlier-calling pipeline; returns the process exit status."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        config = build_config(args)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Config file error: {e}")
        return 1

    start_time = datetime.now()
    print(f"\n{'='*70}")
    print("  Median-Z Multi-Tissue Outlier Calling")
    print(f"{'='*70}")
    print(f"Suffix: {args.suffix!r}")
    print(f"Started: {start_time.strftime('%Y-%m-%d %H:%M:%S')}\n")

    try:
        outputs = run_pipeline(config, args.suffix)
    except UsageError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    except (DataFormatError, ReshapeError, FileNotFoundError, ValueError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    result = outputs.result
    elapsed = datetime.now() - start_time
    print(f"\n{'='*70}")
    print(f"  Genes picked:          {result.n_picks}")
    print(f"  Outliers (|Z| >= {config.z_threshold}): {result.n_outliers}")
    print(f"  Individuals excluded:  {result.n_excluded}")
    print(f"  Individuals passing:   {result.n_passing}")
    print(f"  Elapsed:               {elapsed}")
    print(f"{'='*70}\n")
    return 0
