"""
medzoutliers CLI - median-Z multi-tissue expression outlier calling.

    medzoutliers SUFFIX    Call outliers for the expression matrix with filename suffix SUFFIX
"""

import argparse
from pathlib import Path
from typing import Optional, List

from medzoutliers import __version__
from medzoutliers.cli._validators import _existing_dir, _n_jobs


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="medzoutliers",
        description="Call per-gene multi-tissue expression outliers with the median-Z method",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Inputs and outputs are resolved under $RAREVARDIR (or --data-dir / data_dir in --config).

Examples:
  medzoutliers .peer.ztrans.txt
  medzoutliers .peer.ztrans.txt --n-jobs 4
  medzoutliers .peer.ztrans.txt --config medz.yaml
        """
    )

    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"%(prog)s {__version__}"
    )
    parser.add_argument("suffix",
                        help="Filename suffix of the normalized expression matrix "
                             "(also appended to every output file)")
    parser.add_argument("--config", "-c", type=Path, default=None,
                        help="YAML/JSON configuration file")
    parser.add_argument("--n-jobs", type=_n_jobs, default=None,
                        help="Worker processes for per-gene aggregation (default: 12, -1 = all CPUs)")
    parser.add_argument("--data-dir", type=_existing_dir, default=None,
                        help="Base data directory (default: $RAREVARDIR)")
    return parser


def main(args: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point for medzoutliers.

    Wrong positional arity exits with status 2 and a usage message on stderr.
    """
    from medzoutliers.cli.call_outliers import run_call_outliers

    parser = build_parser()
    parsed_args = parser.parse_args(args)
    return run_call_outliers(parsed_args)
