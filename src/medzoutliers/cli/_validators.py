"""Shared argparse type validators for CLI parameter bounds checking.

Intended to be used as the ``type=`` argument in ``add_argument()`` so that
invalid values (e.g. ``--n-jobs 0``) fail with a clear usage message.
"""

from __future__ import annotations

import argparse
from pathlib import Path


def _n_jobs(value: str) -> int:
    """argparse type for joblib worker counts (non-zero; -1 = all CPUs)."""
    try:
        ivalue = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value} is not an integer")
    if ivalue == 0:
        raise argparse.ArgumentTypeError("n-jobs must be non-zero (use -1 for all CPUs)")
    return ivalue


def _existing_dir(value: str) -> Path:
    """argparse type for a directory that must already exist."""
    path = Path(value)
    if not path.is_dir():
        raise argparse.ArgumentTypeError(f"{value} is not an existing directory")
    return path
