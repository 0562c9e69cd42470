"""
Configuration support for the medzoutliers CLI.

Supports YAML and JSON config files with CLI argument override. The base data
directory defaults to the ``RAREVARDIR`` environment variable, and every input
and output path is resolved from file-name templates relative to it.

Example config (YAML):

    data_dir: /data/rarevar
    n_jobs: 12
    tissue_threshold: 5
    gene_types: [protein_coding, lincRNA]
    outliers:
      z_threshold: 2.0
      max_per_individual: 50
    files:
      expression: preprocessing/gtex_2015-01-12_normalized_expression{suffix}
"""

from __future__ import annotations

import json
import os
from argparse import Namespace
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from medzoutliers.core.errors import UsageError

DATA_DIR_ENV = "RAREVARDIR"


@dataclass
class FileLayout:
    """File-name templates relative to the data directory; ``{suffix}`` is substituted."""
    expression: str = "preprocessing/gtex_2015-01-12_normalized_expression{suffix}"
    gene_types: str = "reference/gencode.v19.genes.v6p.patched_contigs_genetypes_autosomal.txt"
    wgs_ids: str = "preprocessing/gtex_2015-01-12_wgs_ids.txt"
    wgs_ids_sv: str = "preprocessing/gtex_2015-01-12_wgs_ids_HallLabSV.txt"
    counts: str = "data/outliers_medz_counts{suffix}"
    zscores: str = "data/outliers_medz_zscores{suffix}"
    picked: str = "data/outliers_medz_picked{suffix}"
    qc_samples: str = "data/outliers_medz_picked_qc_samples{suffix}"
    counts_per_individual: str = "data/outliers_medz_picked_counts_per_ind{suffix}"
    nothreshold_picked: str = "data/outliers_medz_nothreshold_picked{suffix}"
    wgs_ids_filtered: str = "preprocessing/gtex_2015-01-12_wgs_ids_outlier_filtered{suffix}"
    wgs_ids_sv_filtered: str = "preprocessing/gtex_2015-01-12_wgs_ids_HallLabSV_outlier_filtered{suffix}"


@dataclass
class PipelinePaths:
    """Resolved input and output paths for one run."""
    expression: Path
    gene_types: Path
    wgs_ids: Path
    wgs_ids_sv: Path
    counts: Path
    zscores: Path
    picked: Path
    qc_samples: Path
    counts_per_individual: Path
    nothreshold_picked: Path
    wgs_ids_filtered: Path
    wgs_ids_sv_filtered: Path


@dataclass
class PipelineConfig:
    """
    Complete configuration for a median-Z outlier run.

    Mirrors the CLI argument structure for consistency.
    """
    data_dir: Optional[Path] = None
    tissue_threshold: int = 5
    z_threshold: float = 2.0
    max_outliers_per_individual: int = 50
    gene_types: List[str] = field(default_factory=lambda: ["protein_coding", "lincRNA"])
    n_jobs: int = 12
    na_rep: str = ""
    files: FileLayout = field(default_factory=FileLayout)

    def paths(self, suffix: str) -> PipelinePaths:
        """
        Resolve every file path for filename suffix ``suffix``.

        Raises:
            UsageError: If no data directory is configured
        """
        if self.data_dir is None:
            raise UsageError(
                f"No data directory: set ${DATA_DIR_ENV} or 'data_dir' in the config file"
            )
        base = Path(self.data_dir)
        resolved = {
            f.name: base / getattr(self.files, f.name).format(suffix=suffix)
            for f in fields(FileLayout)
        }
        return PipelinePaths(**resolved)


def load_config(config_path: Path) -> Dict[str, Any]:
    """
    Load configuration from YAML or JSON file.

    Parameters:
        config_path: Path to config file (.yaml, .yml, or .json)

    Returns:
        Dictionary with configuration values

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If file format is unsupported or invalid

    Examples:
        >>> config = load_config(Path("medz.yaml"))
        >>> print(config['outliers']['z_threshold'])
        2.0
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()
    if suffix not in ('.yaml', '.yml', '.json'):
        raise ValueError(
            f"Unsupported config format: {suffix}. "
            f"Use .yaml, .yml, or .json"
        )

    try:
        with open(config_path, 'r') as f:
            if suffix == '.json':
                config = json.load(f)
            else:
                config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {e}") from e
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file: {e}") from e

    if config is None:
        return {}

    if not isinstance(config, dict):
        raise ValueError("Config file must contain a dictionary/mapping at top level")

    return config


_TOP_LEVEL_KEYS = {'data_dir', 'tissue_threshold', 'gene_types', 'n_jobs', 'na_rep', 'outliers', 'files'}
_OUTLIER_KEYS = {'z_threshold', 'max_per_individual'}


def validate_config(config: Dict[str, Any]) -> None:
    """
    Validate configuration structure and values.

    Raises:
        ValueError: If configuration is invalid
    """
    unknown = set(config) - _TOP_LEVEL_KEYS
    if unknown:
        raise ValueError(
            f"Unknown config keys: {sorted(unknown)}. "
            f"Valid keys: {', '.join(sorted(_TOP_LEVEL_KEYS))}"
        )

    if 'tissue_threshold' in config:
        value = config['tissue_threshold']
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValueError(f"tissue_threshold must be a non-negative integer, got: {value}")

    if 'n_jobs' in config:
        value = config['n_jobs']
        if isinstance(value, bool) or not isinstance(value, int) or value == 0:
            raise ValueError(f"n_jobs must be a non-zero integer, got: {value}")

    if 'gene_types' in config:
        value = config['gene_types']
        if not isinstance(value, list) or not value or not all(isinstance(v, str) for v in value):
            raise ValueError(f"gene_types must be a non-empty list of strings, got: {value}")

    if 'na_rep' in config and not isinstance(config['na_rep'], str):
        raise ValueError(f"na_rep must be a string, got: {config['na_rep']}")

    outliers = config.get('outliers')
    if outliers is not None:
        if not isinstance(outliers, dict):
            raise ValueError("'outliers' section must be a mapping")
        unknown = set(outliers) - _OUTLIER_KEYS
        if unknown:
            raise ValueError(f"Unknown keys in 'outliers' section: {sorted(unknown)}")
        if 'z_threshold' in outliers:
            value = outliers['z_threshold']
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                raise ValueError(f"z_threshold must be a non-negative number, got: {value}")
        if 'max_per_individual' in outliers:
            value = outliers['max_per_individual']
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"max_per_individual must be a positive integer, got: {value}")

    files = config.get('files')
    if files is not None:
        if not isinstance(files, dict):
            raise ValueError("'files' section must be a mapping")
        valid = {f.name for f in fields(FileLayout)}
        unknown = set(files) - valid
        if unknown:
            raise ValueError(
                f"Unknown keys in 'files' section: {sorted(unknown)}. "
                f"Valid keys: {', '.join(sorted(valid))}"
            )
        for key, template in files.items():
            if not isinstance(template, str) or not template.strip():
                raise ValueError(f"files.{key} must be a non-empty string, got: {template!r}")
            try:
                template.format(suffix="")
            except (KeyError, IndexError, ValueError) as e:
                raise ValueError(
                    f"files.{key} is not a valid template (only {{suffix}} may be "
                    f"substituted): {template!r}"
                ) from e


def _merge_value(cli_value: Any, config_value: Any, was_explicitly_set: bool) -> Any:
    """
    Merge a single config value with a CLI argument.

    Rules:
    - CLI args ALWAYS override config if explicitly set
    - If CLI arg not set, use config value
    - If neither set, keep the default
    """
    if was_explicitly_set:
        return cli_value
    if config_value is not None:
        return config_value
    return cli_value


def build_config(
    args: Namespace,
    environ: Optional[Mapping[str, str]] = None,
) -> PipelineConfig:
    """
    Build the run configuration from CLI args, an optional config file and the environment.

    Priority (highest to lowest):
    1. Explicitly provided CLI options (``--data-dir``, ``--n-jobs``)
    2. Config file values (``--config``)
    3. ``$RAREVARDIR`` (data directory only)
    4. PipelineConfig defaults

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the config file is invalid
    """
    if environ is None:
        environ = os.environ

    config: Dict[str, Any] = {}
    config_path = getattr(args, 'config', None)
    if config_path is not None:
        config = load_config(config_path)
        validate_config(config)

    defaults = PipelineConfig()
    outliers = config.get('outliers') or {}

    env_dir = environ.get(DATA_DIR_ENV) or None
    config_dir = config.get('data_dir') or env_dir
    cli_dir = getattr(args, 'data_dir', None)
    data_dir = _merge_value(cli_dir, config_dir, cli_dir is not None)

    cli_jobs = getattr(args, 'n_jobs', None)
    n_jobs = _merge_value(cli_jobs, config.get('n_jobs'), cli_jobs is not None)

    files = replace(FileLayout(), **(config.get('files') or {}))

    return PipelineConfig(
        data_dir=Path(data_dir) if data_dir is not None else None,
        tissue_threshold=config.get('tissue_threshold', defaults.tissue_threshold),
        z_threshold=float(outliers.get('z_threshold', defaults.z_threshold)),
        max_outliers_per_individual=outliers.get('max_per_individual', defaults.max_outliers_per_individual),
        gene_types=list(config.get('gene_types', defaults.gene_types)),
        n_jobs=n_jobs if n_jobs is not None else defaults.n_jobs,
        na_rep=config.get('na_rep', defaults.na_rep),
        files=files,
    )
