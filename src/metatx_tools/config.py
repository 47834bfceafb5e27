# metatx_tools/config.py
"""
Session configuration for metatx_tools.

An AnalysisConfig is built once by the caller (from defaults, a YAML file or
CLI flags) and passed explicitly to every operation that touches the data
directory.
"""

import os
import logging
from dataclasses import dataclass, fields, replace
from typing import Dict, Optional, Union

import yaml

DEFAULT_DATA_DIR = "data"
DEFAULT_RESULTS_DIR = "results"
DEFAULT_MAX_SAMPLES = 150
STUDY_INFO_FILE = "study_info.csv"
STUDIES_SUBDIR = "studies"

_PATH_KEYS = ("data_dir", "results_dir", "log_file")


@dataclass
class AnalysisConfig:
    """Paths, limits and column names shared by every analysis step."""
    data_dir: str = DEFAULT_DATA_DIR
    results_dir: str = DEFAULT_RESULTS_DIR
    max_samples: int = DEFAULT_MAX_SAMPLES
    log: bool = True
    log_file: Optional[str] = None
    study_column: str = "study"
    attribute_column: str = "sample_attribute"
    read_depth_column: str = "spots"
    alpha: float = 0.05
    cooks_cutoff: Optional[float] = None

    @property
    def studies_dir(self) -> str:
        return os.path.join(self.data_dir, STUDIES_SUBDIR)

    @property
    def study_info_path(self) -> str:
        return os.path.join(self.data_dir, STUDY_INFO_FILE)

    def updated(self, **overrides) -> "AnalysisConfig":
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def resolve_relative_paths(config: Dict, config_dir: str) -> Dict:
    """Converts relative path values to absolute paths based on the directory
    of the config file."""
    for key in _PATH_KEYS:
        value = config.get(key)
        if isinstance(value, str) and not os.path.isabs(value):
            config[key] = os.path.abspath(os.path.join(config_dir, value))
    return config


def load_config(config_path: Union[str, os.PathLike]) -> AnalysisConfig:
    """
    Load an AnalysisConfig from a YAML file.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        AnalysisConfig instance

    Raises:
        ValueError: If the file contains keys AnalysisConfig does not define
    """
    with open(config_path, "r") as file:
        raw = yaml.safe_load(file) or {}

    if not isinstance(raw, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    known = {f.name for f in fields(AnalysisConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown config keys in {config_path}: {unknown}")

    config_dir = os.path.dirname(os.path.abspath(config_path))
    raw = resolve_relative_paths(raw, config_dir)
    return AnalysisConfig(**raw)


def init_session(config: AnalysisConfig, logger=None):
    """
    Load the study index for a session.

    This is the explicit initialization step; the returned table is read-only
    for the rest of the session.

    Args:
        config: AnalysisConfig with the data directory
        logger: Logger instance (optional)

    Returns:
        DataFrame of the study index
    """
    # imported here, dataset.io imports this module
    from metatx_tools.dataset.io import load_study_info

    if logger is None:
        logger = logging.getLogger('metatx_tools')
    study_info = load_study_info(config.data_dir)
    logger.info(f"Loaded study index with {len(study_info)} studies from {config.data_dir}")
    return study_info
