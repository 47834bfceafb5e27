# metatx_tools/dataset/io.py
import os
import logging
import traceback

import pandas as pd

from metatx_tools.config import STUDIES_SUBDIR, STUDY_INFO_FILE
from metatx_tools.dataset.phylo import MicrobiomeDataset
from metatx_tools.errors import StudyNotFoundError
from metatx_tools.utils.file_utils import sanitize_filename

DATASET_SUFFIX = ".pkl"


def study_path(study, data_dir):
    """Path of the serialized dataset of a study inside data_dir."""
    return os.path.join(data_dir, STUDIES_SUBDIR, f"{sanitize_filename(str(study))}{DATASET_SUFFIX}")


def save_dataset(dataset, data_dir):
    """
    Serialize a MicrobiomeDataset to <data_dir>/studies/<study>.pkl.

    Returns:
        Path of the written file
    """
    if dataset.study is None:
        raise ValueError("Cannot save a dataset without a study ID")
    path = study_path(dataset.study, data_dir)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    pd.to_pickle(dataset, path)
    return path


def read_dataset(study, data_dir):
    """
    Read the dataset of a study.

    Raises:
        StudyNotFoundError: If no file exists for the study
    """
    path = study_path(study, data_dir)
    if not os.path.isfile(path):
        raise StudyNotFoundError(f"No dataset file for study {study}: {path}")
    dataset = pd.read_pickle(path)
    if not isinstance(dataset, MicrobiomeDataset):
        raise TypeError(f"{path} does not contain a MicrobiomeDataset")
    return dataset


def load_dataset(study, data_dir, logger=None):
    """
    Load the dataset of a study, or None if it cannot be read.

    Args:
        study: Study ID
        data_dir: Data directory holding the studies/ folder
        logger: Logger instance (optional)

    Returns:
        MicrobiomeDataset or None
    """
    if logger is None:
        logger = logging.getLogger('metatx_tools')
    try:
        return read_dataset(study, data_dir)
    except StudyNotFoundError as e:
        logger.warning(str(e))
    except Exception as e:
        logger.error(f"Error loading study {study}: {str(e)}")
        logger.debug(traceback.format_exc())
    return None


def load_study_info(data_dir):
    """Read the study index (study_info.csv) from data_dir."""
    path = os.path.join(data_dir, STUDY_INFO_FILE)
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Study index not found: {path}")
    return pd.read_csv(path, dtype={"study": str})


def write_study_info(study_info, data_dir):
    """Write the study index to data_dir and return its path."""
    os.makedirs(data_dir, exist_ok=True)
    path = os.path.join(data_dir, STUDY_INFO_FILE)
    study_info.to_csv(path, index=False)
    return path


def summarize_study(dataset):
    """One study_info row for a dataset."""
    return {
        "study": dataset.study,
        "n_samples": dataset.n_samples,
        "n_taxa": dataset.n_taxa,
    }
