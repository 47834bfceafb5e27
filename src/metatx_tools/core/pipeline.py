# metatx_tools/core/pipeline.py
"""
Batch drivers for metatx_tools.

These functions tie the per-study operations to the data directory layout:
building the per-study datasets from raw tables, running every pairwise
differential comparison of every study, and per-attribute diversity tests.
Failures are handled per study; one broken study never stops a batch.
"""
import os
import logging
import time
import traceback
from itertools import combinations

import pandas as pd
from tqdm import tqdm

from metatx_tools.analysis.differential import differential_table
from metatx_tools.analysis.diversity import diversity_test
from metatx_tools.config import init_session
from metatx_tools.dataset.io import (
    load_dataset,
    save_dataset,
    summarize_study,
    write_study_info,
)
from metatx_tools.dataset.phylo import SAMPLE_ID, TOTAL_READS, generate_dataset, get_attributes
from metatx_tools.errors import MetatxError
from metatx_tools.taxonomy.lineage import generate_lineage, taxids_to_names
from metatx_tools.utils.file_utils import check_file_exists, sanitize_filename

# per-sample columns that are never compared between groups
NON_GROUPING_ATTRIBUTES = (TOTAL_READS, SAMPLE_ID)


def _progress(config, logger, message):
    if config.log:
        logger.info(message)
    else:
        logger.debug(message)


def align_feature_info(counts, feature_info):
    """Order the feature table like the count table rows."""
    if counts.index.equals(feature_info.index):
        return feature_info
    if set(counts.index) == set(feature_info.index) and feature_info.index.is_unique:
        return feature_info.reindex(counts.index)
    raise ValueError("Feature table and count table do not describe the same features")


def build_studies(counts_file, sample_info_file, feature_info_file, config, logger=None):
    """
    Build and save one MicrobiomeDataset per study, plus the study index.

    Args:
        counts_file: CSV of counts, features x samples (first column = feature ID)
        sample_info_file: CSV with one row per count column, in the same order
        feature_info_file: CSV with Lineage and Name per feature (first column = feature ID)
        config: AnalysisConfig
        logger: Logger instance (optional)

    Returns:
        DataFrame of the written study index
    """
    if logger is None:
        logger = logging.getLogger('metatx_tools')
    start_time = time.time()

    for path, desc in [(counts_file, "Counts"), (sample_info_file, "Sample info"),
                       (feature_info_file, "Feature info")]:
        if not check_file_exists(path, desc):
            raise FileNotFoundError(f"{desc} file not found: {path}")

    counts = pd.read_csv(counts_file, index_col=0)
    sample_info = pd.read_csv(sample_info_file, dtype={config.study_column: str})
    feature_info = align_feature_info(counts, pd.read_csv(feature_info_file, index_col=0))
    logger.info(f"Loaded counts {counts.shape}, {len(sample_info)} samples, {len(feature_info)} features")

    lineage = generate_lineage(feature_info, logger=logger)

    summaries = []
    for study in tqdm(sample_info[config.study_column].dropna().unique(), desc="Building studies"):
        try:
            dataset = generate_dataset(study, counts, sample_info, lineage, config=config, logger=logger)
            path = save_dataset(dataset, config.data_dir)
            summaries.append(summarize_study(dataset))
            _progress(config, logger, f"Saved study {study} to {path}")
        except Exception as e:
            logger.error(f"Error building study {study}: {str(e)}")
            logger.error(traceback.format_exc())

    study_info = pd.DataFrame(summaries, columns=["study", "n_samples", "n_taxa"])
    path = write_study_info(study_info, config.data_dir)

    minutes, seconds = divmod(time.time() - start_time, 60)
    logger.info(f"Wrote study index {path} ({len(study_info)} studies) in {int(minutes)}m {int(seconds)}s")
    return study_info


def comparison_filename(study, attribute, cond1, cond2):
    return sanitize_filename(f"{study}_{attribute}_{cond1}_vs_{cond2}.csv")


def differential_comparisons(dataset):
    """All (attribute, cond1, cond2) pairs worth testing in a dataset."""
    comparisons = []
    for attribute in get_attributes(dataset):
        if attribute in NON_GROUPING_ATTRIBUTES:
            continue
        values = sorted(dataset.sample_data[attribute].dropna().unique(), key=str)
        for cond1, cond2 in combinations(values, 2):
            comparisons.append((attribute, cond1, cond2))
    return comparisons


def run_study_differential(dataset, config, fitter=None, logger=None):
    """
    Run every pairwise comparison of one study and write one CSV each.

    Returns:
        List of written file paths
    """
    if logger is None:
        logger = logging.getLogger('metatx_tools')
    os.makedirs(config.results_dir, exist_ok=True)

    written = []
    for attribute, cond1, cond2 in differential_comparisons(dataset):
        try:
            table = differential_table(dataset, attribute, cond1, cond2, fitter=fitter,
                                       cooks_cutoff=config.cooks_cutoff, logger=logger)
        except Exception as e:
            logger.error(f"Study {dataset.study}: {attribute} {cond1} vs {cond2} failed: {str(e)}")
            logger.error(traceback.format_exc())
            continue
        if table is None or table.empty:
            _progress(config, logger, f"Study {dataset.study}: nothing to test for {attribute} {cond1} vs {cond2}")
            continue
        table.insert(0, "Species", taxids_to_names(dataset, table.index))
        table.index.name = "feature"

        path = os.path.join(config.results_dir,
                            comparison_filename(dataset.study, attribute, cond1, cond2))
        table.to_csv(path)
        n_sig = int((table["padj"] < config.alpha).sum())
        _progress(config, logger, f"Study {dataset.study}: {attribute} {cond1} vs {cond2}, "
                                  f"{n_sig} taxa with padj < {config.alpha} -> {path}")
        written.append(path)
    return written


def run_batch_differential(config, studies=None, fitter=None, logger=None):
    """
    Differential expression for every study in the index.

    Studies above config.max_samples samples, missing studies and studies
    that fail are skipped and logged.

    Args:
        config: AnalysisConfig
        studies: Study IDs to run (default: all studies in the index)
        fitter: ModelFitter passed to differential_table (optional)
        logger: Logger instance (optional)

    Returns:
        Dict of study -> list of written CSV paths
    """
    if logger is None:
        logger = logging.getLogger('metatx_tools')
    start_time = time.time()

    study_info = init_session(config, logger=logger)
    if studies is None:
        studies = list(study_info["study"])
    sizes = dict(zip(study_info["study"], study_info.get("n_samples", pd.Series(dtype=int))))

    results = {}
    for study in tqdm(studies, desc="Differential analysis"):
        n_samples = sizes.get(study)
        if n_samples is not None and n_samples > config.max_samples:
            _progress(config, logger, f"Skipping study {study}: {n_samples} samples > {config.max_samples}")
            continue

        dataset = load_dataset(study, config.data_dir, logger=logger)
        if dataset is None:
            _progress(config, logger, f"Skipping study {study}: no dataset")
            continue

        try:
            results[study] = run_study_differential(dataset, config, fitter=fitter, logger=logger)
        except Exception as e:
            logger.error(f"Error in differential analysis of study {study}: {str(e)}")
            logger.error(traceback.format_exc())

    minutes, seconds = divmod(time.time() - start_time, 60)
    n_files = sum(len(paths) for paths in results.values())
    logger.info(f"Wrote {n_files} result files for {len(results)} studies in {int(minutes)}m {int(seconds)}s")
    return results


def run_diversity_tests(dataset, attributes=None, logger=None):
    """
    Shannon diversity ANOVA for each attribute of a dataset.

    Returns:
        DataFrame with study, attribute, pvalue; attributes with fewer than
        2 groups and attributes missing from the sample data get a NA p-value
    """
    if logger is None:
        logger = logging.getLogger('metatx_tools')
    if attributes is None:
        attributes = [a for a in get_attributes(dataset) if a not in NON_GROUPING_ATTRIBUTES]

    rows = []
    for attribute in attributes:
        if attribute not in dataset.sample_data.columns:
            logger.warning(f"Study {dataset.study}: no sample attribute '{attribute}'")
            rows.append({"study": dataset.study, "attribute": attribute, "pvalue": None})
            continue
        try:
            pvalue = diversity_test(dataset, attribute, logger=logger)
        except MetatxError as e:
            logger.warning(f"Study {dataset.study}: {str(e)}")
            pvalue = None
        rows.append({"study": dataset.study, "attribute": attribute, "pvalue": pvalue})
    return pd.DataFrame(rows, columns=["study", "attribute", "pvalue"])
