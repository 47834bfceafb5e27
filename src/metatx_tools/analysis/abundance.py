# metatx_tools/analysis/abundance.py
import logging

import numpy as np
import pandas as pd

from metatx_tools.dataset.io import load_dataset
from metatx_tools.dataset.phylo import TOTAL_READS
from metatx_tools.errors import ZeroReadDepthError
from metatx_tools.taxonomy.lineage import taxids_to_names

READS_PER_MILLION = 1e6
MIN_MEAN_ABUNDANCE = 1


def relative_counts(otu_table, total_reads):
    """
    Divide the counts of each sample by its total number of reads (including
    non-microbial reads), in reads per million.

    Args:
        otu_table: Count table, features x samples
        total_reads: Total read depth per sample; a Series indexed by sample
            or a sequence in column order

    Returns:
        DataFrame of relative counts, same shape as otu_table

    Raises:
        ZeroReadDepthError: If any sample has zero, negative or missing depth
    """
    if isinstance(total_reads, pd.Series):
        depth = total_reads.reindex(otu_table.columns)
    else:
        depth = pd.Series(np.asarray(total_reads), index=otu_table.columns)
    depth = pd.to_numeric(depth, errors="coerce")

    bad = depth.isna() | (depth <= 0)
    if bad.any():
        raise ZeroReadDepthError(depth.index[bad])

    return otu_table.div(depth, axis=1) * READS_PER_MILLION


def relative_counts_dataset(dataset):
    """Relative counts of a MicrobiomeDataset using its Total_Reads column."""
    return relative_counts(dataset.otu_table, dataset.sample_data[TOTAL_READS])


def mf_means(studies, data_dir, logger=None):
    """
    Create a table of the mean relative abundance of each metafeature per study.

    Means below 1 read per million are set to NA. Studies that cannot be
    loaded are left out.

    Args:
        studies: Study IDs
        data_dir: Data directory holding the serialized studies
        logger: Logger instance (optional)

    Returns:
        DataFrame, Species names x studies
    """
    if logger is None:
        logger = logging.getLogger('metatx_tools')

    columns = {}
    for study in studies:
        dataset = load_dataset(study, data_dir, logger=logger)
        if dataset is None:
            logger.warning(f"Skipping study {study} in mean abundance table")
            continue
        means = relative_counts_dataset(dataset).mean(axis=1)
        means.index = taxids_to_names(dataset, means.index)
        # several features may share a Species label
        columns[study] = means.groupby(level=0, sort=False).sum()

    if not columns:
        return pd.DataFrame()

    table = pd.concat(columns, axis=1)
    return table.where(table >= MIN_MEAN_ABUNDANCE)
