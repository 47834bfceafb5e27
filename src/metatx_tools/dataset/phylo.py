# metatx_tools/dataset/phylo.py
"""
Per-study microbiome dataset: count matrix + lineage table + sample data.

A MicrobiomeDataset keeps three tables aligned:
- otu_table:   features x samples, integer counts
- tax_table:   features x ranks (Kingdom..Species)
- sample_data: samples x attributes

Sample identifiers are the otu_table columns and the sample_data index, in
the same order; feature identifiers are the otu_table and tax_table index.
"""

import logging
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from metatx_tools.taxonomy.ranks import LINEAGE_COLUMNS

ATTRIBUTE_SEPARATOR = " || "
KEY_VALUE_SEPARATOR = ": "
FALLBACK_ATTRIBUTE = "Attribute"
TOTAL_READS = "Total_Reads"
SELECTION = "Selection"
SELECTION_DEFAULT = "Group_0"
ALL = "All"
SAMPLE_ID = "sraID"
DERIVED_COLUMNS = (TOTAL_READS, SELECTION, ALL, SAMPLE_ID)


class MicrobiomeDataset:
    """Count matrix, lineage table and sample data scoped to one study."""

    def __init__(self, otu_table: pd.DataFrame, tax_table: pd.DataFrame,
                 sample_data: pd.DataFrame, study: Optional[str] = None):
        if not otu_table.index.equals(tax_table.index):
            raise ValueError("otu_table and tax_table must have identical feature index")
        if not otu_table.columns.equals(sample_data.index):
            raise ValueError("otu_table columns and sample_data index must list the same samples in the same order")
        self.otu_table = otu_table
        self.tax_table = tax_table
        self.sample_data = sample_data
        self.study = study

    def __repr__(self):
        return f"MicrobiomeDataset(study={self.study!r}, taxa={self.n_taxa}, samples={self.n_samples})"

    def __len__(self):
        return self.n_taxa

    @property
    def n_taxa(self) -> int:
        return self.otu_table.shape[0]

    @property
    def n_samples(self) -> int:
        return self.otu_table.shape[1]

    @property
    def taxa_names(self) -> List:
        return list(self.otu_table.index)

    @property
    def sample_names(self) -> List:
        return list(self.otu_table.columns)

    def taxa_sums(self) -> pd.Series:
        return self.otu_table.sum(axis=1)

    def copy(self) -> "MicrobiomeDataset":
        return MicrobiomeDataset(self.otu_table.copy(), self.tax_table.copy(),
                                 self.sample_data.copy(), self.study)

    def prune_taxa(self, keep) -> "MicrobiomeDataset":
        """Keep the features where the boolean mask (aligned to the features) is True."""
        keep = pd.Series(np.asarray(keep, dtype=bool), index=self.otu_table.index)
        return MicrobiomeDataset(self.otu_table.loc[keep], self.tax_table.loc[keep],
                                 self.sample_data, self.study)

    def prune_empty_taxa(self) -> "MicrobiomeDataset":
        return self.prune_taxa(self.taxa_sums() > 0)

    def subset_samples(self, keep) -> "MicrobiomeDataset":
        """Keep the samples where the boolean mask (aligned to the samples) is True."""
        keep = np.asarray(keep, dtype=bool)
        return MicrobiomeDataset(self.otu_table.loc[:, keep], self.tax_table,
                                 self.sample_data.loc[keep], self.study)


def parse_attribute_string(packed) -> Optional[Dict[str, str]]:
    """
    Parse a packed attribute string, e.g. "Sex: M || Age: 30".

    Returns:
        dict of attribute -> value, or None when the string is missing or any
        segment lacks the key/value separator
    """
    if not isinstance(packed, str) or not packed.strip():
        return None

    pairs = {}
    for segment in packed.split(ATTRIBUTE_SEPARATOR):
        key, sep, value = segment.partition(KEY_VALUE_SEPARATOR)
        if not sep or not key:
            return None
        pairs[key] = value
    return pairs


def parse_sample_attributes(packed_values, index) -> pd.DataFrame:
    """
    Build the attribute table for a set of samples.

    Each packed string is parsed on its own; the keys of all samples are then
    unioned (in first-appearance order) into columns. Samples whose string did
    not parse get NA in every column. If no sample parses, the result is a
    single all-NA 'Attribute' column.

    Args:
        packed_values: Sequence of packed attribute strings, one per sample
        index: Sample identifiers for the rows

    Returns:
        DataFrame indexed by sample
    """
    parsed = [parse_attribute_string(value) for value in packed_values]

    if all(p is None for p in parsed):
        return pd.DataFrame({FALLBACK_ATTRIBUTE: [np.nan] * len(index)}, index=index, dtype=object)

    keys = []
    for p in parsed:
        for key in p or {}:
            if key not in keys:
                keys.append(key)

    rows = [[(p or {}).get(key, np.nan) for key in keys] for p in parsed]
    return pd.DataFrame(rows, index=index, columns=keys, dtype=object)


def generate_dataset(study, counts, sample_info, lineage, config=None, logger=None):
    """
    Generate the MicrobiomeDataset of a specific study.

    Args:
        study: Study ID
        counts: Count table, features x samples for all studies; its columns
            correspond positionally to the rows of sample_info
        sample_info: Sample table with study, packed attribute and read depth columns
        lineage: Lineage table from generate_lineage, one row per counts row
        config: AnalysisConfig for column names (optional)
        logger: Logger instance (optional)

    Returns:
        MicrobiomeDataset with zero-sum features removed
    """
    if logger is None:
        logger = logging.getLogger('metatx_tools')
    study_col = config.study_column if config else "study"
    attribute_col = config.attribute_column if config else "sample_attribute"
    depth_col = config.read_depth_column if config else "spots"

    if counts.shape[1] != len(sample_info):
        raise ValueError(
            f"Count table has {counts.shape[1]} sample columns but sample table has {len(sample_info)} rows"
        )
    if len(lineage) != counts.shape[0]:
        raise ValueError(
            f"Lineage table has {len(lineage)} rows but count table has {counts.shape[0]} features"
        )

    ok = (sample_info[study_col] == study).to_numpy()
    if not ok.any():
        raise ValueError(f"No samples found for study {study}")

    otu = counts.loc[:, ok].round().astype(np.int64)
    sam = sample_info.loc[ok]

    tax = pd.DataFrame(lineage, columns=LINEAGE_COLUMNS).copy()
    tax.index = otu.index

    packed = sam[attribute_col] if attribute_col in sam.columns else [None] * len(sam)
    sample_data = parse_sample_attributes(list(packed), otu.columns)
    if list(sample_data.columns) == [FALLBACK_ATTRIBUTE]:
        logger.warning(f"Study {study}: no sample attributes could be parsed; using placeholder column")

    # user attributes that collide with derived names are replaced
    sample_data = sample_data.drop(columns=[c for c in DERIVED_COLUMNS if c in sample_data.columns])
    sample_data[TOTAL_READS] = sam[depth_col].to_numpy()
    sample_data[SELECTION] = SELECTION_DEFAULT
    sample_data[ALL] = ALL
    sample_data[SAMPLE_ID] = list(otu.columns)

    dataset = MicrobiomeDataset(otu, tax, sample_data, study=study).prune_empty_taxa()
    logger.info(f"Study {study}: {dataset.n_samples} samples, {dataset.n_taxa} taxa after pruning")
    return dataset


def get_attributes(dataset) -> List[str]:
    """
    Get the sample attributes with at least 2 distinct values.

    Args:
        dataset: MicrobiomeDataset

    Returns:
        List of column names of the sample data
    """
    return [
        col for col in dataset.sample_data.columns
        if dataset.sample_data[col].nunique(dropna=True) >= 2
    ]
