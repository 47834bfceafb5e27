# metatx_tools/analysis/sankey.py
"""
Link tables for Sankey diagrams between two taxonomic ranks.

Each link (Source, Target) is weighted by the share of the total abundance,
in percent, attributable to the Target label.
"""

import pandas as pd

from metatx_tools.taxonomy.lineage import clean_tax_table
from metatx_tools.taxonomy.ranks import TaxRank

MIN_LINK_VALUE = 0.5
LINK_COLUMNS = ["Source", "Target", "Value", "Source_level", "Target_level"]


def target_abundance(tax_table, otu_table, target):
    """
    Percentage of the mean abundance per label at the target rank.

    Counts are summed per label, averaged across samples, then scaled so the
    labels sum to 100.
    """
    target = TaxRank.from_name(target).label
    if len(tax_table) != len(otu_table):
        raise ValueError(
            f"tax_table has {len(tax_table)} rows but otu_table has {len(otu_table)} rows"
        )
    group = tax_table[target].to_numpy()
    sums = otu_table.groupby(group, dropna=False).sum()
    means = sums.mean(axis=1)
    return means / means.sum() * 100


def make_sankey_links(tax_table, otu_table, source, target,
                      source_filter=None, level_filter=None, min_value=MIN_LINK_VALUE):
    """
    Make the Sankey links table from source to target rank.

    Args:
        tax_table: Cleaned lineage table (features x ranks)
        otu_table: Count table with rows in the same order as tax_table
        source: Source rank name (Kingdom..Species) or TaxRank
        target: Target rank name or TaxRank
        source_filter: Keep only features whose level_filter label equals this
        level_filter: Rank the filter applies to (default: source)
        min_value: Links with Value <= min_value are dropped

    Returns:
        DataFrame with columns Source, Target, Value, Source_level,
        Target_level, sorted by Value descending

    Raises:
        ValueError: If the source or target rank has NA labels
    """
    source =TaxRank.from_name(source).label
    target = TaxRank.from_name(target).label
    for rank in (source, target):
        if tax_table[rank].isna().any():
            raise ValueError(f"tax_table has NA labels at rank {rank}; clean it with clean_tax_table first")
    target_means = target_abundance(tax_table, otu_table, target)

    if source_filter is not None:
        level_filter = source if level_filter is None else TaxRank.from_name(level_filter).label
        tax_table = tax_table[tax_table[level_filter] == source_filter]

    links = pd.DataFrame({
        "Source": tax_table[source].to_numpy(),
        "Target": tax_table[target].to_numpy(),
    }).drop_duplicates()
    links["Value"] = links["Target"].map(target_means)
    links["Source_level"] = source
    links["Target_level"] = target

    # mergesort keeps ties in enumeration order
    links = links.sort_values("Value", ascending=False, kind="mergesort")
    links = links[links["Value"] > min_value]
    return links.reset_index(drop=True)[LINK_COLUMNS]


def sankey_links_dataset(dataset, source, target, source_filter=None,
                         level_filter=None, min_value=MIN_LINK_VALUE):
    """Sankey links for a MicrobiomeDataset, cleaning its tax table first."""
    return make_sankey_links(
        clean_tax_table(dataset.tax_table),
        dataset.otu_table,
        source,
        target,
        source_filter=source_filter,
        level_filter=level_filter,
        min_value=min_value,
    )
