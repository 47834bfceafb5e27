# metatx_tools/taxonomy/lineage.py
import logging

import pandas as pd

from metatx_tools.taxonomy.ranks import LINEAGE_COLUMNS, TaxRank

# Kingdom..Genus come from the lineage string, Species from the display name
N_LINEAGE_TOKENS = len(LINEAGE_COLUMNS) - 1
DEFAULT_KINGDOM = "Viruses"
UNCLASSIFIED = "Unclassified"
NA_SUFFIX = "_NA"


def split_lineage(lineage):
    """
    Split a semicolon-delimited lineage into exactly Kingdom..Genus tokens.

    Short lineages are padded with empty tokens and long ones truncated, so a
    malformed string never shifts the columns of the row.
    """
    tokens = lineage.split(";") if isinstance(lineage, str) else []
    tokens = tokens[:N_LINEAGE_TOKENS]
    return tokens + [""] * (N_LINEAGE_TOKENS - len(tokens))


def generate_lineage(feature_info, lineage_col="Lineage", name_col="Name", logger=None):
    """
    Generate the lineage table from a feature description table.

    Args:
        feature_info: DataFrame with one row per feature
        lineage_col: Column holding the raw lineage string
        name_col: Column holding the display (Species) name
        logger: Logger instance (optional)

    Returns:
        DataFrame indexed like feature_info with columns Kingdom..Species
    """
    if logger is None:
        logger = logging.getLogger('metatx_tools')

    for col in (lineage_col, name_col):
        if col not in feature_info.columns:
            raise KeyError(f"Feature table is missing column '{col}'")

    raw = feature_info[lineage_col]
    n_tokens = raw.map(lambda x: len(x.split(";")) if isinstance(x, str) else 0)
    mismatched = int((n_tokens != N_LINEAGE_TOKENS).sum())
    if mismatched:
        logger.warning(
            f"{mismatched} lineage strings do not have {N_LINEAGE_TOKENS} ranks; "
            "missing ranks set to NA, extra ranks dropped"
        )

    rows = [
        split_lineage(lineage) + [name]
        for lineage, name in zip(raw, feature_info[name_col])
    ]
    lineage = pd.DataFrame(rows, index=feature_info.index, columns=LINEAGE_COLUMNS, dtype=object)

    kingdom = TaxRank.KINGDOM.label
    no_kingdom = lineage[kingdom].isna() | (lineage[kingdom] == "")
    lineage.loc[no_kingdom, kingdom] = DEFAULT_KINGDOM
    lineage = lineage.mask(lineage == "")
    return lineage


def clean_tax_table(tax_table):
    """
    Replace NAs with {Rank}_NA, where Rank is the last known rank of the row.

    Ancestors are looked up in the original table, so a filled cell never
    becomes the ancestor of a cell further right. Cells with no known ancestor
    at all get 'Unclassified_NA'.

    Args:
        tax_table: Lineage table (features x ranks)

    Returns:
        Cleaned copy of the table with string values only
    """
    tax = pd.DataFrame(tax_table).astype(object)
    tax = tax.where(tax.isna(), tax.astype(str))

    nearest_known = tax.ffill(axis=1).fillna(UNCLASSIFIED).astype(str)
    return tax.where(tax.notna(), nearest_known + NA_SUFFIX)


def taxids_to_names(dataset, taxids):
    """
    Transform taxIDs to the corresponding Species names.

    Args:
        dataset: MicrobiomeDataset
        taxids: A single taxID or a list of taxIDs

    Returns:
        Species name, or a list of names when a list was given
    """
    species = dataset.tax_table[TaxRank.SPECIES.label]
    if isinstance(taxids, (list, tuple, pd.Index)):
        return [str(name) for name in species.loc[list(taxids)]]
    return str(species.loc[taxids])
