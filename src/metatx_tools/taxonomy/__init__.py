# metatx_tools/taxonomy/__init__.py
"""Taxonomic ranks and lineage tables."""

from metatx_tools.taxonomy.ranks import TaxRank, LINEAGE_COLUMNS

from metatx_tools.taxonomy.lineage import (
    generate_lineage,
    clean_tax_table,
    taxids_to_names
)
