# metatx_tools/__init__.py
"""
metatx_tools - Exploratory microbiome / metatranscriptomic analysis per study.

This package provides the data handling behind a per-study exploration workflow:
1. Building lineage tables from semicolon-delimited taxonomy strings
2. Assembling per-study datasets (counts + lineage + sample attributes)
3. Relative abundance and Sankey link tables for visualization
4. Negative binomial differential expression between sample groups
5. Shannon diversity tests
"""

__version__ = "0.1.0"

from metatx_tools.logger import setup_logger, log_print
from metatx_tools.config import AnalysisConfig, load_config, init_session
from metatx_tools.errors import (
    MetatxError,
    InsufficientGroupsError,
    ZeroReadDepthError,
    StudyNotFoundError,
)

from metatx_tools.taxonomy import TaxRank, generate_lineage, clean_tax_table, taxids_to_names
from metatx_tools.dataset import (
    MicrobiomeDataset,
    generate_dataset,
    get_attributes,
    load_dataset,
    save_dataset,
)
from metatx_tools.analysis import (
    relative_counts,
    relative_counts_dataset,
    mf_means,
    make_sankey_links,
    sankey_links_dataset,
    ModelFitter,
    NegativeBinomialFitter,
    differential_table,
    glm_feature_stats,
    shannon_diversity,
    diversity_test,
)
