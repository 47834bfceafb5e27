# metatx_tools/analysis/__init__.py
"""Analysis functions for per-study datasets."""

from metatx_tools.analysis.abundance import (
    relative_counts,
    relative_counts_dataset,
    mf_means
)

from metatx_tools.analysis.sankey import (
    make_sankey_links,
    sankey_links_dataset
)

from metatx_tools.analysis.differential import (
    ModelFitter,
    NegativeBinomialFitter,
    differential_table,
    glm_feature_stats
)

from metatx_tools.analysis.diversity import (
    shannon_diversity,
    diversity_test
)
