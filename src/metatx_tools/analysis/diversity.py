# metatx_tools/analysis/diversity.py
import logging

import numpy as np
import pandas as pd
import statsmodels.api as sm
from statsmodels.formula.api import ols
from skbio.diversity import alpha_diversity

from metatx_tools.errors import InsufficientGroupsError

SHANNON = "Shannon"


def shannon_diversity(dataset):
    """
    Shannon diversity index (natural log) of each sample.

    Args:
        dataset: MicrobiomeDataset

    Returns:
        Series indexed by sample
    """
    counts = dataset.otu_table.T.to_numpy(dtype=np.int64)
    ids = [str(s) for s in dataset.sample_names]
    shannon = alpha_diversity("shannon", counts, ids=ids, base=np.e)
    return pd.Series(shannon.to_numpy(dtype=float), index=dataset.otu_table.columns, name=SHANNON)


def diversity_test(dataset, attribute, logger=None):
    """
    Perform an ANOVA test of Shannon diversity between the groups of an attribute.

    Args:
        dataset: MicrobiomeDataset (None returns None)
        attribute: Column name of the sample data
        logger: Logger instance (optional)

    Returns:
        P-value of the attribute term

    Raises:
        InsufficientGroupsError: If the attribute has fewer than 2 distinct values
    """
    if dataset is None:
        return None
    if logger is None:
        logger = logging.getLogger('metatx_tools')

    n_groups = dataset.sample_data[attribute].nunique(dropna=True)
    if n_groups < 2:
        raise InsufficientGroupsError(attribute, n_groups)

    data = pd.DataFrame({
        SHANNON: shannon_diversity(dataset).to_numpy(),
        "Group": dataset.sample_data[attribute].astype(object).to_numpy(),
    }).dropna()

    model = ols(f"{SHANNON} ~ C(Group)", data=data).fit()
    anova_table = sm.stats.anova_lm(model, typ=1)
    pvalue = float(anova_table.loc["C(Group)", "PR(>F)"])
    logger.info(f"Shannon diversity ANOVA on '{attribute}' ({n_groups} groups): p = {pvalue:.4g}")
    return pvalue
