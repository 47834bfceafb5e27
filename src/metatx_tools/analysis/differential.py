# metatx_tools/analysis/differential.py
"""
Differential abundance between two sample groups with negative binomial GLMs.

The model fitting itself sits behind the ModelFitter interface; the default
NegativeBinomialFitter uses statsmodels. differential_table() prepares the
dataset (subset, prune, relabel, size factors), runs the fitter and extracts
Wald test results in a DESeq2-like table.
"""

import logging
import warnings
from typing import List, Optional

import numpy as np
import pandas as pd
import statsmodels.api as sm
from statsmodels.discrete.discrete_model import NegativeBinomial
from statsmodels.stats.multitest import multipletests
from statsmodels.tools.sm_exceptions import ConvergenceWarning, HessianInversionWarning

from metatx_tools.dataset.phylo import TOTAL_READS
from metatx_tools.errors import InsufficientGroupsError, ZeroReadDepthError
from metatx_tools.taxonomy.lineage import taxids_to_names

INTERCEPT = "Intercept"
COEFFICIENT_COLUMNS = ["feature", "coefficient", "estimate", "std_error", "statistic", "pvalue", "max_cooks"]
RESULT_COLUMNS = ["baseMean", "log2FoldChange", "lfcSE", "stat", "pvalue", "padj"]
GLM_STAT_COLUMNS = ["Estimate", "Std. Error", "z value", "Pr(>|z|)"]
MIN_DISPERSION = 1e-8
CONDITION = "Condition"
# read depth covariate in millions of reads
DEPTH_SCALE = 1e6


class ModelFitter:
    """
    Fits one count model per feature.

    fit() receives the count table (features x samples), the design matrix
    (samples x coefficients, including the intercept column) and the size
    factors (one per sample), and returns a coefficient table with one row
    per feature and non-intercept coefficient, with the columns listed in
    COEFFICIENT_COLUMNS.
    """

    def fit(self, counts: pd.DataFrame, design: pd.DataFrame, size_factors: pd.Series) -> pd.DataFrame:
        raise NotImplementedError


class NegativeBinomialFitter(ModelFitter):
    """
    Negative binomial GLM per feature with log(size factor) offsets.

    The dispersion of each feature is estimated with the NB2 maximum
    likelihood model, then a GLM with that fixed dispersion provides the Wald
    statistics and Cook's distances.
    """

    def __init__(self, maxiter=200, compute_cooks=True, logger=None):
        self.maxiter = maxiter
        self.compute_cooks = compute_cooks
        self.logger = logger or logging.getLogger('metatx_tools')

    def estimate_dispersion(self, y, design, offset):
        nb = NegativeBinomial(y, design, loglike_method="nb2", offset=offset)
        result = nb.fit(method="bfgs", maxiter=self.maxiter, disp=0)
        alpha = float(np.asarray(result.params)[-1])
        if not np.isfinite(alpha):
            return MIN_DISPERSION
        return max(alpha, MIN_DISPERSION)

    def fit_feature(self, y, design, offset):
        """Fit one feature; returns (GLM results, max Cook's distance)."""
        alpha = self.estimate_dispersion(y, design, offset)
        family = sm.families.NegativeBinomial(alpha=alpha)
        result = sm.GLM(y, design, family=family, offset=offset).fit(maxiter=self.maxiter)
        max_cooks = np.nan
        if self.compute_cooks:
            max_cooks = float(np.nanmax(result.get_influence().cooks_distance[0]))
        return result, max_cooks

    def fit(self, counts, design, size_factors):
        design = design.astype(float)
        offset = np.log(np.asarray(size_factors, dtype=float))
        coefficients = [c for c in design.columns if c != INTERCEPT]
        self.logger.info(f"Fitting negative binomial GLMs for {counts.shape[0]} features")

        rows = []
        n_failed = 0
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", ConvergenceWarning)
            warnings.simplefilter("ignore", HessianInversionWarning)
            warnings.simplefilter("ignore", RuntimeWarning)
            for i, (feature, y) in enumerate(counts.iterrows()):
                if i % 100 == 0:
                    self.logger.debug(f"Fitting feature {i+1}/{counts.shape[0]}")
                try:
                    result, max_cooks = self.fit_feature(y.to_numpy(dtype=float), design, offset)
                except Exception as e:
                    n_failed += 1
                    self.logger.warning(f"Model fit failed for feature {feature}: {str(e)}")
                    result, max_cooks = None, np.nan

                for coef in coefficients:
                    if result is None:
                        rows.append([feature, coef, np.nan, np.nan, np.nan, np.nan, np.nan])
                    else:
                        rows.append([
                            feature, coef,
                            result.params[coef], result.bse[coef],
                            result.tvalues[coef], result.pvalues[coef],
                            max_cooks,
                        ])

        if n_failed:
            self.logger.warning(f"{n_failed} of {counts.shape[0]} feature fits failed")
        return pd.DataFrame(rows, columns=COEFFICIENT_COLUMNS)


def condition_labels(values, cond1=None, cond2=None):
    """
    Relabel attribute values as valid condition names.

    With both conditions given, cond1 -> 'cond1' and cond2 -> 'cond2'.
    Otherwise every distinct value gets 'cond<k>' in sorted order.
    """
    if cond1 is not None and cond2 is not None:
        return values.map({cond1: "cond1", cond2: "cond2"})
    codes = pd.Categorical(values.astype(str)).codes + 1
    return pd.Series([f"cond{c}" for c in codes], index=values.index)


def size_factors_from_depth(total_reads):
    """
    Size factors log10(depth) / median(log10(depth)).

    Raises:
        ZeroReadDepthError: If any depth is zero, negative or missing
    """
    depth = pd.to_numeric(total_reads, errors="coerce").astype(float)
    bad = depth.isna() | (depth <= 0)
    if bad.any():
        raise ZeroReadDepthError(depth.index[bad])
    log_depth = np.log10(depth)
    factors = log_depth / log_depth.median()
    if not (np.isfinite(factors).all() and (factors > 0).all()):
        raise ValueError("Size factors must be finite and positive; read depths must be greater than 1")
    return factors


def design_matrix(labels, attribute):
    """Intercept plus one treatment indicator per non-reference condition."""
    levels = sorted(labels.unique(), key=lambda x: int(x[len("cond"):]))
    design = pd.DataFrame({INTERCEPT: 1.0}, index=labels.index)
    for level in levels[1:]:
        design[f"{attribute}_{level}"] = (labels == level).astype(float)
    return design


def adjust_pvalues(pvalues):
    """Benjamini-Hochberg adjustment over the non-null p-values."""
    padj = pd.Series(np.nan, index=pvalues.index)
    ok = pvalues.notna()
    if ok.any():
        padj[ok] = multipletests(pvalues[ok].to_numpy(), method="fdr_bh")[1]
    return padj


def differential_table(dataset, attribute, cond1=None, cond2=None,
                       fitter: Optional[ModelFitter] = None, cooks_cutoff=None, logger=None):
    """
    Perform differential expression analysis between conditions of an attribute.

    If cond1 and cond2 are both None then all conditions are taken and the
    reported contrast is the last condition against the first.

    Args:
        dataset: MicrobiomeDataset (None returns None)
        attribute: Column name of the sample data
        cond1: First condition
        cond2: Second condition
        fitter: ModelFitter (default: NegativeBinomialFitter)
        cooks_cutoff: Cook's distance above which a feature's p-value is set
            to NA; None disables outlier filtering
        logger: Logger instance (optional)

    Returns:
        DataFrame with baseMean, log2FoldChange, lfcSE, stat, pvalue, padj
        indexed by feature, sorted by padj (NA last), or None
    """
    if dataset is None:
        return None
    if logger is None:
        logger = logging.getLogger('metatx_tools')
    if fitter is None:
        fitter = NegativeBinomialFitter(logger=logger)

    tmp = dataset
    if cond1 is not None and cond2 is not None:
        tmp = tmp.subset_samples(tmp.sample_data[attribute].isin([cond1, cond2]))

    # Remove samples with NA
    tmp = tmp.subset_samples(tmp.sample_data[attribute].notna())
    tmp = tmp.prune_empty_taxa()
    if tmp.n_samples == 0 or tmp.n_taxa == 0:
        logger.warning(f"No samples or taxa left for attribute '{attribute}' ({cond1} vs {cond2})")
        return None

    labels = condition_labels(tmp.sample_data[attribute], cond1, cond2)
    n_groups = labels.nunique()
    if n_groups < 2:
        raise InsufficientGroupsError(attribute, n_groups)

    design = design_matrix(labels, attribute)
    size_factors = size_factors_from_depth(tmp.sample_data[TOTAL_READS])
    logger.info(
        f"Differential analysis on '{attribute}': {tmp.n_samples} samples, "
        f"{tmp.n_taxa} taxa, {n_groups} conditions"
    )

    coef_table = fitter.fit(tmp.otu_table, design, size_factors)
    contrast = design.columns[-1]
    coef = (coef_table[coef_table["coefficient"] == contrast]
            .set_index("feature")
            .reindex(tmp.otu_table.index))

    pvalue = coef["pvalue"].astype(float)
    if cooks_cutoff is not None:
        outliers = coef["max_cooks"].astype(float) > cooks_cutoff
        if outliers.any():
            logger.info(f"{int(outliers.sum())} features flagged as outliers by Cook's distance")
        pvalue = pvalue.mask(outliers)

    result = pd.DataFrame({
        "baseMean": tmp.otu_table.div(size_factors.to_numpy(), axis=1).mean(axis=1),
        "log2FoldChange": coef["estimate"].astype(float) / np.log(2),
        "lfcSE": coef["std_error"].astype(float) / np.log(2),
        "stat": coef["statistic"].astype(float),
        "pvalue": pvalue,
    }, index=tmp.otu_table.index)
    result["padj"] = adjust_pvalues(result["pvalue"])
    return result.sort_values("padj", na_position="last", kind="mergesort")[RESULT_COLUMNS]


def glm_feature_stats(dataset, taxids: List, attribute, cond1, cond2, logger=None):
    """
    Negative binomial GLM statistics of single taxa for an attribute.

    For each taxon the model count ~ attribute + Total_Reads is fitted on the
    samples in cond1 or cond2, and the attribute coefficient is reported.
    Read depth enters the model in millions of reads. The dispersion of each
    taxon is estimated first, then the GLM with that fixed dispersion gives
    the Wald statistics.

    Args:
        dataset: MicrobiomeDataset (None returns None)
        taxids: Feature IDs to test
        attribute: Column name of the sample data
        cond1: Reference condition
        cond2: Compared condition
        logger: Logger instance (optional)

    Returns:
        DataFrame indexed by Species name with Estimate, Std. Error, z value
        and Pr(>|z|) columns
    """
    if dataset is None:
        return None
    if logger is None:
        logger = logging.getLogger('metatx_tools')

    tmp = dataset.subset_samples(dataset.sample_data[attribute].isin([cond1, cond2]))
    depth = pd.to_numeric(tmp.sample_data[TOTAL_READS], errors="coerce").to_numpy(dtype=float)
    design = pd.DataFrame({
        INTERCEPT: 1.0,
        CONDITION: (tmp.sample_data[attribute] == cond2).astype(float).to_numpy(),
        TOTAL_READS: depth / DEPTH_SCALE,
    }, index=tmp.sample_data.index)
    offset = np.zeros(tmp.n_samples)
    fitter = NegativeBinomialFitter(compute_cooks=False, logger=logger)

    rows = []
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ConvergenceWarning)
        warnings.simplefilter("ignore", HessianInversionWarning)
        warnings.simplefilter("ignore", RuntimeWarning)
        for taxid in taxids:
            y = tmp.otu_table.loc[taxid].to_numpy(dtype=float)
            try:
                result, _ = fitter.fit_feature(y, design, offset)
                rows.append([result.params[CONDITION], result.bse[CONDITION],
                             result.tvalues[CONDITION], result.pvalues[CONDITION]])
            except Exception as e:
                logger.warning(f"GLM failed for taxon {taxid}: {str(e)}")
                rows.append([np.nan] * len(GLM_STAT_COLUMNS))

    return pd.DataFrame(rows, columns=GLM_STAT_COLUMNS, index=taxids_to_names(tmp, list(taxids)))
