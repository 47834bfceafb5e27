import numpy as np
import pandas as pd

from metatx_tools.analysis.differential import COEFFICIENT_COLUMNS, ModelFitter
from metatx_tools.dataset.phylo import MicrobiomeDataset
from metatx_tools.taxonomy.ranks import LINEAGE_COLUMNS


def make_dataset(study="SRP000001"):
    """Small dataset: 4 taxa x 6 samples with a 'disease' attribute (A, B, C, NA)."""
    samples = ["s1", "s2", "s3", "s4", "s5", "s6"]
    taxa = ["t1", "t2", "t3", "t4"]
    otu = pd.DataFrame(
        [[10, 12, 30, 35, 5, 7],
         [0, 0, 0, 0, 9, 3],
         [5, 6, 2, 1, 4, 4],
         [1, 0, 2, 3, 0, 0]],
        index=taxa, columns=samples,
    )
    tax = pd.DataFrame(
        [["Bacteria", "Firmicutes", "Bacilli", "Lactobacillales", "Lactobacillaceae", "Lactobacillus", "Lactobacillus gasseri"],
         ["Bacteria", "Firmicutes", "Clostridia", None, None, None, "Clostridium sp."],
         ["Bacteria", "Proteobacteria", "Gammaproteobacteria", "Enterobacterales", "Enterobacteriaceae", "Escherichia", "Escherichia coli"],
         ["Viruses", None, None, None, None, None, "crAssphage"]],
        index=taxa, columns=LINEAGE_COLUMNS, dtype=object,
    )
    sample_data = pd.DataFrame({
        "disease": ["A", "A", "B", "B", "C", np.nan],
        "Sex": ["M", "F", "M", "F", "M", "F"],
        "Total_Reads": [1000, 2000, 1500, 3000, 1200, 1800],
        "Selection": "Group_0",
        "All": "All",
        "sraID": samples,
    }, index=samples)
    return MicrobiomeDataset(otu, tax, sample_data, study=study)


def make_raw_tables():
    """Raw input tables for two studies, as read from the input CSV files."""
    counts = pd.DataFrame(
        [[10.2, 20, 30, 1, 2, 3, 4],
         [0, 0, 0, 5, 6, 7, 8],
         [3, 0, 1.6, 0, 0, 0, 0]],
        index=["otu1", "otu2", "otu3"],
        columns=["r1", "r2", "r3", "r4", "r5", "r6", "r7"],
    )
    sample_info = pd.DataFrame({
        "study": ["S1", "S1", "S1", "S2", "S2", "S2", "S2"],
        "sample_attribute": [
            "Sex: M || Age: 30",
            "Sex: F || Age: 41",
            "malformed attribute",
            "tissue: gut",
            "tissue: gut",
            "tissue: skin",
            "tissue: skin",
        ],
        "spots": [1000, 2000, 3000, 1500, 2500, 3500, 4500],
    })
    feature_info = pd.DataFrame({
        "Lineage": [
            "Bacteria;Firmicutes;Bacilli;Lactobacillales;Lactobacillaceae;Lactobacillus",
            "Bacteria;Bacteroidetes;Bacteroidia",
            ";;;;;",
        ],
        "Name": ["Lactobacillus gasseri", "Bacteroides sp.", "phage X"],
    }, index=["otu1", "otu2", "otu3"])
    return counts, sample_info, feature_info


class FakeFitter(ModelFitter):
    """Returns fixed estimates and records what it was called with."""

    def __init__(self, pvalues=None, cooks=None):
        self.pvalues = pvalues or {}
        self.cooks = cooks or {}
        self.calls = []

    def fit(self, counts, design, size_factors):
        self.calls.append((counts.copy(), design.copy(), size_factors.copy()))
        rows = []
        for i, feature in enumerate(counts.index):
            for coef in design.columns[1:]:
                rows.append([
                    feature, coef,
                    0.5 * (i + 1), 0.25, 2.0 * (i + 1),
                    self.pvalues.get(feature, 0.01 * (i + 1)),
                    self.cooks.get(feature, 0.1),
                ])
        return pd.DataFrame(rows, columns=COEFFICIENT_COLUMNS)
