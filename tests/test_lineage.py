import unittest

import numpy as np
import pandas as pd

from metatx_tools.taxonomy.lineage import (
    clean_tax_table,
    generate_lineage,
    split_lineage,
    taxids_to_names,
)
from metatx_tools.taxonomy.ranks import LINEAGE_COLUMNS, TaxRank

from helpers import make_dataset


class TestTaxRank(unittest.TestCase):

    def test_names_are_ordered(self):
        self.assertEqual(
            TaxRank.names(),
            ["Kingdom", "Phylum", "Class", "Order", "Family", "Genus", "Species"],
        )

    def test_lookup_by_name_and_index(self):
        self.assertIs(TaxRank.from_name("genus"), TaxRank.GENUS)
        self.assertIs(TaxRank.from_name(TaxRank.ORDER), TaxRank.ORDER)
        self.assertIs(TaxRank.from_index(0), TaxRank.KINGDOM)
        self.assertEqual(TaxRank.FAMILY.index, 4)
        self.assertEqual(TaxRank.CLASS.ancestors(), [TaxRank.KINGDOM, TaxRank.PHYLUM])

    def test_unknown_rank(self):
        with self.assertRaises(ValueError):
            TaxRank.from_name("Strain")
        with self.assertRaises(ValueError):
            TaxRank.from_index(7)


class TestGenerateLineage(unittest.TestCase):

    def test_full_lineage(self):
        feature_info = pd.DataFrame({
            "Lineage": ["Bacteria;Firmicutes;Bacilli;Lactobacillales;Lactobacillaceae;Lactobacillus"],
            "Name": ["Lactobacillus gasseri"],
        }, index=["f1"])
        lineage = generate_lineage(feature_info)
        self.assertEqual(list(lineage.columns), LINEAGE_COLUMNS)
        self.assertEqual(list(lineage.index), ["f1"])
        self.assertEqual(lineage.loc["f1", "Genus"], "Lactobacillus")
        self.assertEqual(lineage.loc["f1", "Species"], "Lactobacillus gasseri")

    def test_short_lineage_is_padded(self):
        feature_info = pd.DataFrame({
            "Lineage": ["Bacteria;Bacteroidetes", "Bacteria"],
            "Name": ["Bacteroides sp.", "unknown bacterium"],
        }, index=["f1", "f2"])
        lineage = generate_lineage(feature_info)
        self.assertEqual(lineage.shape, (2, 7))
        self.assertEqual(lineage.loc["f1", "Phylum"], "Bacteroidetes")
        self.assertTrue(lineage.loc["f1", ["Class", "Order", "Family", "Genus"]].isna().all())
        self.assertTrue(lineage.loc["f2", "Phylum":"Genus"].isna().all())
        self.assertEqual(lineage.loc["f2", "Species"], "unknown bacterium")

    def test_long_lineage_is_truncated(self):
        self.assertEqual(split_lineage("a;b;c;d;e;f;g;h"), ["a", "b", "c", "d", "e", "f"])

    def test_empty_kingdom_defaults_to_viruses(self):
        feature_info = pd.DataFrame({
            "Lineage": [";;;;;", ";Uroviricota;;;;", np.nan],
            "Name": ["phage X", "phage Y", "phage Z"],
        }, index=["v1", "v2", "v3"])
        lineage = generate_lineage(feature_info)
        self.assertTrue((lineage["Kingdom"] == "Viruses").all())
        self.assertEqual(lineage.loc["v2", "Phylum"], "Uroviricota")
        self.assertTrue(lineage.loc["v1", "Phylum":"Genus"].isna().all())

    def test_empty_tokens_become_na(self):
        feature_info = pd.DataFrame({
            "Lineage": ["Bacteria;;Bacilli;;;Bacillus"],
            "Name": [""],
        }, index=["f1"])
        lineage = generate_lineage(feature_info)
        row = lineage.loc["f1"]
        self.assertTrue(pd.isna(row["Phylum"]))
        self.assertTrue(pd.isna(row["Order"]))
        self.assertTrue(pd.isna(row["Species"]))
        self.assertEqual(row["Genus"], "Bacillus")

    def test_missing_column(self):
        with self.assertRaises(KeyError):
            generate_lineage(pd.DataFrame({"Name": ["x"]}))


class TestCleanTaxTable(unittest.TestCase):

    def test_nearest_ancestor(self):
        tax = pd.DataFrame(
            [["Bacteria", None, "Bacilli", None, None, "Bacillus", None]],
            columns=LINEAGE_COLUMNS, index=["f1"],
        )
        cleaned = clean_tax_table(tax)
        self.assertEqual(
            list(cleaned.loc["f1"]),
            ["Bacteria", "Bacteria_NA", "Bacilli", "Bacilli_NA", "Bacilli_NA", "Bacillus", "Bacillus_NA"],
        )

    def test_rows_are_independent(self):
        tax = pd.DataFrame(
            [["Bacteria", "Firmicutes", None, None, None, None, "sp1"],
             ["Viruses", None, None, None, None, None, "phage"]],
            columns=LINEAGE_COLUMNS, index=["f1", "f2"],
        )
        cleaned = clean_tax_table(tax)
        self.assertEqual(cleaned.loc["f1", "Genus"], "Firmicutes_NA")
        self.assertEqual(cleaned.loc["f2", "Phylum"], "Viruses_NA")
        self.assertEqual(cleaned.loc["f2", "Genus"], "Viruses_NA")
        self.assertEqual(cleaned.loc["f2", "Species"], "phage")

    def test_row_without_any_label(self):
        tax = pd.DataFrame([[None] * 7], columns=LINEAGE_COLUMNS, index=["f1"])
        cleaned = clean_tax_table(tax)
        self.assertTrue((cleaned.loc["f1"] == "Unclassified_NA").all())

    def test_input_not_mutated(self):
        tax = pd.DataFrame(
            [["Bacteria", None, None, None, None, None, "sp1"]],
            columns=LINEAGE_COLUMNS,
        )
        clean_tax_table(tax)
        self.assertTrue(pd.isna(tax.loc[0, "Phylum"]))

    def test_no_na_left(self):
        cleaned = clean_tax_table(make_dataset().tax_table)
        self.assertFalse(cleaned.isna().any().any())


class TestTaxidsToNames(unittest.TestCase):

    def test_single_and_list(self):
        dataset = make_dataset()
        self.assertEqual(taxids_to_names(dataset, "t3"), "Escherichia coli")
        self.assertEqual(taxids_to_names(dataset, ["t1", "t4"]), ["Lactobacillus gasseri", "crAssphage"])


if __name__ == "__main__":
    unittest.main()
