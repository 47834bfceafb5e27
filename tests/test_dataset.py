import os
import shutil
import tempfile
import unittest

import numpy as np
import pandas as pd

from metatx_tools.config import AnalysisConfig
from metatx_tools.dataset.io import load_dataset, read_dataset, save_dataset, study_path
from metatx_tools.dataset.phylo import (
    MicrobiomeDataset,
    generate_dataset,
    get_attributes,
    parse_attribute_string,
    parse_sample_attributes,
)
from metatx_tools.errors import StudyNotFoundError
from metatx_tools.taxonomy.lineage import generate_lineage
from metatx_tools.taxonomy.ranks import LINEAGE_COLUMNS

from helpers import make_dataset, make_raw_tables


class TestParseAttributes(unittest.TestCase):

    def test_parse_packed_string(self):
        self.assertEqual(parse_attribute_string("Sex: M || Age: 30"), {"Sex": "M", "Age": "30"})

    def test_value_keeps_extra_separators(self):
        self.assertEqual(parse_attribute_string("time: 10: 30"), {"time": "10: 30"})

    def test_malformed_strings(self):
        self.assertIsNone(parse_attribute_string("no separator here"))
        self.assertIsNone(parse_attribute_string("Sex: M || broken"))
        self.assertIsNone(parse_attribute_string(""))
        self.assertIsNone(parse_attribute_string(None))
        self.assertIsNone(parse_attribute_string(np.nan))

    def test_malformed_sample_only_affects_its_row(self):
        table = parse_sample_attributes(
            ["Sex: M || Age: 30", "garbage", "Age: 50 || Site: gut"],
            ["a", "b", "c"],
        )
        self.assertEqual(list(table.columns), ["Sex", "Age", "Site"])
        self.assertEqual(table.loc["a", "Sex"], "M")
        self.assertEqual(table.loc["a", "Age"], "30")
        self.assertTrue(table.loc["b"].isna().all())
        self.assertTrue(pd.isna(table.loc["c", "Sex"]))
        self.assertEqual(table.loc["c", "Site"], "gut")

    def test_all_malformed_falls_back_to_placeholder(self):
        table = parse_sample_attributes(["garbage", None], ["a", "b"])
        self.assertEqual(list(table.columns), ["Attribute"])
        self.assertEqual(list(table.index), ["a", "b"])
        self.assertTrue(table["Attribute"].isna().all())


class TestMicrobiomeDataset(unittest.TestCase):

    def test_misaligned_tables_rejected(self):
        dataset = make_dataset()
        with self.assertRaises(ValueError):
            MicrobiomeDataset(dataset.otu_table, dataset.tax_table.iloc[::-1], dataset.sample_data)
        with self.assertRaises(ValueError):
            MicrobiomeDataset(dataset.otu_table, dataset.tax_table, dataset.sample_data.iloc[::-1])

    def test_subset_and_prune_keep_alignment(self):
        dataset = make_dataset()
        subset = dataset.subset_samples(dataset.sample_data["disease"].isin(["A", "B"]))
        self.assertEqual(subset.sample_names, ["s1", "s2", "s3", "s4"])
        self.assertEqual(list(subset.sample_data.index), subset.sample_names)

        pruned = subset.prune_empty_taxa()
        self.assertEqual(pruned.taxa_names, ["t1", "t3", "t4"])
        self.assertEqual(list(pruned.tax_table.index), pruned.taxa_names)

    def test_get_attributes(self):
        attributes = get_attributes(make_dataset())
        self.assertIn("disease", attributes)
        self.assertIn("Sex", attributes)
        self.assertNotIn("Selection", attributes)
        self.assertNotIn("All", attributes)


class TestGenerateDataset(unittest.TestCase):

    def setUp(self):
        self.counts, self.sample_info, feature_info = make_raw_tables()
        self.lineage = generate_lineage(feature_info)

    def test_zero_sum_feature_dropped(self):
        counts = pd.DataFrame([[10, 20, 30], [0, 0, 0]], index=["A", "B"], columns=["x", "y", "z"])
        sample_info = pd.DataFrame({
            "study": ["S", "S", "S"],
            "sample_attribute": ["k: 1", "k: 2", "k: 3"],
            "spots": [100, 200, 300],
        })
        lineage = pd.DataFrame([["Bacteria"] + [None] * 6] * 2, columns=LINEAGE_COLUMNS)
        dataset = generate_dataset("S", counts, sample_info, lineage)
        self.assertEqual(dataset.taxa_names, ["A"])
        self.assertEqual(list(dataset.otu_table.loc["A"]), [10, 20, 30])

    def test_study_selection_and_derived_columns(self):
        dataset = generate_dataset("S1", self.counts, self.sample_info, self.lineage)
        self.assertEqual(dataset.study, "S1")
        self.assertEqual(dataset.sample_names, ["r1", "r2", "r3"])
        self.assertEqual(list(dataset.sample_data.index), ["r1", "r2", "r3"])
        # otu2 has no reads in S1
        self.assertEqual(dataset.taxa_names, ["otu1", "otu3"])
        self.assertEqual(list(dataset.tax_table.index), ["otu1", "otu3"])

        sample_data = dataset.sample_data
        self.assertEqual(list(sample_data.columns),
                         ["Sex", "Age", "Total_Reads", "Selection", "All", "sraID"])
        self.assertEqual(sample_data.loc["r1", "Sex"], "M")
        self.assertEqual(sample_data.loc["r2", "Age"], "41")
        self.assertTrue(sample_data.loc["r3", ["Sex", "Age"]].isna().all())
        self.assertEqual(list(sample_data["Total_Reads"]), [1000, 2000, 3000])
        self.assertTrue((sample_data["Selection"] == "Group_0").all())
        self.assertTrue((sample_data["All"] == "All").all())
        self.assertEqual(list(sample_data["sraID"]), ["r1", "r2", "r3"])

    def test_counts_are_rounded(self):
        dataset = generate_dataset("S1", self.counts, self.sample_info, self.lineage)
        self.assertEqual(list(dataset.otu_table.loc["otu1"]), [10, 20, 30])
        self.assertEqual(list(dataset.otu_table.loc["otu3"]), [3, 0, 2])
        self.assertTrue(np.issubdtype(dataset.otu_table.dtypes.iloc[0], np.integer))

    def test_missing_attribute_column_uses_placeholder(self):
        sample_info = self.sample_info.drop(columns=["sample_attribute"])
        dataset = generate_dataset("S2", self.counts, sample_info, self.lineage)
        self.assertIn("Attribute", dataset.sample_data.columns)
        self.assertTrue(dataset.sample_data["Attribute"].isna().all())
        self.assertEqual(dataset.taxa_names, ["otu1", "otu2"])

    def test_custom_column_names(self):
        sample_info = self.sample_info.rename(columns={"study": "project", "spots": "reads"})
        config = AnalysisConfig(study_column="project", read_depth_column="reads")
        dataset = generate_dataset("S2", self.counts, sample_info, self.lineage, config=config)
        self.assertEqual(list(dataset.sample_data["Total_Reads"]), [1500, 2500, 3500, 4500])
        self.assertEqual(get_attributes(dataset)[0], "tissue")

    def test_unknown_study(self):
        with self.assertRaises(ValueError):
            generate_dataset("S9", self.counts, self.sample_info, self.lineage)

    def test_shape_mismatch(self):
        with self.assertRaises(ValueError):
            generate_dataset("S1", self.counts, self.sample_info.iloc[:3], self.lineage)


class TestDatasetIO(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def test_save_and_load(self):
        dataset = make_dataset()
        path = save_dataset(dataset, self.tmpdir)
        self.assertEqual(path, study_path("SRP000001", self.tmpdir))
        self.assertTrue(os.path.isfile(path))

        loaded = load_dataset("SRP000001", self.tmpdir)
        pd.testing.assert_frame_equal(loaded.otu_table, dataset.otu_table)
        pd.testing.assert_frame_equal(loaded.sample_data, dataset.sample_data)
        self.assertEqual(loaded.study, "SRP000001")

    def test_missing_study(self):
        self.assertIsNone(load_dataset("SRP999999", self.tmpdir))
        with self.assertRaises(StudyNotFoundError):
            read_dataset("SRP999999", self.tmpdir)


if __name__ == "__main__":
    unittest.main()
