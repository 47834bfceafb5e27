# metatx_tools/taxonomy/ranks.py
"""Taxonomic ranks used as lineage table columns."""

from enum import Enum


class TaxRank(Enum):
    KINGDOM = "Kingdom"
    PHYLUM = "Phylum"
    CLASS = "Class"
    ORDER = "Order"
    FAMILY = "Family"
    GENUS = "Genus"
    SPECIES = "Species"

    @property
    def label(self):
        return self.value

    @property
    def index(self):
        return list(TaxRank).index(self)

    def ancestors(self):
        """Ranks above this one, from Kingdom down."""
        return list(TaxRank)[:self.index]

    @classmethod
    def names(cls):
        return [rank.value for rank in cls]

    @classmethod
    def from_index(cls, index):
        ranks = list(cls)
        if not 0 <= index < len(ranks):
            raise ValueError(f"Rank index must be between 0 and {len(ranks) - 1}, got {index}")
        return ranks[index]

    @classmethod
    def from_name(cls, name):
        """Look up a rank by column name (case-insensitive) or pass a TaxRank through."""
        if isinstance(name, cls):
            return name
        for rank in cls:
            if rank.value.lower() == str(name).lower():
                return rank
        raise ValueError(f"Unknown taxonomic rank '{name}'. Expected one of {cls.names()}")


LINEAGE_COLUMNS = TaxRank.names()
