"""Data models for the harmonizer.

Implements the structures passed between pipeline stages: the formatting
legend entry for a trait, the result of reference matching, and the running
statistics reported at the end of a run.
"""

from dataclasses import dataclass, field

from gwas_harmonizer.table import Table


@dataclass
class LegendEntry:
    """One trait's row from the GWAS formatting legend.

    Attributes:
        trait_name: Trait the row describes
        fields: Legend column name -> cell value for this row
    """

    trait_name: str
    fields: dict[str, str] = field(default_factory=dict)

    def __getitem__(self, key: str) -> str:
        return self.fields.get(key, "")

    @property
    def delimiter(self) -> str:
        return self["column_delim"]

    @property
    def hg_version(self) -> str:
        return self["hg_version"]

    @property
    def file_path(self) -> str:
        return self["file_path"]

    @property
    def effect_is_or(self) -> bool:
        return self["effect_is_OR"] == "Y"


@dataclass
class JoinResult:
    """Output of reference matching.

    Attributes:
        matched: Rows found in the catalog, in either orientation
        missing: Unmatched rows that have both hg19 and hg38 coordinates
    """

    matched: Table
    missing: Table


@dataclass
class Statistics:
    """Running counts for one harmonization run."""

    # Ingestion
    raw_rows: int = 0
    filtered_rows: int = 0

    # Liftover
    lifted_hg19: int = 0
    lifted_hg38: int = 0

    # Reference matching
    input_rows: int = 0
    direct_hits: int = 0
    flipped_hits: int = 0
    flipped_duplicates: int = 0
    duplicates_removed: int = 0
    missing: int = 0
    coordinate_incomplete: int = 0

    # Reference lookup
    lookup_batches: int = 0
    lookup_flipped: int = 0
    lookup_unchanged: int = 0
    lookup_ambiguous: int = 0

    final_rows: int = 0

    @property
    def matched(self) -> int:
        """Rows matched to the catalog after deduplication."""
        return self.direct_hits + self.flipped_hits - self.duplicates_removed
