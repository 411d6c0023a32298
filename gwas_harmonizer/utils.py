"""Utility functions and column layouts for the harmonizer."""

# Columns of the table entering reference matching (after liftover)
MATCH_INPUT_COLUMNS: list[str] = [
    "chr_hg19",
    "pos_hg19",
    "ref",
    "alt",
    "effect_size",
    "standard_error",
    "EAF",
    "pvalue",
    "pvalue_het",
    "N_total",
    "N_case",
    "N_ctrl",
    "chr_hg38",
    "pos_hg38",
]

# Fixed leading columns of the harmonized output; catalog annotations follow
OUTPUT_COLUMNS: list[str] = [
    "rsid",
    "unique_id",
    *MATCH_INPUT_COLUMNS,
]

# Reference catalog columns forming the join key, in key order
CATALOG_KEY_COLUMNS: list[str] = ["chr", "pos_hg19", "ref", "alt", "pos_hg38"]

# Input columns probed against CATALOG_KEY_COLUMNS
INPUT_KEY_COLUMNS: list[str] = ["chr_hg19", "pos_hg19", "ref", "alt", "pos_hg38"]

UNIQUE_ID = "unique_id"

# Numeric chromosome codes used by some sources for the sex/mito chromosomes
CHROMOSOME_ALIASES: dict[str, str] = {"23": "X", "24": "Y", "25": "M"}


def make_unique_id(chr_val: str, pos: str, ref: str, alt: str) -> str:
    """Create the Unique Variant Key used for deduplication.

    Example:
        >>> make_unique_id("1", "100", "A", "G")
        '1_100_A_G'
    """
    return f"{chr_val}_{pos}_{ref}_{alt}"


def normalize_chromosome(chr_val: str) -> str:
    """Normalize a chromosome label.

    Strips a "chr" prefix and maps 23/24/25 to X/Y/M.

    Example:
        >>> normalize_chromosome("chr1")
        '1'
        >>> normalize_chromosome("23")
        'X'
    """
    if chr_val.startswith("chr"):
        chr_val = chr_val[3:]
    return CHROMOSOME_ALIASES.get(chr_val, chr_val)


def output_layout(annotation_columns: list[str]) -> list[str]:
    """Full output column order: fixed columns then catalog annotations."""
    return OUTPUT_COLUMNS + [c for c in annotation_columns if c not in OUTPUT_COLUMNS]
