"""Ingestion and column normalization of raw summary statistics.

Turns a trait's raw summary-statistic file into the canonical table:

a) rename source columns to canonical names using the legend
b) strip "chr" prefixes and map 23/24/25 to X/Y/M
c) upper-case alleles
d) drop variants with ambiguous (I/D/IND/DEL) alleles
e) drop variants with non-finite effect estimates
f) convert odds ratios to log odds (betas)
g) fill in sample-size columns, deriving totals from case/control counts
h) reorder to the canonical layout and tag chr/pos with the genome build
"""

import logging
import math
from collections.abc import Callable
from pathlib import Path

from gwas_harmonizer.exceptions import LegendError, SchemaError
from gwas_harmonizer.flip import format_number, parse_number
from gwas_harmonizer.models import LegendEntry, Statistics
from gwas_harmonizer.table import Table, is_missing
from gwas_harmonizer.utils import normalize_chromosome

logger = logging.getLogger(__name__)

STAGE = "preformatting"

# Legend fields naming a source column that is renamed to the field's name
ASSIGN_COLUMNS: list[str] = [
    "rsid",
    "chr",
    "pos",
    "ref",
    "alt",
    "effect_size",
    "standard_error",
    "EAF",
    "pvalue",
    "pvalue_het",
    "N_total_column",
    "N_case_column",
    "N_ctrl_column",
]

PREFORMAT_COLUMNS: list[str] = [
    "chr",
    "pos",
    "ref",
    "alt",
    "EAF",
    "effect_size",
    "standard_error",
    "pvalue",
    "pvalue_het",
    "N_total",
    "N_case",
    "N_ctrl",
]

DELIMITERS: dict[str, str] = {
    "\t": "\t",
    "\\t": "\t",
    "tab": "\t",
    ",": ",",
    "comma": ",",
    "space": " ",
}

SUPPORTED_BUILDS = {"hg17", "hg18", "hg19", "hg38"}

AMBIGUOUS_ALLELES = {"I", "D", "IND", "DEL"}
NONFINITE_EFFECTS = {"Nan", "NaN", "NA", "Inf", "-Inf", "inf", "-inf"}

SAMPLE_SIZE_GROUPS = ["total", "case", "ctrl"]


def resolve_input_file(entry: LegendEntry, raw_input_dir: Path) -> Path:
    """Locate the trait's raw file under ``raw_input_dir``.

    Raises:
        FileNotFoundError: If the directory or file does not exist
    """
    if not raw_input_dir.exists():
        raise FileNotFoundError(f"Raw input directory {raw_input_dir} does not exist")
    if not raw_input_dir.is_dir():
        raise FileNotFoundError(f"Raw input directory {raw_input_dir} is not a directory")

    raw_input_file = raw_input_dir / entry.file_path.lstrip("/")
    if not raw_input_file.exists():
        raise FileNotFoundError(f"Raw input file {raw_input_file} does not exist")
    if not raw_input_file.is_file():
        raise FileNotFoundError(f"Raw input file {raw_input_file} is not a file")
    return raw_input_file


def read_raw_file(filepath: Path, column_delim: str) -> Table:
    """Read a raw summary-statistic file with the legend's delimiter.

    Raises:
        LegendError: If the delimiter is unknown, or the file splits into
            fewer than five columns (usually a misspecified delimiter)
    """
    delimiter = DELIMITERS.get(column_delim)
    if delimiter is None:
        raise LegendError(f"Invalid column delimiter {column_delim!r}")

    table = Table.read(filepath, delimiter=delimiter)
    if len(table.columns) <= 4:
        raise LegendError(
            "Raw input file has less than 5 columns, likely the column delimiter "
            "has been misspecified"
        )
    return table


def assign_column_names(table: Table, entry: LegendEntry) -> None:
    """Rename source columns named in the legend to canonical names."""
    mapping: dict[str, str] = {}
    for name in ASSIGN_COLUMNS:
        source = entry[name]
        if source and source != "NA" and source not in mapping:
            mapping[source] = name

    renamed = [mapping.get(c, c) for c in table.columns]
    for name in set(renamed):
        if renamed.count(name) > 1:
            raise LegendError(
                f"Column {name!r} appears more than once after applying the "
                f"legend for trait_name={entry.trait_name}"
            )
    table.rename_columns(mapping)
    logger.debug(f"Header after renaming: {table.columns}")


def normalize_alleles(table: Table) -> None:
    """Normalize chromosome labels and upper-case alleles in place."""
    chr_i, ref_i, alt_i = table.column_indices(["chr", "ref", "alt"], STAGE)
    for row in table.rows:
        row[chr_i] = normalize_chromosome(row[chr_i])
        row[ref_i] = row[ref_i].upper()
        row[alt_i] = row[alt_i].upper()


def drop_invalid_rows(table: Table) -> Table:
    """Drop rows with ambiguous alleles or non-finite effect estimates."""
    ref_i, alt_i, effect_i = table.column_indices(["ref", "alt", "effect_size"], STAGE)
    rows = [
        row
        for row in table.rows
        if row[ref_i] not in AMBIGUOUS_ALLELES
        and row[alt_i] not in AMBIGUOUS_ALLELES
        and row[effect_i] not in NONFINITE_EFFECTS
    ]
    logger.debug(f"Dropped {len(table) - len(rows)} rows with invalid alleles or effects")
    return Table(table.columns, rows)


def convert_odds_ratios(table: Table, effect_is_or: bool) -> Table:
    """Convert odds/hazard ratios to log scale.

    Also warns when the effect scale flag looks inconsistent with the data.
    Rows whose log is undefined (ratio <= 0) are dropped.

    Raises:
        NumericParseError: If an effect size is not a number
    """
    effect_i = table.column_index("effect_size", STAGE)
    effects = [parse_number(row[effect_i], "effect_size") for row in table.rows]

    if not effect_is_or and effects and all(e > 0 for e in effects):
        logger.warning(
            "All effect sizes are positive yet effect_is_OR has been set to N. "
            "Please double check that effect estimates from the raw data file are "
            "indeed regression coefficients and not odds ratios"
        )
    if effect_is_or and any(e < 0 for e in effects):
        logger.warning(
            "Some effect sizes are negative yet effect_is_OR has been set to Y. "
            "Please double check that effect estimates from the raw data file are "
            "indeed odds or hazard ratios and not regression coefficients"
        )

    if not effect_is_or:
        return table

    rows = []
    for row, effect in zip(table.rows, effects):
        if effect <= 0 or not math.isfinite(effect):
            continue
        row = list(row)
        row[effect_i] = format_number(math.log(effect))
        rows.append(row)
    return Table(table.columns, rows)


def _derive(left: str, right: str, op: Callable[[float, float], float]) -> str:
    return format_number(op(parse_number(left), parse_number(right)))


def tabulate_sample_sizes(table: Table, entry: LegendEntry) -> None:
    """Fill N_total, N_case and N_ctrl in place.

    A legend "N_<group>_column" names a per-variant source column; otherwise
    a constant legend "N_<group>" value is used; otherwise the column is NA.
    Missing counts are then derived from the other two where possible.
    """
    for group in SAMPLE_SIZE_GROUPS:
        column_field = f"N_{group}_column"
        target = f"N_{group}"
        constant = entry[target]
        if entry[column_field] != "NA":
            if table.has_column(column_field):
                table.rename_columns({column_field: target})
        elif constant != "NA":
            table.set_column(target, [constant] * len(table))

    absent = [f"N_{g}" for g in SAMPLE_SIZE_GROUPS if not table.has_column(f"N_{g}")]
    table.append_columns(absent)

    total_i, case_i, ctrl_i = table.column_indices(["N_total", "N_case", "N_ctrl"], STAGE)
    for row in table.rows:
        if not is_missing(row[case_i]) and not is_missing(row[ctrl_i]):
            row[total_i] = _derive(row[case_i], row[ctrl_i], lambda a, b: a + b)
        if not is_missing(row[ctrl_i]) and not is_missing(row[total_i]) and is_missing(row[case_i]):
            row[case_i] = _derive(row[total_i], row[ctrl_i], lambda a, b: a - b)
        if not is_missing(row[case_i]) and not is_missing(row[total_i]) and is_missing(row[ctrl_i]):
            row[ctrl_i] = _derive(row[total_i], row[case_i], lambda a, b: a - b)


def preformat(
    entry: LegendEntry,
    raw_input_dir: Path,
    stats: Statistics | None = None,
) -> Table:
    """Read and normalize a trait's raw summary statistics.

    Args:
        entry: Validated legend entry for the trait
        raw_input_dir: Directory the legend's file_path is relative to
        stats: Optional Statistics object to update (mutated in place)

    Returns:
        Table with columns chr_<build>, pos_<build>, ref, alt, EAF,
        effect_size, standard_error, pvalue, pvalue_het, N_total, N_case, N_ctrl

    Raises:
        FileNotFoundError: If the raw file cannot be found
        LegendError: If the legend's delimiter or build is unusable
        SchemaError: If a required column is absent after renaming
    """
    if entry.hg_version not in SUPPORTED_BUILDS:
        raise LegendError(
            f"Unsupported hg_version {entry.hg_version!r} for trait_name={entry.trait_name}; "
            f"expected one of {sorted(SUPPORTED_BUILDS)}"
        )

    raw_input_file = resolve_input_file(entry, raw_input_dir)
    logger.info(f"Reading raw input file {raw_input_file}")
    table = read_raw_file(raw_input_file, entry.delimiter)
    logger.debug(f"Header: {table.columns}")

    assign_column_names(table, entry)
    for name in ["chr", "pos", "ref", "alt", "effect_size"]:
        if not table.has_column(name):
            raise SchemaError(name, STAGE)

    raw_rows = len(table)
    normalize_alleles(table)
    table = drop_invalid_rows(table)
    table = convert_odds_ratios(table, entry.effect_is_or)
    tabulate_sample_sizes(table, entry)

    table = table.reorder_columns(PREFORMAT_COLUMNS)
    table.rename_columns({
        "chr": f"chr_{entry.hg_version}",
        "pos": f"pos_{entry.hg_version}",
    })

    if stats is not None:
        stats.raw_rows += raw_rows
        stats.filtered_rows += raw_rows - len(table)

    logger.info(f"Preformatted {len(table):,} of {raw_rows:,} rows")
    return table
