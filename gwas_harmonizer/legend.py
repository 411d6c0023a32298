"""GWAS formatting legend.

The legend is a spreadsheet with one row per trait describing how that
trait's raw summary-statistic file is laid out: which source column holds the
chromosome, position, alleles, effect size and so on, the column delimiter,
the genome build, and sample sizes. It is fetched from Google Sheets or read
from a local CSV/TSV export.
"""

import logging
from pathlib import Path

import requests

from gwas_harmonizer.exceptions import ConfigurationError, LegendError
from gwas_harmonizer.models import LegendEntry
from gwas_harmonizer.table import Table, is_missing

logger = logging.getLogger(__name__)

SHEETS_API_URL = "https://sheets.googleapis.com/v4/spreadsheets"
API_KEY_ENV_VAR = "GOOGLE_SHEETS_API_KEY"

# Legend fields every trait row must fill in
REQUIRED_FIELDS: list[str] = [
    "rsid",
    "chr",
    "pos",
    "ref",
    "alt",
    "effect_size",
    "effect_is_OR",
    "standard_error",
    "EAF",
    "pvalue",
    "pvalue_het",
    "N_total_column",
    "N_case_column",
    "N_ctrl_column",
    "column_delim",
    "hg_version",
    "file_path",
    "N_total",
    "N_case",
    "N_ctrl",
]

# Legend fields that may never be NA: without them a record cannot be placed
NOT_NA_FIELDS: list[str] = ["chr", "pos", "ref", "alt"]


def validate_sheet_id(sheet_id: str) -> None:
    """Reject a spreadsheet URL passed where the bare ID is expected.

    Raises:
        ConfigurationError: If ``sheet_id`` looks like a URL
    """
    if sheet_id.startswith("http"):
        raise ConfigurationError(
            "google_sheets_id should be the ID of the Google Sheets document, not "
            "the URL. For example, if the URL is "
            "https://docs.google.com/spreadsheets/d/1a2b3c4d5e6f/edit#gid=0, "
            "the ID is 1a2b3c4d5e6f"
        )


def _get_json(session: requests.Session, url: str, params: dict[str, str]) -> dict:
    try:
        response = session.get(url, params=params, timeout=60)
        response.raise_for_status()
        return response.json()
    except requests.RequestException as e:
        raise LegendError(f"Failed to fetch formatting legend: {e}") from e


def fetch_sheet(
    sheet_id: str,
    api_key: str,
    session: requests.Session | None = None,
) -> Table:
    """Download the first sheet of a Google Sheets document.

    Args:
        sheet_id: Spreadsheet ID
        api_key: Google Sheets API key
        session: Optional requests session (a new one is used if None)

    Returns:
        Table whose columns are the sheet's first row

    Raises:
        ConfigurationError: If ``sheet_id`` is a URL
        LegendError: If the request fails or the sheet is empty
    """
    validate_sheet_id(sheet_id)
    session = session or requests.Session()
    params = {"key": api_key}

    metadata = _get_json(session, f"{SHEETS_API_URL}/{sheet_id}", params)
    try:
        title = metadata["sheets"][0]["properties"]["title"]
    except (KeyError, IndexError, TypeError):
        raise LegendError(f"Spreadsheet {sheet_id} has no sheets") from None

    data = _get_json(session, f"{SHEETS_API_URL}/{sheet_id}/values/{title}", params)
    values = data.get("values") or []
    if not values:
        raise LegendError(f"Sheet '{title}' of spreadsheet {sheet_id} is empty")

    header = [str(v) for v in values[0]]
    # The API omits trailing empty cells, so short rows are padded
    rows = [
        [str(v) for v in row[: len(header)]] + [""] * (len(header) - len(row))
        for row in values[1:]
    ]
    logger.debug(f"Legend header: {header}")
    return Table(header, rows)


def load_legend_file(filepath: Path) -> Table:
    """Read a legend exported as CSV (.csv) or TSV (anything else).

    Raises:
        FileNotFoundError: If file doesn't exist
    """
    if not filepath.exists():
        raise FileNotFoundError(f"Legend file not found: {filepath}")
    name = filepath.name.lower().removesuffix(".gz")
    delimiter = "," if name.endswith(".csv") else "\t"
    return Table.read(filepath, delimiter=delimiter)


def legend_entry(legend: Table, trait_name: str) -> LegendEntry:
    """Find and validate the legend row for a trait.

    Args:
        legend: Full formatting legend
        trait_name: Trait to look up in the "trait_name" column

    Returns:
        LegendEntry for the trait

    Raises:
        SchemaError: If the legend lacks a trait_name column
        LegendError: If there is not exactly one row for the trait, or the
            row leaves a required field empty or a coordinate field NA
    """
    rows = list(legend.select("trait_name", lambda value: value == trait_name))
    if not rows:
        raise LegendError(
            f"No rows found in the GWAS formatting legend for trait_name={trait_name}"
        )
    if len(rows) > 1:
        raise LegendError(
            f"Multiple rows found in the GWAS formatting legend for trait_name={trait_name}"
        )

    entry = LegendEntry(trait_name=trait_name, fields=dict(zip(legend.columns, rows[0])))

    for name in REQUIRED_FIELDS:
        if not entry[name]:
            raise LegendError(
                f"Column {name} is missing in the GWAS formatting legend "
                f"for trait_name={trait_name}"
            )
    for name in NOT_NA_FIELDS:
        if is_missing(entry[name]):
            raise LegendError(
                f"Column {name} is NA in the GWAS formatting legend "
                f"for trait_name={trait_name}"
            )
    return entry
