"""Pytest fixtures for gwas_harmonizer tests."""

from pathlib import Path

import pytest

from gwas_harmonizer.legend import REQUIRED_FIELDS
from gwas_harmonizer.models import LegendEntry
from gwas_harmonizer.table import Table
from gwas_harmonizer.utils import MATCH_INPUT_COLUMNS


def make_row(
    chr_val: str = "1",
    pos_hg19: str = "100",
    ref: str = "A",
    alt: str = "G",
    effect: str = "0.5",
    eaf: str = "0.3",
    pos_hg38: str = "200",
) -> list[str]:
    """Build one row in the reference-matching input layout."""
    return [
        chr_val, pos_hg19, ref, alt, effect, "0.1", eaf, "0.01", "NA",
        "1000", "NA", "NA", chr_val, pos_hg38,
    ]


def make_input(*rows: list[str]) -> Table:
    """Table in the reference-matching input layout."""
    return Table(MATCH_INPUT_COLUMNS, rows)


def make_catalog(*keys: tuple[str, str, str, str, str]) -> Table:
    """Catalog with one rsid annotation per key (rs1, rs2, ...)."""
    return Table(
        ["chr", "pos_hg19", "ref", "alt", "pos_hg38", "rsid"],
        [[*key, f"rs{i}"] for i, key in enumerate(keys, start=1)],
    )


@pytest.fixture
def legend_fields() -> dict[str, str]:
    """Legend row for a tab-delimited hg19 file with beta effects."""
    return {
        "trait_name": "PD_risk",
        "rsid": "SNP",
        "chr": "CHR",
        "pos": "BP",
        "ref": "A1",
        "alt": "A2",
        "effect_size": "BETA",
        "effect_is_OR": "N",
        "standard_error": "SE",
        "EAF": "FREQ",
        "pvalue": "P",
        "pvalue_het": "NA",
        "N_total_column": "N",
        "N_case_column": "NA",
        "N_ctrl_column": "NA",
        "column_delim": "tab",
        "hg_version": "hg19",
        "file_path": "/PD_risk.txt",
        "N_total": "NA",
        "N_case": "NA",
        "N_ctrl": "NA",
    }


@pytest.fixture
def legend_entry_factory(legend_fields: dict[str, str]):
    """Build a LegendEntry from the default fields plus overrides."""

    def factory(**overrides: str) -> LegendEntry:
        fields = {**legend_fields, **overrides}
        return LegendEntry(trait_name=fields["trait_name"], fields=fields)

    return factory


@pytest.fixture
def legend_table(legend_fields: dict[str, str]) -> Table:
    """Legend with the PD_risk row and one unrelated trait."""
    columns = ["trait_name", *REQUIRED_FIELDS]
    other = {**legend_fields, "trait_name": "AD_risk", "file_path": "/AD.txt"}
    return Table(
        columns,
        [
            [legend_fields[c] for c in columns],
            [other[c] for c in columns],
        ],
    )


@pytest.fixture
def raw_sumstats(tmp_path: Path) -> Path:
    """Raw summary statistics for PD_risk.

    Test cases:
    - rs1: chr-prefixed, lower-case alleles -> normalized and kept
    - rs2: I/D alleles -> dropped
    - rs3: NA effect -> dropped
    - rs4: plain row with a negative beta -> kept
    """
    raw_dir = tmp_path / "raw"
    raw_dir.mkdir()
    (raw_dir / "PD_risk.txt").write_text(
        "SNP\tCHR\tBP\tA1\tA2\tBETA\tSE\tFREQ\tP\tN\n"
        "rs1\tchr1\t100\ta\tg\t0.5\t0.1\t0.3\t0.01\t1000\n"
        "rs2\t23\t200\tI\tD\t0.2\t0.1\t0.3\t0.01\t1000\n"
        "rs3\t2\t300\tC\tT\tNA\t0.1\t0.4\t0.02\t1000\n"
        "rs4\t2\t400\tC\tT\t-0.1\t0.1\t0.4\t0.02\t1000\n"
    )
    return raw_dir
