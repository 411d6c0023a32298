"""Tests for the run log writer."""

from pathlib import Path

from rich.console import Console

from gwas_harmonizer.config import Config
from gwas_harmonizer.models import Statistics
from gwas_harmonizer.writers import print_summary, write_log_file


def make_stats() -> Statistics:
    return Statistics(
        raw_rows=10,
        filtered_rows=2,
        input_rows=8,
        direct_hits=5,
        flipped_hits=2,
        duplicates_removed=1,
        missing=1,
        lookup_flipped=1,
        final_rows=7,
    )


class TestWriteLogFile:
    """Test LOG-<trait>.txt output."""

    def test_log_contents(self, tmp_path: Path) -> None:
        config = Config(
            trait_name="PD_risk",
            raw_input_dir=tmp_path,
            dbsnp_file=tmp_path / "dbsnp.tsv.gz",
            fasta_ref=tmp_path / "hg38.fa",
            output_file=tmp_path / "PD_risk.txt.gz",
            google_sheets_id="abc123",
            threads=4,
        )
        log_path = write_log_file(tmp_path, "PD_risk", config, make_stats())

        assert log_path == tmp_path / "LOG-PD_risk.txt"
        text = log_path.read_text()
        assert "Google Sheets ID:    abc123" in text
        assert "Lookup threads:      4" in text
        assert "Total matched 6\n" in text
        assert "Rows in output 7\n" in text


class TestPrintSummary:
    """Test console summary."""

    def test_summary(self) -> None:
        console = Console(record=True, width=120)
        print_summary(make_stats(), "PD_risk", console)
        output = console.export_text()
        assert "Harmonizing PD_risk" in output
        assert "Flipped by reference lookup" in output
