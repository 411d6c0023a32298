"""Tests for liftOver coordinate conversion.

liftOver is simulated by a fake subprocess.run that shifts every interval,
so these tests do not need the UCSC binary or chain files.
"""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from gwas_harmonizer.exceptions import ExternalToolError, SchemaError
from gwas_harmonizer.liftover import (
    CHAIN_FILES,
    Liftover,
    detect_source_build,
    read_bed,
    write_bed,
)
from gwas_harmonizer.models import Statistics
from gwas_harmonizer.table import Table
from gwas_harmonizer.utils import MATCH_INPUT_COLUMNS

PREFORMATTED = [
    "ref", "alt", "EAF", "effect_size", "standard_error", "pvalue",
    "pvalue_het", "N_total", "N_case", "N_ctrl",
]


def preformatted(build: str, *coordinates: tuple[str, str]) -> Table:
    columns = [f"chr_{build}", f"pos_{build}", *PREFORMATTED]
    rows = [[c, p, "A", "G", "0.3", "0.5", "0.1", "0.01", "NA", "100", "NA", "NA"] for c, p in coordinates]
    return Table(columns, rows)


def fake_liftover(shift: int, drop: set[int] = frozenset()):
    """Build a subprocess.run replacement that shifts BED intervals."""

    def run(cmd, **kwargs):
        _, input_bed, _, output_bed, unlifted_bed = cmd
        with open(input_bed) as src, open(output_bed, "w") as dst:
            for line in src:
                chrom, start, end, name = line.rstrip("\n").split("\t")
                if int(name) in drop:
                    continue
                dst.write(f"{chrom}\t{int(start) + shift}\t{int(end) + shift}\t{name}\n")
        Path(unlifted_bed).write_text("")
        return MagicMock(returncode=0, stdout="", stderr="")

    return run


@pytest.fixture
def chain_dir(tmp_path: Path) -> Path:
    chains = tmp_path / "chains"
    chains.mkdir()
    for name in CHAIN_FILES.values():
        (chains / name).write_bytes(b"")
    return chains


@pytest.fixture
def liftover(tmp_path: Path, chain_dir: Path) -> Liftover:
    return Liftover(Path("/usr/bin/liftOver"), chain_dir, tmp_path / "work")


class TestBedFiles:
    """Test BED writing and reading."""

    def test_write_bed(self, tmp_path: Path) -> None:
        table = preformatted("hg19", ("1", "10000"), ("X", "500"))
        path = tmp_path / "in.bed"
        assert write_bed(table, "hg19", path) == 2
        assert path.read_text() == "chr1\t9999\t10000\t0\nchrX\t499\t500\t1\n"

    def test_non_integer_positions_skipped(self, tmp_path: Path) -> None:
        table = preformatted("hg19", ("1", "NA"), ("1", "12.5"), ("2", "300"))
        path = tmp_path / "in.bed"
        assert write_bed(table, "hg19", path) == 1
        assert path.read_text() == "chr2\t299\t300\t2\n"

    def test_read_bed(self, tmp_path: Path) -> None:
        path = tmp_path / "out.bed"
        path.write_text("chr1\t9999\t10000\t0\nchr2_KI270706v1_random\t4\t5\t3\n")
        assert read_bed(path) == {0: ("1", "10000"), 3: ("2_KI270706v1_random", "5")}


class TestDetectSourceBuild:
    """Test source build selection."""

    @pytest.mark.parametrize("build", ["hg17", "hg18", "hg19", "hg38"])
    def test_each_build(self, build: str) -> None:
        assert detect_source_build(preformatted(build)) == build

    def test_no_position_column(self) -> None:
        with pytest.raises(SchemaError):
            detect_source_build(Table(["chr", "ref"]))


class TestLift:
    """Test the full conversion."""

    def test_hg19_source(self, liftover: Liftover) -> None:
        table = preformatted("hg19", ("1", "100"), ("2", "200"), ("3", "300"))
        stats = Statistics()
        with patch("subprocess.run", side_effect=fake_liftover(1000, drop={1})):
            result = liftover.lift(table, stats)

        assert result.columns == MATCH_INPUT_COLUMNS
        assert result.column("pos_hg19") == ["100", "200", "300"]
        assert result.column("pos_hg38") == ["1100", "NA", "1300"]
        assert result.column("chr_hg38") == ["1", "NA", "3"]
        assert stats.lifted_hg19 == 3
        assert stats.lifted_hg38 == 2

    def test_unlifted_row_does_not_shift_later_rows(self, liftover: Liftover) -> None:
        """Coordinates are joined back by row id, not by line number."""
        table = preformatted("hg19", ("1", "100"), ("1", "200"), ("1", "300"))
        with patch("subprocess.run", side_effect=fake_liftover(5, drop={0})):
            result = liftover.lift(table)
        assert result.column("pos_hg38") == ["NA", "205", "305"]

    def test_hg38_source(self, liftover: Liftover) -> None:
        table = preformatted("hg38", ("1", "5000"))
        with patch("subprocess.run", side_effect=fake_liftover(-1000)) as mock_run:
            result = liftover.lift(table)

        assert result.column("pos_hg19") == ["4000"]
        assert result.column("pos_hg38") == ["5000"]
        chain = mock_run.call_args.args[0][2]
        assert chain.endswith("hg38ToHg19.over.chain.gz")

    def test_hg18_source_lifts_twice(self, liftover: Liftover) -> None:
        table = preformatted("hg18", ("1", "100"))
        with patch("subprocess.run", side_effect=fake_liftover(10)) as mock_run:
            result = liftover.lift(table)

        assert mock_run.call_count == 2
        chains = [Path(call.args[0][2]).name for call in mock_run.call_args_list]
        assert chains == ["hg18ToHg19.over.chain.gz", "hg19ToHg38.over.chain.gz"]
        assert result.column("pos_hg19") == ["110"]
        assert result.column("pos_hg38") == ["120"]

    def test_missing_chain_file(self, tmp_path: Path) -> None:
        liftover = Liftover(Path("/usr/bin/liftOver"), tmp_path / "empty", tmp_path / "work")
        with pytest.raises(ExternalToolError, match="Chain file not found"):
            liftover.lift(preformatted("hg19", ("1", "100")))

    def test_liftover_fails(self, liftover: Liftover) -> None:
        error = subprocess.CalledProcessError(255, "liftOver", stderr="bad chain")
        with patch("subprocess.run", side_effect=error):
            with pytest.raises(ExternalToolError, match="exit code 255") as exc_info:
                liftover.lift(preformatted("hg19", ("1", "100")))
        assert exc_info.value.__cause__ is error

    def test_liftover_missing_binary(self, liftover: Liftover) -> None:
        with patch("subprocess.run", side_effect=FileNotFoundError()):
            with pytest.raises(ExternalToolError, match="not found") as exc_info:
                liftover.lift(preformatted("hg19", ("1", "100")))
        assert isinstance(exc_info.value.__cause__, FileNotFoundError)
