"""Tests for the Config dataclass."""

from pathlib import Path

import pytest

from gwas_harmonizer.config import Config


@pytest.fixture
def inputs(tmp_path: Path) -> dict[str, Path]:
    raw = tmp_path / "raw"
    raw.mkdir()
    dbsnp = tmp_path / "dbsnp.tsv.gz"
    dbsnp.write_bytes(b"")
    fasta = tmp_path / "hg38.fa"
    fasta.write_text(">chr1\nACGT\n")
    legend = tmp_path / "legend.tsv"
    legend.write_text("trait_name\n")
    out = tmp_path / "out"
    out.mkdir()
    return {
        "raw_input_dir": raw,
        "dbsnp_file": dbsnp,
        "fasta_ref": fasta,
        "legend_file": legend,
        "output_file": out / "PD_risk.txt.gz",
    }


class TestConfig:
    """Test defaults and path handling."""

    def test_string_paths_coerced(self, inputs: dict[str, Path]) -> None:
        config = Config(
            trait_name="PD_risk",
            **{k: str(v) for k, v in inputs.items()},
        )
        assert isinstance(config.raw_input_dir, Path)
        assert isinstance(config.legend_file, Path)
        assert config.output_dir == inputs["output_file"].parent

    def test_defaults(self, inputs: dict[str, Path]) -> None:
        config = Config(trait_name="PD_risk", **inputs)
        assert config.batch_size == 5000
        assert config.threads is None
        assert config.lookup_timeout is None
        assert config.keep_temp_files is False

    def test_chain_dir_defaults_to_liftover_location(self, inputs: dict[str, Path]) -> None:
        config = Config(trait_name="PD_risk", liftover_bin="/opt/ucsc/liftOver", **inputs)
        assert config.liftover_dir == Path("/opt/ucsc")

    def test_output_paths(self, inputs: dict[str, Path]) -> None:
        config = Config(trait_name="PD_risk", **inputs)
        assert config.get_output_path("raw_data.txt.gz") == config.output_dir / "raw_data.txt.gz"
        assert config.work_dir == config.output_dir / "tmp_PD_risk"


class TestValidate:
    """Test configuration validation."""

    def test_valid(self, inputs: dict[str, Path]) -> None:
        assert Config(trait_name="PD_risk", **inputs).validate() == []

    def test_missing_files(self, inputs: dict[str, Path], tmp_path: Path) -> None:
        inputs["dbsnp_file"] = tmp_path / "nope.tsv.gz"
        inputs["fasta_ref"] = tmp_path / "nope.fa"
        errors = Config(trait_name="PD_risk", **inputs).validate()
        assert any("dbSNP file not found" in e for e in errors)
        assert any("FASTA reference not found" in e for e in errors)

    def test_no_legend_source(self, inputs: dict[str, Path]) -> None:
        del inputs["legend_file"]
        errors = Config(trait_name="PD_risk", **inputs).validate()
        assert any("legend" in e for e in errors)

    def test_sheet_url(self, inputs: dict[str, Path]) -> None:
        del inputs["legend_file"]
        config = Config(
            trait_name="PD_risk",
            google_sheets_id="https://docs.google.com/spreadsheets/d/abc/edit",
            api_key="secret",
            **inputs,
        )
        assert any("not its URL" in e for e in config.validate())

    def test_sheet_without_api_key(self, inputs: dict[str, Path]) -> None:
        del inputs["legend_file"]
        config = Config(trait_name="PD_risk", google_sheets_id="abc", **inputs)
        assert any("API key" in e for e in config.validate())

    @pytest.mark.parametrize(
        "field,value,message",
        [
            ("batch_size", 0, "batch_size"),
            ("lookup_timeout", -1.0, "lookup_timeout"),
        ],
    )
    def test_bad_numbers(self, inputs: dict[str, Path], field: str, value, message: str) -> None:
        config = Config(trait_name="PD_risk", **inputs, **{field: value})
        assert any(message in e for e in config.validate())

    def test_zero_threads_left_to_lookup_clamp(self, inputs: dict[str, Path]) -> None:
        """A zero worker count is clamped to one later, not rejected."""
        config = Config(trait_name="PD_risk", threads=0, **inputs)
        assert config.validate() == []
