"""Configuration dataclass for the GWAS harmonizer.

Collects every input, external tool and tuning option of one harmonization
run. Paths may be given as strings and are coerced in ``__post_init__``.
"""

from dataclasses import dataclass
from pathlib import Path

from gwas_harmonizer.lookup.engine import DEFAULT_BATCH_SIZE


@dataclass
class Config:
    """Configuration for harmonizing one trait's summary statistics.

    Attributes:
        trait_name: Trait to look up in the formatting legend
        raw_input_dir: Directory the legend's file_path is relative to
        dbsnp_file: Reference catalog (gzipped or plain TSV)
        fasta_ref: hg38 FASTA reference (indexed for samtools faidx)
        output_file: Final harmonized table (gzipped TSV)
        google_sheets_id: ID of the Google Sheets formatting legend
        api_key: Google Sheets API key (used with google_sheets_id)
        legend_file: Local CSV/TSV export of the legend, instead of Sheets
        liftover_bin: Path to liftOver executable (auto-detect if None)
        liftover_dir: Directory holding *.over.chain.gz chain files
        samtools_bin: Path to samtools executable (auto-detect if None)
        batch_size: Regions per samtools invocation
        threads: Lookup worker threads (default from SAMTOOLS_THREADS or 4 per CPU)
        lookup_timeout: Seconds allowed per lookup batch (None waits forever)
        keep_temp_files: Keep the liftOver working directory
        verbose: Enable verbose logging
    """

    trait_name: str
    raw_input_dir: Path
    dbsnp_file: Path
    fasta_ref: Path
    output_file: Path

    # Legend source: Sheets ID or local file
    google_sheets_id: str | None = None
    api_key: str | None = None
    legend_file: Path | None = None

    # External tools
    liftover_bin: Path | None = None
    liftover_dir: Path | None = None
    samtools_bin: Path | None = None

    # Lookup tuning
    batch_size: int = DEFAULT_BATCH_SIZE
    threads: int | None = None
    lookup_timeout: float | None = None

    # Behavior flags
    keep_temp_files: bool = False
    verbose: bool = False

    def __post_init__(self) -> None:
        """Coerce path options to Path objects."""
        for name in ("raw_input_dir", "dbsnp_file", "fasta_ref", "output_file"):
            value = getattr(self, name)
            if isinstance(value, str):
                setattr(self, name, Path(value))

        for name in ("legend_file", "liftover_bin", "liftover_dir", "samtools_bin"):
            value = getattr(self, name)
            if isinstance(value, str):
                setattr(self, name, Path(value))

        if self.liftover_dir is None and self.liftover_bin is not None:
            # Chain files usually sit next to the liftOver binary
            self.liftover_dir = self.liftover_bin.parent

    @property
    def output_dir(self) -> Path:
        """Directory receiving the final table and intermediate outputs."""
        return self.output_file.parent

    @property
    def work_dir(self) -> Path:
        """Scratch directory for liftOver BED files."""
        return self.output_dir / f"tmp_{self.trait_name}"

    def get_output_path(self, filename: str) -> Path:
        """Get full output path for a file.

        Args:
            filename: Name of the output file

        Returns:
            Full path to the output file
        """
        return self.output_dir / filename

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors.

        Returns:
            List of error messages (empty if valid)
        """
        errors: list[str] = []

        if not self.trait_name:
            errors.append("Trait name must not be empty")

        if self.google_sheets_id is None and self.legend_file is None:
            errors.append("Either a Google Sheets ID or a legend file is required")
        if self.google_sheets_id is not None:
            if self.google_sheets_id.startswith("http"):
                errors.append(
                    "Google Sheets ID should be the document ID, not its URL: "
                    f"{self.google_sheets_id}"
                )
            if self.legend_file is None and not self.api_key:
                errors.append("A Google Sheets API key is required to fetch the legend")
        if self.legend_file is not None and not self.legend_file.exists():
            errors.append(f"Legend file not found: {self.legend_file}")

        if not self.raw_input_dir.is_dir():
            errors.append(f"Raw input directory does not exist: {self.raw_input_dir}")

        if not self.dbsnp_file.exists():
            errors.append(f"dbSNP file not found: {self.dbsnp_file}")

        if not self.fasta_ref.exists():
            errors.append(f"FASTA reference not found: {self.fasta_ref}")

        if not self.output_dir.exists():
            errors.append(f"Output directory does not exist: {self.output_dir}")

        if self.liftover_bin is not None and not self.liftover_bin.exists():
            errors.append(f"liftOver executable not found: {self.liftover_bin}")

        if self.liftover_dir is not None and not self.liftover_dir.is_dir():
            errors.append(f"Chain file directory does not exist: {self.liftover_dir}")

        if self.samtools_bin is not None and not self.samtools_bin.exists():
            errors.append(f"samtools executable not found: {self.samtools_bin}")

        if self.batch_size < 1:
            errors.append(f"batch_size must be at least 1: {self.batch_size}")

        if self.lookup_timeout is not None and self.lookup_timeout <= 0:
            errors.append(f"lookup_timeout must be positive: {self.lookup_timeout}")

        return errors
