"""Coordinate conversion with UCSC liftOver.

Every variant needs both hg19 and hg38 coordinates. Positions are written to
a BED file, converted with liftOver, and joined back by the BED name field,
which carries the row index so that variants liftOver cannot convert simply
end up with NA coordinates.

BED line written per row (0-based start, 1-based end, row index as name):
chr1    9999    10000   0

Conversions by source build:
- hg17/hg18: source -> hg19 -> hg38
- hg19: hg19 -> hg38
- hg38: hg38 -> hg19
"""

import logging
import shutil
import subprocess
from pathlib import Path

from gwas_harmonizer.exceptions import ExternalToolError, SchemaError
from gwas_harmonizer.models import Statistics
from gwas_harmonizer.table import NA, Table
from gwas_harmonizer.utils import MATCH_INPUT_COLUMNS

logger = logging.getLogger(__name__)

STAGE = "liftover"

# Source builds in the order they are preferred when a table has several
BUILD_PRIORITY: list[str] = ["hg17", "hg18", "hg19", "hg38"]

CHAIN_FILES: dict[tuple[str, str], str] = {
    ("hg17", "hg19"): "hg17ToHg19.over.chain.gz",
    ("hg18", "hg19"): "hg18ToHg19.over.chain.gz",
    ("hg19", "hg38"): "hg19ToHg38.over.chain.gz",
    ("hg38", "hg19"): "hg38ToHg19.over.chain.gz",
}

Coordinates = dict[int, tuple[str, str]]


def find_liftover() -> Path | None:
    """Find liftOver executable in PATH.

    Returns:
        Path to executable, or None if not found
    """
    path = shutil.which("liftOver")
    return Path(path) if path else None


def detect_source_build(table: Table) -> str:
    """Return the build whose pos_<build> column the table carries.

    Raises:
        SchemaError: If no position column is present
    """
    for build in BUILD_PRIORITY:
        if table.has_column(f"pos_{build}"):
            return build
    raise SchemaError("pos_hg17/pos_hg18/pos_hg19/pos_hg38", STAGE)


def write_bed(table: Table, build: str, filepath: Path) -> int:
    """Write one BED interval per row with an integer position.

    Returns:
        Number of intervals written
    """
    chr_i = table.column_index(f"chr_{build}", STAGE)
    pos_i = table.column_index(f"pos_{build}", STAGE)

    written = 0
    with open(filepath, "w") as f:
        for row_id, row in enumerate(table.rows):
            try:
                pos = int(row[pos_i])
            except ValueError:
                continue
            f.write(f"chr{row[chr_i]}\t{pos - 1}\t{pos}\t{row_id}\n")
            written += 1

    skipped = len(table) - written
    if skipped:
        logger.warning(f"Skipped {skipped} rows without an integer pos_{build}")
    return written


def read_bed(filepath: Path) -> Coordinates:
    """Read BED intervals into row index -> (chromosome, end position).

    The "chr" prefix is stripped from chromosome names.
    """
    coordinates: Coordinates = {}
    with open(filepath) as f:
        for line in f:
            parts = line.rstrip("\n").split("\t")
            if len(parts) < 4:
                continue
            coordinates[int(parts[3])] = (parts[0].removeprefix("chr"), parts[2])
    return coordinates


class Liftover:
    """Runs liftOver conversions inside a working directory.

    Attributes:
        liftover_bin: Path to the liftOver executable
        chain_dir: Directory holding the *.over.chain.gz files
        work_dir: Directory for intermediate BED files
    """

    def __init__(self, liftover_bin: Path, chain_dir: Path, work_dir: Path) -> None:
        self.liftover_bin = liftover_bin
        self.chain_dir = chain_dir
        self.work_dir = work_dir

    def chain_file(self, source: str, target: str) -> Path:
        return self.chain_dir / CHAIN_FILES[(source, target)]

    def run(self, input_bed: Path, source: str, target: str) -> Path:
        """Convert a BED file from ``source`` to ``target`` build.

        Returns:
            Path to the converted BED file

        Raises:
            ExternalToolError: If the chain file is missing or liftOver fails
        """
        chain = self.chain_file(source, target)
        if not chain.exists():
            raise ExternalToolError(f"Chain file not found: {chain}")

        output_bed = self.work_dir / f"{target}.from_{source}.bed"
        unlifted_bed = self.work_dir / f"unlifted.{source}_to_{target}.bed"
        cmd = [str(self.liftover_bin), str(input_bed), str(chain), str(output_bed), str(unlifted_bed)]
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            subprocess.run(cmd, capture_output=True, text=True, check=True)
        except FileNotFoundError as e:
            raise ExternalToolError(f"liftOver executable not found: {self.liftover_bin}") from e
        except subprocess.CalledProcessError as e:
            raise ExternalToolError(
                f"liftOver {source} -> {target} failed with exit code {e.returncode}:\n{e.stderr}"
            ) from e
        return output_bed

    def lift(self, table: Table, stats: Statistics | None = None) -> Table:
        """Attach hg19 and hg38 coordinates to every row.

        Args:
            table: Preformatted table with chr_<build>/pos_<build> columns
            stats: Optional Statistics object to update (mutated in place)

        Returns:
            Table in the reference-matching layout; rows liftOver could not
            convert have NA coordinates for the missing build

        Raises:
            SchemaError: If the table has no position column
            ExternalToolError: If liftOver fails
        """
        self.work_dir.mkdir(parents=True, exist_ok=True)
        source = detect_source_build(table)
        logger.debug(f"Source build: {source}")

        input_bed = self.work_dir / "input.bed"
        write_bed(table, source, input_bed)
        coordinates: dict[str, Coordinates] = {source: read_bed(input_bed)}

        if source in ("hg17", "hg18"):
            hg19_bed = self.run(input_bed, source, "hg19")
            coordinates["hg19"] = read_bed(hg19_bed)
            coordinates["hg38"] = read_bed(self.run(hg19_bed, "hg19", "hg38"))
        elif source == "hg19":
            coordinates["hg38"] = read_bed(self.run(input_bed, "hg19", "hg38"))
        else:
            coordinates["hg19"] = read_bed(self.run(input_bed, "hg38", "hg19"))

        for build in ("hg19", "hg38"):
            lifted = coordinates[build]
            values = [lifted.get(i, (NA, NA)) for i in range(len(table))]
            table.set_column(f"chr_{build}", [c for c, _ in values])
            table.set_column(f"pos_{build}", [p for _, p in values])

        if stats is not None:
            stats.lifted_hg19 += len(coordinates["hg19"])
            stats.lifted_hg38 += len(coordinates["hg38"])

        logger.info(
            f"Coordinates: {len(coordinates['hg19']):,} rows on hg19, "
            f"{len(coordinates['hg38']):,} rows on hg38"
        )
        return table.reorder_columns(MATCH_INPUT_COLUMNS)
