"""Main orchestration for the GWAS harmonizer.

Implements ``run_pipeline()``, which takes one trait's raw summary statistics
through every stage: legend lookup, preformatting, liftover, reference
matching and the reference-sequence lookup for unmatched variants.
"""

import logging
import shutil
from pathlib import Path

from rich.console import Console

from gwas_harmonizer.config import Config
from gwas_harmonizer.exceptions import ConfigurationError
from gwas_harmonizer.legend import fetch_sheet, legend_entry, load_legend_file
from gwas_harmonizer.liftover import Liftover, find_liftover
from gwas_harmonizer.logging_config import get_log_file_path, get_progress_logger
from gwas_harmonizer.lookup import SamtoolsFaidx, ref_alt_check
from gwas_harmonizer.lookup.samtools import find_samtools
from gwas_harmonizer.matching import ReferenceIndex, match_reference
from gwas_harmonizer.models import LegendEntry, Statistics
from gwas_harmonizer.preformat import preformat
from gwas_harmonizer.table import Table
from gwas_harmonizer.writers.log import print_summary, write_log_file

logger = logging.getLogger(__name__)

console = Console()

RAW_DATA_FILE = "raw_data.txt.gz"
MERGED_FILE = "raw_data_merged.txt.gz"
MISSING_FILE = "raw_data_missing.txt.gz"


def load_legend(config: Config) -> Table:
    """Read the formatting legend from a local file or Google Sheets."""
    if config.legend_file is not None:
        return load_legend_file(config.legend_file)
    if config.google_sheets_id is None or not config.api_key:
        raise ConfigurationError(
            "A legend file or a Google Sheets ID with an API key is required"
        )
    return fetch_sheet(config.google_sheets_id, config.api_key)


def resolve_tool(configured: Path | None, found: Path | None, name: str) -> Path:
    """Pick the configured executable, falling back to the one on PATH.

    Raises:
        ConfigurationError: If neither is available
    """
    tool = configured or found
    if tool is None:
        raise ConfigurationError(f"{name} not found in PATH; pass its location explicitly")
    return tool


def run_pipeline(config: Config, stats: Statistics | None = None) -> Path:
    """Harmonize one trait's summary statistics.

    Steps:
    1. Fetch the formatting legend and find the trait's entry
    2. Preformat the raw file (written to raw_data.txt.gz)
    3. Lift coordinates to hg19 and hg38
    4. Match against the dbSNP catalog (raw_data_merged/missing.txt.gz)
    5. Orient unmatched variants against the hg38 reference sequence
    6. Write the output table, run log and summary

    Args:
        config: Validated run configuration
        stats: Optional Statistics object to fill (a new one if None)

    Returns:
        Path to the harmonized output file

    Raises:
        HarmonizerError: Any stage failure; nothing is retried
        FileNotFoundError: If an input file is missing
    """
    stats = stats if stats is not None else Statistics()
    progress = get_progress_logger()

    liftover_bin = resolve_tool(config.liftover_bin, find_liftover(), "liftOver")
    samtools_bin = resolve_tool(config.samtools_bin, find_samtools(), "samtools")
    chain_dir = config.liftover_dir or liftover_bin.parent

    progress.info(f"Step 1/5: Reading formatting legend for {config.trait_name}")
    entry: LegendEntry = legend_entry(load_legend(config), config.trait_name)
    logger.debug(f"Legend entry: {entry.fields}")

    progress.info(f"Step 2/5: Preformatting {entry.file_path}")
    table = preformat(entry, config.raw_input_dir, stats)
    table.write(config.get_output_path(RAW_DATA_FILE))

    progress.info(f"Step 3/5: Lifting over from {entry.hg_version}")
    work_dir = config.work_dir
    try:
        table = Liftover(liftover_bin, chain_dir, work_dir).lift(table, stats)
    finally:
        if not config.keep_temp_files:
            shutil.rmtree(work_dir, ignore_errors=True)

    progress.info(f"Step 4/5: Matching against {config.dbsnp_file.name}")
    index = ReferenceIndex.load(config.dbsnp_file)
    result = match_reference(table, index, stats)
    index.clear()
    result.matched.write(config.get_output_path(MERGED_FILE))
    result.missing.write(config.get_output_path(MISSING_FILE))

    progress.info(f"Step 5/5: Checking {len(result.missing):,} unmatched variants against the reference")
    lookup = SamtoolsFaidx(samtools_bin, config.fasta_ref, timeout=config.lookup_timeout)
    final = ref_alt_check(
        result.matched,
        result.missing,
        lookup,
        batch_size=config.batch_size,
        threads=config.threads,
        stats=stats,
    )
    final.write(config.output_file)
    stats.final_rows = len(final)

    log_path = write_log_file(config.output_dir, config.trait_name, config, stats)
    print_summary(stats, config.trait_name, console)

    console.print("\n[bold]Output files generated:[/bold]")
    for name in (RAW_DATA_FILE, MERGED_FILE, MISSING_FILE):
        console.print(f"  {config.get_output_path(name)}")
    console.print(f"  {config.output_file}")
    console.print(f"\n  Log file: {log_path}")
    debug_log = get_log_file_path()
    if debug_log:
        console.print(f"  Debug log: {debug_log}")
    console.print(f"\n[green]Harmonized {stats.final_rows:,} variants for {config.trait_name}[/green]\n")

    return config.output_file
