"""Log file writer for statistics and summary.

Writes the options a run was started with and the counts collected in
``Statistics`` to ``LOG-<trait>.txt`` next to the harmonized output.
"""

from pathlib import Path

from rich.console import Console
from rich.table import Table as RichTable

from gwas_harmonizer.config import Config
from gwas_harmonizer.models import Statistics


def _stat_lines(stats: Statistics) -> list[tuple[str, int]]:
    return [
        ("Rows in raw file", stats.raw_rows),
        ("Rows removed during preformatting", stats.filtered_rows),
        ("Rows with hg19 coordinates", stats.lifted_hg19),
        ("Rows with hg38 coordinates", stats.lifted_hg38),
        ("Rows matched against dbSNP", stats.input_rows),
        ("Direct matches", stats.direct_hits),
        ("Flipped matches", stats.flipped_hits),
        ("Flipped candidates already matched directly", stats.flipped_duplicates),
        ("Duplicates removed", stats.duplicates_removed),
        ("Total matched", stats.matched),
        ("Missing from dbSNP", stats.missing),
        ("Dropped without hg19 and hg38 positions", stats.coordinate_incomplete),
        ("Reference lookup batches", stats.lookup_batches),
        ("Flipped by reference lookup", stats.lookup_flipped),
        ("Unchanged by reference lookup", stats.lookup_unchanged),
        ("Unresolved reference bases (N)", stats.lookup_ambiguous),
        ("Rows in output", stats.final_rows),
    ]


def write_log_file(
    output_dir: Path,
    trait_name: str,
    config: Config,
    stats: Statistics,
) -> Path:
    """Write LOG file with run options and statistics.

    Args:
        output_dir: Directory for output files
        trait_name: Trait that was harmonized
        config: Configuration used for the run
        stats: Statistics collected during processing

    Returns:
        Path to generated log file
    """
    log_path = output_dir / f"LOG-{trait_name}.txt"

    with open(log_path, "w") as f:
        f.write("Options Set:\n")
        f.write(f"Trait name:          {trait_name}\n")
        if config.legend_file is not None:
            f.write(f"Legend file:         {config.legend_file}\n")
        else:
            f.write(f"Google Sheets ID:    {config.google_sheets_id}\n")
        f.write(f"Raw input directory: {config.raw_input_dir}\n")
        f.write(f"dbSNP file:          {config.dbsnp_file}\n")
        f.write(f"FASTA reference:     {config.fasta_ref}\n")
        f.write(f"Output file:         {config.output_file}\n")
        f.write(f"Lookup batch size:   {config.batch_size}\n")
        if config.threads is not None:
            f.write(f"Lookup threads:      {config.threads}\n")
        if config.lookup_timeout is not None:
            f.write(f"Lookup timeout:      {config.lookup_timeout}s\n")
        if config.verbose:
            f.write("Verbose logging flag set\n")
        f.write("\n\n")

        f.write(f"Harmonizing {trait_name}\n\n")
        for label, value in _stat_lines(stats):
            f.write(f"{label} {value}\n")

    return log_path


def print_summary(stats: Statistics, trait_name: str, console: Console | None = None) -> None:
    """Print summary statistics as a table.

    Args:
        stats: Statistics collected during processing
        trait_name: Trait that was harmonized
        console: Console to print to (a new one if None)
    """
    console = console or Console()
    table = RichTable(title=f"Harmonizing {trait_name}")
    table.add_column("Step")
    table.add_column("Rows", justify="right")
    for label, value in _stat_lines(stats):
        table.add_row(label, f"{value:,}")
    console.print(table)
