"""Typer CLI for the GWAS harmonizer.

Usage:
    # Legend from Google Sheets
    gwas-harmonizer -g 1a2b3c4d5e6f --api-key $KEY -t PD_risk -i raw/ \\
        -l /opt/liftOver -d dbsnp.tsv.gz -s samtools -f hg38.fa -o out/PD_risk.txt.gz

    # Legend from a local export
    gwas-harmonizer --legend-file legend.tsv -t PD_risk -i raw/ \\
        -d dbsnp.tsv.gz -f hg38.fa -o out/PD_risk.txt.gz
"""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from gwas_harmonizer import __version__
from gwas_harmonizer.legend import API_KEY_ENV_VAR
from gwas_harmonizer.lookup.engine import DEFAULT_BATCH_SIZE, THREADS_ENV_VAR

app = typer.Typer(
    name="gwas-harmonizer",
    help="Harmonize GWAS summary statistics against dbSNP and the hg38 reference",
    add_completion=False,
)

console = Console()


@app.command()
def harmonize(
    trait_name: Annotated[
        str,
        typer.Option("--trait-name", "-t", help="Trait to harmonize, as named in the legend"),
    ],
    raw_input_dir: Annotated[
        Path,
        typer.Option(
            "--raw-input-dir", "-i",
            help="Directory the legend's file_path entries are relative to",
            exists=True,
            file_okay=False,
            dir_okay=True,
        ),
    ],
    dbsnp_file: Annotated[
        Path,
        typer.Option(
            "--dbsnp-file", "-d",
            help="dbSNP catalog (TSV, optionally gzipped) keyed by chr, pos_hg19, ref, alt, pos_hg38",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ],
    fasta_ref: Annotated[
        Path,
        typer.Option(
            "--fasta-ref", "-f",
            help="Indexed hg38 FASTA reference for samtools faidx",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ],
    output_file: Annotated[
        Path,
        typer.Option("--output-file", "-o", help="Harmonized output (gzipped TSV)", dir_okay=False),
    ],
    google_sheets_id: Annotated[
        str | None,
        typer.Option("--google-sheets-id", "-g", help="ID of the Google Sheets formatting legend"),
    ] = None,
    api_key: Annotated[
        str | None,
        typer.Option("--api-key", envvar=API_KEY_ENV_VAR, help="Google Sheets API key"),
    ] = None,
    legend_file: Annotated[
        Path | None,
        typer.Option(
            "--legend-file",
            help="Local CSV/TSV export of the legend (instead of Google Sheets)",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    liftover: Annotated[
        Path | None,
        typer.Option("--liftover", "-l", help="liftOver executable (default: auto-detect from PATH)"),
    ] = None,
    liftover_dir: Annotated[
        Path | None,
        typer.Option(
            "--liftover-dir",
            help="Directory with *.over.chain.gz files (default: next to liftOver)",
            file_okay=False,
            dir_okay=True,
        ),
    ] = None,
    samtools: Annotated[
        Path | None,
        typer.Option("--samtools", "-s", help="samtools executable (default: auto-detect from PATH)"),
    ] = None,
    threads: Annotated[
        int | None,
        typer.Option(
            "--threads",
            envvar=THREADS_ENV_VAR,
            help="Reference lookup workers, clamped to 1..4 per CPU (default: 4 per CPU)",
        ),
    ] = None,
    batch_size: Annotated[
        int,
        typer.Option("--batch-size", help="Regions per samtools invocation", min=1),
    ] = DEFAULT_BATCH_SIZE,
    lookup_timeout: Annotated[
        float | None,
        typer.Option("--lookup-timeout", help="Seconds allowed per lookup batch (default: no limit)"),
    ] = None,
    keep_temp: Annotated[
        bool,
        typer.Option("--keep-temp", help="Keep liftOver intermediate files"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging"),
    ] = False,
) -> None:
    """Harmonize one trait's GWAS summary statistics.

    Pipeline:
    1. Read the trait's entry from the formatting legend
    2. Rename, normalize and filter the raw summary statistics
    3. Lift coordinates to hg19 and hg38 with liftOver
    4. Match variants against dbSNP in both allele orientations
    5. Orient unmatched variants against the hg38 reference with samtools
    """
    from gwas_harmonizer.config import Config
    from gwas_harmonizer.logging_config import setup_logging
    from gwas_harmonizer.main import run_pipeline

    console.print("\n")
    console.print("[bold]GWAS Summary Statistics Harmonizer[/bold]", style="blue")
    console.print(f"v{__version__}\n")

    config = Config(
        trait_name=trait_name,
        raw_input_dir=raw_input_dir,
        dbsnp_file=dbsnp_file,
        fasta_ref=fasta_ref,
        output_file=output_file,
        google_sheets_id=google_sheets_id,
        api_key=api_key,
        legend_file=legend_file,
        liftover_bin=liftover,
        liftover_dir=liftover_dir,
        samtools_bin=samtools,
        batch_size=batch_size,
        threads=threads,
        lookup_timeout=lookup_timeout,
        keep_temp_files=keep_temp,
        verbose=verbose,
    )

    console.print("Options Set:")
    console.print(f"Trait name:          {config.trait_name}")
    if config.legend_file is not None:
        console.print(f"Legend file:         {config.legend_file}")
    else:
        console.print(f"Google Sheets ID:    {config.google_sheets_id}")
    console.print(f"Raw input directory: {config.raw_input_dir}")
    console.print(f"dbSNP file:          {config.dbsnp_file}")
    console.print(f"FASTA reference:     {config.fasta_ref}")
    console.print(f"Output file:         {config.output_file}")
    if config.verbose:
        console.print("Verbose logging flag set")
    console.print("")

    config.output_dir.mkdir(parents=True, exist_ok=True)

    errors = config.validate()
    if errors:
        for error in errors:
            console.print(f"[red]ERROR:[/red] {error}")
        raise typer.Exit(code=1)

    log_file = setup_logging(config.output_dir, job_name=config.trait_name, verbose=verbose)
    console.print(f"Detailed log: {log_file}\n")

    try:
        run_pipeline(config)
    except Exception as e:
        console.print(f"[red]ERROR:[/red] {e}")
        if verbose:
            import traceback
            console.print(traceback.format_exc())
        raise typer.Exit(code=1)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
