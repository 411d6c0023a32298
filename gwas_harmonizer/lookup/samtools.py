"""samtools faidx execution for reference-base lookup.

One invocation resolves a whole batch of single-base regions:

    samtools faidx GRCh38.fa chr1:1000-1000 chr2:5000-5000 ...

samtools prints a FASTA header line (">chr1:1000-1000") followed by the
sequence line for every region. Header lines are skipped; a sequence line
longer than one base means the region could not be resolved to a single
nucleotide and is reported as "N".
"""

import logging
import shutil
import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from gwas_harmonizer.exceptions import ExternalToolError

logger = logging.getLogger(__name__)

AMBIGUOUS_BASE = "N"


class SequenceLookup(Protocol):
    """Anything that maps a batch of region queries to one base per query."""

    def fetch(self, queries: Sequence[str]) -> list[str]:
        ...


def find_samtools() -> Path | None:
    """Find samtools executable in PATH.

    Returns:
        Path to executable, or None if not found
    """
    path = shutil.which("samtools")
    return Path(path) if path else None


def parse_faidx_output(stdout: str) -> list[str]:
    """Extract one upper-cased base per region from faidx output.

    Example:
        >>> parse_faidx_output(">chr1:10-10\\na\\n>chr1:20-20\\nGT\\n")
        ['A', 'N']
    """
    bases: list[str] = []
    for line in stdout.splitlines():
        if line.startswith(">"):
            continue
        bases.append(AMBIGUOUS_BASE if len(line) > 1 else line.upper())
    return bases


class SamtoolsFaidx:
    """Reference-base lookup backed by ``samtools faidx``.

    Attributes:
        samtools: Path to the samtools executable
        fasta: Indexed reference FASTA (hg38)
        timeout: Seconds to wait for one batch, or None to wait indefinitely
    """

    def __init__(
        self,
        samtools: Path | str,
        fasta: Path | str,
        timeout: float | None = None,
    ) -> None:
        self.samtools = str(samtools)
        self.fasta = str(fasta)
        self.timeout = timeout

    def command(self, queries: Sequence[str]) -> list[str]:
        return [self.samtools, "faidx", self.fasta, *queries]

    def fetch(self, queries: Sequence[str]) -> list[str]:
        """Look up the base at each query region.

        Args:
            queries: Regions of the form "chr<C>:<P>-<P>"

        Returns:
            One base per query, in query order

        Raises:
            ExternalToolError: If samtools cannot start, exits non-zero,
                times out, or returns a different number of bases
        """
        if not queries:
            return []

        cmd = self.command(queries)
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise ExternalToolError(f"samtools executable not found: {self.samtools}") from e
        except subprocess.CalledProcessError as e:
            raise ExternalToolError(
                f"samtools faidx failed with exit code {e.returncode}:\n{e.stderr}"
            ) from e
        except subprocess.TimeoutExpired as e:
            raise ExternalToolError(
                f"samtools faidx timed out after {self.timeout}s "
                f"on a batch of {len(queries)} regions"
            ) from e

        bases = parse_faidx_output(result.stdout)
        if len(bases) != len(queries):
            raise ExternalToolError(
                f"samtools faidx returned {len(bases)} bases for {len(queries)} regions"
            )
        return bases
