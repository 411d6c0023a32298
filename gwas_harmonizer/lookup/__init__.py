"""Reference-base lookup for variants missing from the catalog."""

from gwas_harmonizer.lookup.engine import (
    DEFAULT_BATCH_SIZE,
    lookup_bases,
    ref_alt_check,
    resolve_thread_count,
)
from gwas_harmonizer.lookup.samtools import SamtoolsFaidx, SequenceLookup

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "SamtoolsFaidx",
    "SequenceLookup",
    "lookup_bases",
    "ref_alt_check",
    "resolve_thread_count",
]
