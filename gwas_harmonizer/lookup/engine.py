"""Concurrent reference-base lookup for unmatched variants.

Variants missing from the catalog are checked against the hg38 reference
sequence instead. Their regions are split into fixed-size batches and a
bounded pool of worker threads resolves them:

1. Build one "chr<C>:<P>-<P>" region per missing row
2. Partition the regions into batches (default 5000 per batch)
3. Each worker claims the next unprocessed batch index, runs one lookup for
   the whole batch and writes the bases into a pre-sized result list at
   ``batch_start + offset``, so output order never depends on which worker
   finished first
4. Rows whose reference base equals their alt allele had ref/alt recorded
   backwards and are flipped; every row is appended to the matched table

A failed batch stops the remaining workers and the error propagates; there is
no partial result.
"""

import logging
import os
import threading
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

from gwas_harmonizer.exceptions import (
    ConfigurationError,
    DataShapeError,
    ExternalToolError,
)
from gwas_harmonizer.flip import flip_alleles
from gwas_harmonizer.lookup.samtools import AMBIGUOUS_BASE, SequenceLookup
from gwas_harmonizer.models import Statistics
from gwas_harmonizer.table import Row, Table
from gwas_harmonizer.utils import UNIQUE_ID, make_unique_id

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5000
THREADS_ENV_VAR = "SAMTOOLS_THREADS"

STAGE = "reference lookup"


def default_thread_count() -> int:
    """Upper bound on lookup workers: four per logical CPU."""
    return (os.cpu_count() or 1) * 4


def resolve_thread_count(requested: int | None = None) -> int:
    """Decide how many lookup workers to run.

    An explicit request wins, then the SAMTOOLS_THREADS environment variable,
    then the default. The result is clamped to ``[1, default_thread_count()]``.

    Raises:
        ConfigurationError: If SAMTOOLS_THREADS is set but not an integer
    """
    default = default_thread_count()
    if requested is None:
        env_value = os.environ.get(THREADS_ENV_VAR)
        if env_value is not None:
            try:
                requested = int(env_value)
            except ValueError:
                raise ConfigurationError(
                    f"{THREADS_ENV_VAR} is not a number: {env_value!r}"
                ) from None
    if requested is None:
        return default
    return max(1, min(requested, default))


def build_queries(table: Table) -> list[str]:
    """One closed single-base hg38 region per row."""
    chr_i = table.column_index("chr_hg38", STAGE)
    pos_i = table.column_index("pos_hg38", STAGE)
    return [f"chr{row[chr_i]}:{row[pos_i]}-{row[pos_i]}" for row in table.rows]


def partition(total: int, batch_size: int) -> list[tuple[int, int]]:
    """Split ``range(total)`` into consecutive ``(start, end)`` batches.

    Example:
        >>> partition(12, 5)
        [(0, 5), (5, 10), (10, 12)]
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive: {batch_size}")
    return [(start, min(start + batch_size, total)) for start in range(0, total, batch_size)]


class BatchCounter:
    """Hands out batch indices to workers, each index exactly once."""

    def __init__(self, total: int) -> None:
        self.total = total
        self._next = 0
        self._lock = threading.Lock()
        self._stopped = False

    def claim(self) -> int | None:
        """Return the next unclaimed batch index, or None when done."""
        with self._lock:
            if self._stopped or self._next >= self.total:
                return None
            index = self._next
            self._next += 1
            return index

    def stop(self) -> None:
        """Stop handing out batches (used after a worker failure)."""
        with self._lock:
            self._stopped = True


def lookup_bases(
    queries: Sequence[str],
    lookup: SequenceLookup,
    batch_size: int = DEFAULT_BATCH_SIZE,
    threads: int | None = None,
    stats: Statistics | None = None,
) -> list[str]:
    """Resolve the reference base of every query using a worker pool.

    Args:
        queries: Regions in row order
        lookup: Batch lookup backend (e.g. SamtoolsFaidx)
        batch_size: Queries per lookup invocation
        threads: Worker count (resolved with ``resolve_thread_count``)
        stats: Optional Statistics object to update (mutated in place)

    Returns:
        One base per query, in query order

    Raises:
        ExternalToolError: If any batch fails; no partial result is returned
    """
    batches = partition(len(queries), batch_size)
    if not batches:
        return []

    num_workers = min(resolve_thread_count(threads), len(batches))
    results: list[str | None] = [None] * len(queries)
    counter = BatchCounter(len(batches))

    logger.debug(
        f"Running reference lookup: {len(queries)} regions, {len(batches)} batches "
        f"of up to {batch_size}, {num_workers} workers"
    )

    def worker() -> None:
        while (batch := counter.claim()) is not None:
            start, end = batches[batch]
            try:
                bases = lookup.fetch(queries[start:end])
                if len(bases) != end - start:
                    raise ExternalToolError(
                        f"Lookup returned {len(bases)} bases for batch {batch} "
                        f"of {end - start} regions"
                    )
            except BaseException:
                counter.stop()
                raise
            for offset, base in enumerate(bases):
                results[start + offset] = base
            logger.debug(f"Finished lookup batch {batch} ({start}-{end})")

    with ThreadPoolExecutor(max_workers=num_workers) as executor:
        futures = [executor.submit(worker) for _ in range(num_workers)]
    for future in futures:
        future.result()

    if stats is not None:
        stats.lookup_batches += len(batches)

    unfilled = sum(1 for base in results if base is None)
    if unfilled:
        raise DataShapeError(f"{unfilled} lookup results were never written")
    return results  # type: ignore[return-value]


def ref_alt_check(
    matched: Table,
    missing: Table,
    lookup: SequenceLookup,
    batch_size: int = DEFAULT_BATCH_SIZE,
    threads: int | None = None,
    stats: Statistics | None = None,
) -> Table:
    """Orient unmatched rows against the reference sequence.

    A missing row whose hg38 reference base equals its alt allele has its
    alleles flipped (effect size negated, EAF complemented, unique_id
    rebuilt). Every missing row, flipped or not, is appended in its original
    order after the matched rows.

    Args:
        matched: Rows matched to the catalog
        missing: Rows left for lookup, same columns as ``matched``
        lookup: Batch lookup backend
        batch_size: Queries per lookup invocation
        threads: Worker count
        stats: Optional Statistics object to update (mutated in place)

    Returns:
        Final harmonized table
    """
    if matched.columns != missing.columns:
        raise DataShapeError("Matched and missing tables must share one column layout")

    ref_i, alt_i, effect_i, eaf_i, uid_i = missing.column_indices(
        ["ref", "alt", "effect_size", "EAF", UNIQUE_ID], STAGE
    )
    chr_i, pos_i = missing.column_indices(["chr_hg19", "pos_hg19"], STAGE)

    bases = lookup_bases(build_queries(missing), lookup, batch_size, threads, stats)

    checked: list[Row] = []
    for row, base in zip(missing.rows, bases):
        if base == row[alt_i]:
            row = flip_alleles(row, ref_i, alt_i, effect_i, eaf_i)
            row[uid_i] = make_unique_id(row[chr_i], row[pos_i], row[ref_i], row[alt_i])
            if stats is not None:
                stats.lookup_flipped += 1
        elif stats is not None:
            stats.lookup_unchanged += 1
            if base == AMBIGUOUS_BASE:
                stats.lookup_ambiguous += 1
        checked.append(row)

    logger.info(f"Reference lookup resolved {len(checked):,} rows")
    return Table(matched.columns, matched.rows + checked)
