"""Tests for the concurrent reference-base lookup."""

import random
import threading
import time
from collections.abc import Sequence
from unittest.mock import patch

import pytest

from conftest import make_input, make_row
from gwas_harmonizer.exceptions import ConfigurationError, DataShapeError, ExternalToolError
from gwas_harmonizer.lookup import lookup_bases, ref_alt_check, resolve_thread_count
from gwas_harmonizer.lookup.engine import BatchCounter, build_queries, partition
from gwas_harmonizer.models import Statistics
from gwas_harmonizer.table import Table
from gwas_harmonizer.utils import UNIQUE_ID, make_unique_id, output_layout


class FakeLookup:
    """In-memory lookup returning a fixed base per region, with jitter."""

    def __init__(self, bases: dict[str, str], delay: float = 0.0) -> None:
        self.bases = bases
        self.delay = delay
        self.calls: list[list[str]] = []
        self._lock = threading.Lock()

    def fetch(self, queries: Sequence[str]) -> list[str]:
        with self._lock:
            self.calls.append(list(queries))
        if self.delay:
            time.sleep(random.uniform(0, self.delay))
        return [self.bases.get(q, "N") for q in queries]


class FailingLookup:
    """Lookup that fails for any batch containing ``bad_query``."""

    def __init__(self, bad_query: str) -> None:
        self.bad_query = bad_query

    def fetch(self, queries: Sequence[str]) -> list[str]:
        if self.bad_query in queries:
            raise ExternalToolError("samtools faidx failed with exit code 1")
        return ["A"] * len(queries)


def missing_table(*rows: list[str]) -> Table:
    """Rows in output layout with their unique_id filled in."""
    table = make_input(*rows)
    table.set_column(UNIQUE_ID, [make_unique_id(*r[:4]) for r in table.rows])
    return table.reorder_columns(output_layout([]))


class TestPartition:
    """Test batch partitioning."""

    def test_partition(self) -> None:
        assert partition(12, 5) == [(0, 5), (5, 10), (10, 12)]

    def test_exact_multiple(self) -> None:
        assert partition(10, 5) == [(0, 5), (5, 10)]

    def test_empty(self) -> None:
        assert partition(0, 5) == []

    def test_batches_cover_range_once(self) -> None:
        covered = [i for start, end in partition(10001, 5000) for i in range(start, end)]
        assert covered == list(range(10001))

    def test_invalid_batch_size(self) -> None:
        with pytest.raises(ValueError):
            partition(10, 0)


class TestBatchCounter:
    """Test batch index hand-out."""

    def test_claims_each_index_once(self) -> None:
        counter = BatchCounter(100)
        claimed: list[int] = []
        lock = threading.Lock()

        def claim_all() -> None:
            while (index := counter.claim()) is not None:
                with lock:
                    claimed.append(index)

        threads = [threading.Thread(target=claim_all) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert sorted(claimed) == list(range(100))

    def test_stop(self) -> None:
        counter = BatchCounter(5)
        assert counter.claim() == 0
        counter.stop()
        assert counter.claim() is None


class TestResolveThreadCount:
    """Test worker count resolution."""

    @pytest.fixture(autouse=True)
    def two_cpus(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("SAMTOOLS_THREADS", raising=False)
        with patch("gwas_harmonizer.lookup.engine.os.cpu_count", return_value=2):
            yield

    def test_default(self) -> None:
        assert resolve_thread_count() == 8

    def test_requested_is_clamped(self) -> None:
        assert resolve_thread_count(100) == 8
        assert resolve_thread_count(0) == 1
        assert resolve_thread_count(3) == 3

    def test_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SAMTOOLS_THREADS", "3")
        assert resolve_thread_count() == 3

    def test_environment_clamped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SAMTOOLS_THREADS", "64")
        assert resolve_thread_count() == 8

    def test_explicit_beats_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SAMTOOLS_THREADS", "3")
        assert resolve_thread_count(5) == 5

    def test_invalid_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SAMTOOLS_THREADS", "many")
        with pytest.raises(ConfigurationError, match="SAMTOOLS_THREADS"):
            resolve_thread_count()


class TestLookupBases:
    """Test the worker pool."""

    def test_order_preserved_with_many_workers(self) -> None:
        """Results line up with queries whatever order batches finish in."""
        queries = [f"chr1:{i}-{i}" for i in range(1, 58)]
        bases = {q: "ACGT"[i % 4] for i, q in enumerate(queries)}
        lookup = FakeLookup(bases, delay=0.01)
        stats = Statistics()

        result = lookup_bases(queries, lookup, batch_size=4, threads=6, stats=stats)

        assert result == [bases[q] for q in queries]
        assert stats.lookup_batches == 15

    def test_one_call_per_batch(self) -> None:
        queries = [f"chr1:{i}-{i}" for i in range(10)]
        lookup = FakeLookup({})
        lookup_bases(queries, lookup, batch_size=4, threads=2)
        assert sorted(len(call) for call in lookup.calls) == [2, 4, 4]

    def test_no_queries(self) -> None:
        lookup = FakeLookup({})
        assert lookup_bases([], lookup) == []
        assert lookup.calls == []

    def test_failure_propagates(self) -> None:
        queries = [f"chr1:{i}-{i}" for i in range(20)]
        with pytest.raises(ExternalToolError):
            lookup_bases(queries, FailingLookup("chr1:13-13"), batch_size=5, threads=4)

    def test_wrong_result_count(self) -> None:
        class ShortLookup:
            def fetch(self, queries: Sequence[str]) -> list[str]:
                return ["A"]

        with pytest.raises(ExternalToolError, match="1 bases"):
            lookup_bases(["chr1:1-1", "chr1:2-2"], ShortLookup(), batch_size=2, threads=1)


class TestBuildQueries:
    """Test region construction."""

    def test_queries_use_hg38(self) -> None:
        table = make_input(make_row(chr_val="X", pos_hg19="100", pos_hg38="5000"))
        assert build_queries(table) == ["chrX:5000-5000"]


class TestRefAltCheck:
    """Test orientation against the reference sequence."""

    def test_flip_unchanged_and_ambiguous(self) -> None:
        matched = missing_table(make_row(chr_val="1", pos_hg19="10", pos_hg38="20"))
        missing = missing_table(
            make_row(chr_val="2", pos_hg19="100", pos_hg38="1100", ref="A", alt="G", effect="0.5", eaf="0.25"),
            make_row(chr_val="2", pos_hg19="200", pos_hg38="1200", ref="C", alt="T"),
            make_row(chr_val="2", pos_hg19="300", pos_hg38="1300", ref="C", alt="T"),
        )
        lookup = FakeLookup({
            "chr2:1100-1100": "G",  # reference base is the alt allele -> flip
            "chr2:1200-1200": "C",  # already in reference orientation
            "chr2:1300-1300": "N",  # unresolved
        })
        stats = Statistics()

        result = ref_alt_check(matched, missing, lookup, batch_size=2, threads=2, stats=stats)

        col = result.column_index
        assert len(result) == 4
        assert result.rows[0] == matched.rows[0]
        flipped = result.rows[1]
        assert (flipped[col("ref")], flipped[col("alt")]) == ("G", "A")
        assert flipped[col("effect_size")] == "-0.5"
        assert flipped[col("EAF")] == "0.75"
        assert flipped[col(UNIQUE_ID)] == "2_100_G_A"
        assert result.rows[2] == missing.rows[1]
        assert result.rows[3] == missing.rows[2]
        assert stats.lookup_flipped == 1
        assert stats.lookup_unchanged == 2
        assert stats.lookup_ambiguous == 1

    def test_layout_mismatch(self) -> None:
        matched = missing_table()
        with pytest.raises(DataShapeError):
            ref_alt_check(matched, matched.reorder_columns(["ref"]), FakeLookup({}))

    def test_no_missing_rows(self) -> None:
        matched = missing_table(make_row())
        result = ref_alt_check(matched, missing_table(), FakeLookup({}))
        assert result.rows == matched.rows


@pytest.mark.parametrize("total", [0, 1, 7, 23, 100])
@pytest.mark.parametrize("batch_size", [1, 3, 50])
def test_order_preserved_for_any_size(total: int, batch_size: int) -> None:
    """Output order equals query order for every size and batching."""
    queries = [f"chr7:{i}-{i}" for i in range(total)]
    bases = {q: "ACGT"[(i * 7) % 4] for i, q in enumerate(queries)}
    result = lookup_bases(queries, FakeLookup(bases, delay=0.002), batch_size=batch_size, threads=4)
    assert result == [bases[q] for q in queries]
