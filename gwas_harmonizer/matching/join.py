"""Reference join engine.

Processing flow:
1. Direct probe: look up each input row by (chr_hg19, pos_hg19, ref, alt, pos_hg38)
2. Flipped probe: look up each input row with ref and alt swapped
3. Reconcile: drop flipped candidates already matched directly, flip the
   survivors back to catalog orientation, append them after the direct hits
   and deduplicate by unique_id (first occurrence wins)
4. Missing set: unmatched rows that have both hg19 and hg38 coordinates go on
   to the reference sequence lookup; the rest are dropped

The two probes only read the input and the index, so they run concurrently.
"""

import logging
from concurrent.futures import ThreadPoolExecutor

from gwas_harmonizer.exceptions import DataShapeError
from gwas_harmonizer.flip import flip_alleles
from gwas_harmonizer.matching.reference import ReferenceIndex
from gwas_harmonizer.models import JoinResult, Statistics
from gwas_harmonizer.table import Row, Table, is_missing
from gwas_harmonizer.utils import (
    INPUT_KEY_COLUMNS,
    UNIQUE_ID,
    make_unique_id,
    output_layout,
)

logger = logging.getLogger(__name__)

STAGE = "reference matching"


def _probe(
    rows: list[Row],
    index: ReferenceIndex,
    key_positions: list[int],
    id_positions: list[int],
    annotation_positions: list[int],
) -> list[Row]:
    """Return augmented copies of the rows whose key is in the index.

    Each hit is extended with the catalog annotation cells at
    ``annotation_positions`` and the unique_id built from the row's own
    chr/pos/ref/alt.
    """
    hits: list[Row] = []
    for row in rows:
        annotations = index.probe(row, key_positions)
        if annotations is None:
            continue
        unique_id = make_unique_id(*(row[i] for i in id_positions))
        hits.append([*row, *(annotations[i] for i in annotation_positions), unique_id])
    return hits


def deduplicate(table: Table) -> Table:
    """Keep the first row for each unique_id, preserving order."""
    uid = table.column_index(UNIQUE_ID, STAGE)
    seen: set[str] = set()
    rows: list[Row] = []
    for row in table.rows:
        if row[uid] in seen:
            continue
        seen.add(row[uid])
        rows.append(row)
    return Table(table.columns, rows)


def reconcile(
    direct: Table,
    flipped: Table,
    stats: Statistics | None = None,
) -> Table:
    """Merge direct hits with flipped-probe candidates.

    Flipped candidates whose unique_id was matched directly are discarded, so
    the direct orientation wins whenever both match. Survivors are flipped
    (alleles, effect size, EAF), given a fresh unique_id and appended after
    the direct hits. The combined table is deduplicated by unique_id.

    Args:
        direct: Rows hit by the direct probe
        flipped: Rows hit by the flipped probe, same columns as ``direct``
        stats: Optional Statistics object to update (mutated in place)

    Returns:
        Deduplicated table of direct hits followed by corrected flipped hits
    """
    if direct.columns != flipped.columns:
        raise DataShapeError(
            "Direct and flipped hits must share one column layout"
        )

    chr_i, pos_i, ref_i, alt_i = direct.column_indices(
        ["chr_hg19", "pos_hg19", "ref", "alt"], STAGE
    )
    effect_i = direct.column_index("effect_size", STAGE)
    eaf_i = direct.column_index("EAF", STAGE)
    uid_i = direct.column_index(UNIQUE_ID, STAGE)

    direct_ids = {row[uid_i] for row in direct.rows}

    survivors: list[Row] = []
    for row in flipped.rows:
        if row[uid_i] in direct_ids:
            continue
        corrected = flip_alleles(row, ref_i, alt_i, effect_i, eaf_i)
        corrected[uid_i] = make_unique_id(
            corrected[chr_i], corrected[pos_i], corrected[ref_i], corrected[alt_i]
        )
        survivors.append(corrected)

    combined = Table(direct.columns, direct.rows + survivors)
    merged = deduplicate(combined)

    if stats is not None:
        stats.direct_hits += len(direct)
        stats.flipped_hits += len(survivors)
        stats.flipped_duplicates += len(flipped) - len(survivors)
        stats.duplicates_removed += len(combined) - len(merged)

    logger.debug(
        f"Reconciled {len(direct)} direct and {len(survivors)} flipped hits "
        f"into {len(merged)} rows"
    )
    return merged


def find_missing(
    table: Table,
    matched: Table,
    stats: Statistics | None = None,
) -> list[Row]:
    """Return input rows that matched in neither orientation.

    A unique_id can change when the alleles are flipped, so matched keys are
    collected in both allele orders. Unmatched rows lacking a hg19 or hg38
    position are dropped, as no sequence lookup is possible for them.
    """
    chr_i, pos19_i, ref_i, alt_i = table.column_indices(
        ["chr_hg19", "pos_hg19", "ref", "alt"], STAGE
    )
    pos38_i = table.column_index("pos_hg38", STAGE)
    m_chr, m_pos, m_ref, m_alt = matched.column_indices(
        ["chr_hg19", "pos_hg19", "ref", "alt"], STAGE
    )

    matched_keys: set[tuple[str, str, str, str]] = set()
    for row in matched.rows:
        matched_keys.add((row[m_chr], row[m_pos], row[m_ref], row[m_alt]))
        matched_keys.add((row[m_chr], row[m_pos], row[m_alt], row[m_ref]))

    missing: list[Row] = []
    for row in table.rows:
        if (row[chr_i], row[pos19_i], row[ref_i], row[alt_i]) in matched_keys:
            continue
        if is_missing(row[pos19_i]) or is_missing(row[pos38_i]):
            if stats is not None:
                stats.coordinate_incomplete += 1
            continue
        missing.append(row)

    return missing


def match_reference(
    table: Table,
    index: ReferenceIndex,
    stats: Statistics | None = None,
) -> JoinResult:
    """Match input rows against the reference catalog.

    Args:
        table: Lifted-over input with chr_hg19, pos_hg19, ref, alt,
            effect_size, EAF and pos_hg38 columns
        index: Reference catalog index
        stats: Optional Statistics object to update (mutated in place)

    Returns:
        JoinResult with matched and missing tables, both in output layout
        (fixed columns followed by the catalog annotation columns)

    Raises:
        SchemaError: If a required input column is absent
    """
    if stats is None:
        stats = Statistics()
    stats.input_rows += len(table)

    # Resolve every position before touching rows
    key_positions = table.column_indices(INPUT_KEY_COLUMNS, STAGE)
    chr_i, pos19_i, ref_i, alt_i, pos38_i = key_positions
    flipped_key_positions = [chr_i, pos19_i, alt_i, ref_i, pos38_i]
    id_positions = [chr_i, pos19_i, ref_i, alt_i]
    table.column_indices(["effect_size", "EAF"], STAGE)

    # Annotations named like an input column would collide with it
    annotation_positions = [
        i for i, name in enumerate(index.annotation_columns)
        if name not in table.columns and name != UNIQUE_ID
    ]
    annotation_columns = [index.annotation_columns[i] for i in annotation_positions]
    shadowed = [c for c in index.annotation_columns if c not in annotation_columns]
    if shadowed:
        logger.debug(f"Ignoring catalog columns already present in the input: {shadowed}")
    augmented_columns = table.columns + annotation_columns + [UNIQUE_ID]

    with ThreadPoolExecutor(max_workers=2) as executor:
        direct_future = executor.submit(
            _probe, table.rows, index, key_positions, id_positions, annotation_positions
        )
        flipped_future = executor.submit(
            _probe, table.rows, index, flipped_key_positions, id_positions, annotation_positions
        )
        direct = Table(augmented_columns, direct_future.result())
        flipped = Table(augmented_columns, flipped_future.result())

    logger.info(
        f"Catalog probes: {len(direct):,} direct hits, "
        f"{len(flipped):,} flipped candidates"
    )

    merged = reconcile(direct, flipped, stats)
    missing_rows = find_missing(table, merged, stats)
    stats.missing += len(missing_rows)

    # Missing rows carry NA annotations and their own unique_id
    na_annotations = ["NA"] * len(annotation_columns)
    missing = Table(
        augmented_columns,
        (
            [*row, *na_annotations, make_unique_id(*(row[i] for i in id_positions))]
            for row in missing_rows
        ),
    )

    layout = output_layout(annotation_columns)
    logger.info(
        f"Matched {len(merged):,} variants; {len(missing):,} left for reference lookup; "
        f"{stats.coordinate_incomplete:,} dropped without coordinates"
    )
    return JoinResult(
        matched=merged.reorder_columns(layout),
        missing=missing.reorder_columns(layout),
    )
