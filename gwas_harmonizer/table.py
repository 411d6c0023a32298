"""In-memory table of string cells.

Every pipeline stage works on a ``Table``: an ordered list of unique column
names plus row-major string cells aligned to them. The sentinel ``"NA"``
marks an absent value; numeric cells stay decimal text until a stage parses
them.

Stages treat tables functionally: a stage consumes a table and produces a
new one, so there is never more than one writer.
"""

import logging
from collections.abc import Callable, Iterable, Iterator, Sequence
from pathlib import Path

import pandas as pd

from gwas_harmonizer.exceptions import DataShapeError, SchemaError
from gwas_harmonizer.io_utils import atomic_gzip_writer, smart_open

logger = logging.getLogger(__name__)

NA = "NA"

# Cells that mean "no value" wherever a number or coordinate is expected
MISSING_VALUES = frozenset({"NA", "NaN"})

Row = list[str]


def is_missing(value: str) -> bool:
    """Return True for the absent-value sentinels ("NA", "NaN")."""
    return value in MISSING_VALUES


class Table:
    """Ordered column names plus row-major string cells.

    Row length equals column count after every structural change; a mismatch
    raises ``DataShapeError`` since it can only come from a bug.

    Attributes:
        columns: Column names, unique and order-significant
        rows: Rows of string cells aligned to ``columns``
    """

    def __init__(
        self,
        columns: Sequence[str],
        rows: Iterable[Sequence[str]] | None = None,
    ) -> None:
        self.columns: list[str] = list(columns)
        self.rows: list[Row] = [list(r) for r in rows] if rows is not None else []
        self._check_unique(self.columns)
        self._check_shape()

    # ------------------------------------------------------------------
    # Construction / IO
    # ------------------------------------------------------------------

    @classmethod
    def from_frame(cls, df: pd.DataFrame) -> "Table":
        """Build a table from a DataFrame, keeping every cell as text."""
        columns = [str(c) for c in df.columns]
        rows = df.astype(str).values.tolist()
        return cls(columns, rows)

    @classmethod
    def read(cls, path: Path, delimiter: str = "\t") -> "Table":
        """Read a delimited text file with a header line (may be gzipped).

        Cells are read as literal text: "NA" stays "NA" and empty cells stay
        empty strings.

        Args:
            path: File to read
            delimiter: Single-character field separator

        Returns:
            Table with the file's header as columns
        """
        with smart_open(Path(path)) as f:
            df = pd.read_csv(
                f,
                sep=delimiter,
                index_col=False,
                dtype=str,
                keep_default_na=False,
                na_filter=False,
                low_memory=False,
            )
        table = cls.from_frame(df)
        logger.debug(f"Read {len(table)} rows, {len(table.columns)} columns from {path}")
        return table

    def write(self, path: Path) -> None:
        """Write header and rows as gzip-compressed TSV, atomically."""
        logger.debug(f"Writing {len(self.rows)} rows to {path}")
        with atomic_gzip_writer(Path(path)) as f:
            f.write("\t".join(self.columns) + "\n")
            for row in self.rows:
                f.write("\t".join(row) + "\n")

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def column_index(self, name: str, stage: str | None = None) -> int:
        """Return the position of a column.

        Raises:
            SchemaError: If the column is absent
        """
        try:
            return self.columns.index(name)
        except ValueError:
            raise SchemaError(name, stage) from None

    def column_indices(self, names: Iterable[str], stage: str | None = None) -> list[int]:
        """Resolve several column positions at once."""
        return [self.column_index(name, stage) for name in names]

    def has_column(self, name: str) -> bool:
        return name in self.columns

    def column(self, name: str) -> list[str]:
        """Return the values of one column."""
        idx = self.column_index(name)
        return [row[idx] for row in self.rows]

    def select(self, name: str, predicate: Callable[[str], bool]) -> "RowSelection":
        """Lazily filter rows on the value of one column.

        The returned selection re-scans the rows on every iteration, so it can
        be consumed any number of times and never modifies the table.
        """
        return RowSelection(self.rows, self.column_index(name), predicate)

    # ------------------------------------------------------------------
    # Structural edits
    # ------------------------------------------------------------------

    def append_columns(self, names: Sequence[str], fill: str = NA) -> None:
        """Append columns, filling every existing row with ``fill``."""
        self._check_unique(self.columns + list(names))
        self.columns.extend(names)
        padding = [fill] * len(names)
        for row in self.rows:
            row.extend(padding)
        self._check_shape()

    def set_column(self, name: str, values: Sequence[str]) -> None:
        """Overwrite a column's values, appending the column if absent."""
        if len(values) != len(self.rows):
            raise DataShapeError(
                f"Column '{name}' has {len(values)} values for {len(self.rows)} rows"
            )
        if name not in self.columns:
            self.append_columns([name])
        idx = self.column_index(name)
        for row, value in zip(self.rows, values):
            row[idx] = value

    def rename_columns(self, mapping: dict[str, str]) -> None:
        """Rename columns in place; names not in ``mapping`` are kept."""
        renamed = [mapping.get(c, c) for c in self.columns]
        self._check_unique(renamed)
        self.columns = renamed

    def reorder_columns(self, target_order: Sequence[str]) -> "Table":
        """Return a new table with exactly ``target_order`` as columns.

        Columns of this table not listed are dropped; listed columns this
        table lacks are filled with "NA" in every row.
        """
        positions = [
            self.columns.index(name) if name in self.columns else None
            for name in target_order
        ]
        rows = [
            [row[p] if p is not None else NA for p in positions]
            for row in self.rows
        ]
        return Table(target_order, rows)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self.rows)

    def __repr__(self) -> str:
        return f"Table(columns={self.columns!r}, rows={len(self.rows)})"

    @staticmethod
    def _check_unique(columns: Sequence[str]) -> None:
        seen: set[str] = set()
        for name in columns:
            if name in seen:
                raise DataShapeError(f"Duplicate column name '{name}'")
            seen.add(name)

    def _check_shape(self) -> None:
        width = len(self.columns)
        for i, row in enumerate(self.rows):
            if len(row) != width:
                raise DataShapeError(
                    f"Row {i} has {len(row)} cells but table has {width} columns"
                )


class RowSelection:
    """Restartable filtered view over a table's rows."""

    def __init__(
        self,
        rows: list[Row],
        index: int,
        predicate: Callable[[str], bool],
    ) -> None:
        self._rows = rows
        self._index = index
        self._predicate = predicate

    def __iter__(self) -> Iterator[Row]:
        return (row for row in self._rows if self._predicate(row[self._index]))
