"""Reference catalog index.

The dbSNP-derived catalog is loaded into memory for O(1) lookup by the
5-field key (chr, pos_hg19, ref, alt, pos_hg38). Columns beyond the key are
annotations that get appended to every input row that matches.

Catalog file format (tab-separated, usually gzipped):
rsid    chr  pos_hg19  ref  alt  pos_hg38  gnomAD_AF_EUR ...
rs123   1    10000     A    G    10500     0.31          ...
"""

import logging
from pathlib import Path

from gwas_harmonizer.table import Row, Table
from gwas_harmonizer.utils import CATALOG_KEY_COLUMNS

logger = logging.getLogger(__name__)

CatalogKey = tuple[str, str, str, str, str]


class ReferenceIndex:
    """Read-only hash index over a reference catalog.

    Built once per run and then only read, so it can be shared between
    threads without locking.

    Attributes:
        annotation_columns: Catalog columns outside the key, in catalog order
    """

    def __init__(self) -> None:
        self._by_key: dict[CatalogKey, list[str]] = {}
        self.annotation_columns: list[str] = []

    @classmethod
    def build(cls, catalog: Table) -> "ReferenceIndex":
        """Index every catalog row by its 5-field key.

        Keys are expected to be unique; when the catalog repeats one, the
        later row wins.

        Raises:
            SchemaError: If a key column is missing from the catalog
        """
        index = cls()
        key_positions = catalog.column_indices(CATALOG_KEY_COLUMNS, "reference indexing")
        annotation_positions = [
            i for i in range(len(catalog.columns)) if i not in key_positions
        ]
        index.annotation_columns = [catalog.columns[i] for i in annotation_positions]

        for row in catalog.rows:
            key = tuple(row[i] for i in key_positions)
            index._by_key[key] = [row[i] for i in annotation_positions]  # type: ignore[index]

        logger.info(
            f"Indexed {len(index):,} catalog entries "
            f"({len(index.annotation_columns)} annotation columns)"
        )
        return index

    @classmethod
    def load(cls, filepath: Path) -> "ReferenceIndex":
        """Read a catalog file (gzipped or plain TSV) and index it.

        Raises:
            FileNotFoundError: If file doesn't exist
        """
        if not filepath.exists():
            raise FileNotFoundError(f"Reference catalog not found: {filepath}")
        return cls.build(Table.read(filepath))

    def probe(self, row: Row, key_positions: list[int]) -> list[str] | None:
        """Look up a row using the cells at ``key_positions`` as the key."""
        key = tuple(row[i] for i in key_positions)
        return self._by_key.get(key)  # type: ignore[arg-type]

    def __len__(self) -> int:
        return len(self._by_key)

    def clear(self) -> None:
        """Clear all loaded data to free memory."""
        self._by_key.clear()
