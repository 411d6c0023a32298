"""I/O utilities for transparent gzip handling.

Reading detects gzip compression from magic bytes, so summary statistics and
catalogs may arrive compressed or not. Writing always produces gzip output and
goes through a temporary file so a failed run never leaves a truncated table.

Example:
    with smart_open(Path("dbsnp.tsv.gz")) as f:
        for line in f:
            process(line)
"""

import gzip
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator, Literal

# Gzip magic bytes (first two bytes of gzip file)
GZIP_MAGIC = b"\x1f\x8b"


def is_gzipped(filepath: Path) -> bool:
    """Detect if a file is gzip-compressed.

    Checks magic bytes first (reliable), falls back to extension if file
    is too small or unreadable.

    Args:
        filepath: Path to file to check

    Returns:
        True if file is gzip-compressed

    Example:
        >>> is_gzipped(Path("sumstats.txt.gz"))
        True
    """
    try:
        with open(filepath, "rb") as f:
            magic = f.read(2)
            if len(magic) >= 2:
                return magic == GZIP_MAGIC
    except OSError:
        pass

    # Fall back to extension check
    return str(filepath).endswith(".gz")


@contextmanager
def smart_open(
    filepath: Path,
    mode: Literal["r", "rt", "rb"] = "rt",
) -> Iterator[IO[str] | IO[bytes]]:
    """Open a file for reading with automatic gzip detection.

    Args:
        filepath: Path to file (may be .gz or uncompressed)
        mode: File mode ('r' or 'rt' for text, 'rb' for binary)

    Yields:
        File handle (text or binary based on mode)
    """
    if mode == "r":
        mode = "rt"

    if is_gzipped(filepath):
        if mode == "rt":
            f = gzip.open(filepath, mode, encoding="utf-8")
        else:
            f = gzip.open(filepath, mode)
    else:
        if mode == "rt":
            f = open(filepath, mode, encoding="utf-8")
        else:
            f = open(filepath, mode)

    try:
        yield f
    finally:
        f.close()


@contextmanager
def atomic_gzip_writer(filepath: Path) -> Iterator[IO[str]]:
    """Write a gzip text file atomically.

    Content goes to a temporary file in the destination directory, which
    replaces ``filepath`` only once the block exits without error. On error
    the temporary file is removed and the destination is left untouched.

    Args:
        filepath: Final output path

    Yields:
        Text handle writing gzip-compressed UTF-8
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{filepath.name}.", suffix=".tmp", dir=filepath.parent
    )
    os.close(fd)
    tmp_path = Path(tmp_name)

    try:
        with gzip.open(tmp_path, "wt", encoding="utf-8", newline="\n") as f:
            yield f
        os.replace(tmp_path, filepath)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise

