"""Allele-flip normalization.

A record whose ref/alt were recorded in the opposite orientation to the
reference is corrected by swapping the alleles, negating the signed effect
and complementing the effect-allele frequency. Flipping twice restores the
alleles and the effect exactly; the frequency comes back exactly only when
``1 - x`` is exact in binary floating point (0.25 does, 0.3 gives
0.30000000000000004).
"""

from gwas_harmonizer.exceptions import NumericParseError
from gwas_harmonizer.table import Row, is_missing


def parse_number(value: str, column: str | int = "value") -> float:
    """Parse a decimal text cell as a 64-bit float.

    Args:
        value: Cell text
        column: Column name or position, used in the error message

    Returns:
        Parsed float

    Raises:
        NumericParseError: If the text is not a number (or is an NA sentinel)
    """
    if is_missing(value):
        raise NumericParseError(f"Column {column} holds missing value '{value}'")
    try:
        return float(value)
    except ValueError:
        raise NumericParseError(
            f"Column {column} holds non-numeric value '{value}'"
        ) from None


def format_number(value: float) -> str:
    """Format a float as the shortest text that parses back to it.

    Integral values drop the trailing ".0" (``-1.0`` -> ``"-1"``).

    Example:
        >>> format_number(-0.5)
        '-0.5'
        >>> format_number(2.0)
        '2'
    """
    text = repr(value)
    if text.endswith(".0"):
        text = text[:-2]
    return text


def negate(value: str, column: str | int = "effect_size") -> str:
    """Additive inverse of a numeric cell; NA sentinels pass through."""
    if is_missing(value):
        return value
    return format_number(-parse_number(value, column))


def complement_frequency(value: str, column: str | int = "EAF") -> str:
    """``1 - value`` of a numeric cell; NA sentinels pass through."""
    if is_missing(value):
        return value
    return format_number(1.0 - parse_number(value, column))


def flip_alleles(
    row: Row,
    ref_pos: int,
    alt_pos: int,
    effect_pos: int,
    freq_pos: int,
) -> Row:
    """Return a copy of ``row`` with the allele orientation reversed.

    Swaps the cells at ``ref_pos`` and ``alt_pos``, negates the effect at
    ``effect_pos`` and replaces the frequency at ``freq_pos`` with its
    complement. No other cell is touched and ``row`` itself is not modified.

    Args:
        row: Record cells
        ref_pos: Position of the reference allele
        alt_pos: Position of the alternate allele
        effect_pos: Position of the signed effect size
        freq_pos: Position of the effect-allele frequency

    Returns:
        New row with the flip applied

    Raises:
        NumericParseError: If effect or frequency is non-numeric text
    """
    flipped = list(row)
    flipped[ref_pos], flipped[alt_pos] = row[alt_pos], row[ref_pos]
    flipped[effect_pos] = negate(row[effect_pos], effect_pos)
    flipped[freq_pos] = complement_frequency(row[freq_pos], freq_pos)
    return flipped

