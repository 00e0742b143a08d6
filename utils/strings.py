"""String processing utilities for the budget flow tools."""

import unicodedata

from utils.patterns import (
    CURRENCY_SYMBOLS,
    NON_SLUG_CHARS,
    SLUG,
    WHITESPACE,
    YEAR_ENTRY,
)


def safe_float(val, default: float = 0.0) -> float:
    """Safely convert value to float with fallback default.

    Handles:
    - None, empty strings -> default
    - Numeric types -> float
    - Strings with currency symbols, whitespace, commas
    - Invalid input -> default

    Args:
        val: Value to convert (any type)
        default: Value to return on failure (default: 0.0)

    Returns:
        float: Parsed value or default
    """
    if val is None or val == '':
        return default
    if isinstance(val, bool):
        return default
    if isinstance(val, (int, float)):
        return float(val)

    try:
        s = str(val).strip()
        s = CURRENCY_SYMBOLS.sub('', s)
        s = s.replace(',', '').strip()
        return float(s) if s else default
    except (ValueError, TypeError):
        return default


def normalize_whitespace(s: str) -> str:
    """Normalize multiple whitespace characters to single spaces.

    Example:
        "Ministry of   Health\\n" -> "Ministry of Health"
    """
    return WHITESPACE.sub(' ', s).strip()


def slugify(name: str) -> str:
    """Derive a URL slug from a display name.

    Accents are folded to ASCII and any run of non-alphanumerics becomes a
    single dash.

    Example:
        "Santé et Services sociaux" -> "sante-et-services-sociaux"
    """
    folded = unicodedata.normalize("NFKD", name)
    folded = folded.encode("ascii", "ignore").decode("ascii").lower()
    return NON_SLUG_CHARS.sub("-", folded).strip("-")


def is_slug(value: str) -> bool:
    """True if *value* is a single well-formed slug segment."""
    return bool(SLUG.match(value))


def is_year_entry(value: str) -> bool:
    """True if *value* names a published fiscal-year directory ("2023")."""
    return bool(YEAR_ENTRY.match(value))
