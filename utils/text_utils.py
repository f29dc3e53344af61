"""
Text utilities for spreadsheet cells and field names.

Used by the file reader, the normalizer and the quality report to agree
on what counts as "blank" and how a cell becomes a JSON-safe scalar.
"""

import math
import unicodedata
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Optional


def is_blank(value: Any) -> bool:
    """
    Check whether a cell carries no data.

    None, NaN/NaT and whitespace-only strings are blank; 0 and False are not.
    """
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str):
        return value.strip() == ""
    # pandas NaT compares unequal to itself
    try:
        return bool(value != value)
    except (TypeError, ValueError):
        return False


def clean_key(key: Any) -> Optional[str]:
    """
    Clean a column key for use as a field name.

    - "  SKU " → "SKU"
    - "" / "   " / None → None

    Args:
        key: Raw column key from the reader

    Returns:
        Trimmed string, or None if nothing is left
    """
    if key is None:
        return None

    text = str(key).strip()
    return text or None


def to_scalar(value: Any) -> Any:
    """
    Convert a cell to a JSON-safe scalar.

    Blanks become "", dates become ISO strings, whole floats stay floats
    (a price of 10.0 is still a price), numpy scalars become Python ones.
    """
    if is_blank(value):
        return ""

    # numpy / pandas scalars
    if hasattr(value, "item") and not isinstance(value, (str, bytes)):
        try:
            value = value.item()
        except (TypeError, ValueError):
            pass

    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (str, int, float, bool)):
        return value.strip() if isinstance(value, str) else value

    return str(value)


def fold_accents(text: Optional[str]) -> Optional[str]:
    """
    Remove accent marks, keep case.

    - "Größe" → "Große"
    - "Décor" → "Decor"
    """
    if not text:
        return text

    # NFD separates base chars from accents
    normalized = unicodedata.normalize('NFD', text)

    # Drop combining characters (Unicode category 'Mn')
    return ''.join(
        c for c in normalized
        if unicodedata.category(c) != 'Mn'
    )


def has_value(value: Any) -> bool:
    """Check whether a mapped field has usable data ("-" counts as empty)."""
    if is_blank(value):
        return False
    return not (isinstance(value, str) and value.strip() == "-")
