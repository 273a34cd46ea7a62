"""
Helpers for reading loosely-shaped CRM records.

Upstream field names vary between endpoints and tenants, so each normalized
field is read through an ordered tuple of candidate paths. Dotted paths
descend into nested objects (``"user.name"``). The first non-empty value wins.
"""

from typing import Any, Iterable, Optional

FieldPaths = tuple[str, ...]


def get_path(record: Any, path: str) -> Any:
    """Follow a dotted path through nested dicts, returning None on any miss."""
    current: Any = record
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
        if current is None:
            return None
    return current


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    if isinstance(value, (dict, list)) and not value:
        return True
    return False


def first_present(record: Any, paths: Iterable[str]) -> Any:
    """Return the first non-empty value among ``paths``."""
    for path in paths:
        value = get_path(record, path)
        if not _is_empty(value):
            return value
    return None


def as_text(value: Any) -> Optional[str]:
    """Render scalars as stripped text; structures and blanks become None."""
    if value is None or isinstance(value, (dict, list)):
        return None
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def first_text(record: Any, paths: Iterable[str]) -> Optional[str]:
    """First candidate that renders as non-empty text."""
    for path in paths:
        text = as_text(get_path(record, path))
        if text:
            return text
    return None


def as_number(value: Any) -> Optional[float]:
    """Parse ints, floats and numeric strings (comma decimals allowed)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = value.strip().replace(" ", "").replace("\u00a0", "").replace(",", ".")
        if not cleaned:
            return None
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None
