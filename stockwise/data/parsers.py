"""
Field parsers for provider payloads.

Quote providers send numbers as JSON numbers or strings, percentages as
"1.23%", and nest values at different depths. These helpers extract and
convert single fields; the normalizer decides what is required.
"""

import math
from typing import Any, Iterable, Optional, Union


class ParseError(Exception):
    """Raised when a field is present but cannot be converted."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.field = field
        self.value = value


_MISSING = object()


def get_path(payload: Any, path: str, default: Any = None) -> Any:
    """
    Look up a dotted path ("fifty_two_week.high") in nested mappings.

    A key that itself contains dots ("05. price") is matched literally
    before the path is split. Returns `default` when any segment is missing
    or not a mapping.
    """
    if isinstance(payload, dict) and path in payload:
        return payload[path]

    current = payload
    for segment in path.split("."):
        if not isinstance(current, dict) or segment not in current:
            return default
        current = current[segment]
    return current


def first_present(payload: Any, paths: Union[str, Iterable[str], None]) -> tuple[Optional[str], Any]:
    """
    Return (path, value) for the first candidate path with a non-empty value.

    Args:
        payload: Raw mapping
        paths: One dotted path or an ordered collection of candidates

    Returns:
        Tuple of matching path and value, (None, None) if nothing matched
    """
    if paths is None:
        return None, None
    if isinstance(paths, str):
        paths = (paths,)

    for path in paths:
        value = get_path(payload, path, _MISSING)
        if value is not _MISSING and value is not None and value != "":
            return path, value
    return None, None


def parse_number(value: Any, field: Optional[str] = None) -> float:
    """Convert a JSON number or numeric string to a finite float."""
    if isinstance(value, bool):
        raise ParseError(f"Boolean is not a number for {field}", field=field, value=value)

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        try:
            number = float(text)
        except ValueError:
            raise ParseError(f"Unparseable number for {field}: {value!r}", field=field, value=value)
    else:
        raise ParseError(f"Unsupported type for {field}: {type(value).__name__}", field=field, value=value)

    if not math.isfinite(number):
        raise ParseError(f"Non-finite number for {field}: {value!r}", field=field, value=value)
    return number


def parse_percent(value: Any, field: Optional[str] = None) -> float:
    """Convert "1.23%", "1.23" or 1.23 to 1.23."""
    if isinstance(value, str):
        value = value.strip().rstrip("%").strip()
    return parse_number(value, field)


def parse_volume(value: Any, field: Optional[str] = None) -> float:
    """Volumes must be non-negative."""
    number = parse_number(value, field)
    if number < 0:
        raise ParseError(f"Negative volume for {field}: {value!r}", field=field, value=value)
    return number
