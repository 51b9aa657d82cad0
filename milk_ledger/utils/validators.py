# utils/validators.py
import math

from ..database.errors import ValidationError
from .helpers import to_iso


def non_empty(text: str) -> bool:
    """
    True if `text` is not None/empty after stripping whitespace.
    """
    return bool(text and str(text).strip())


# ---- Numeric parsing & validators ----

def try_parse_float(x):
    """
    Best-effort parse to float.

    Returns:
        (ok: bool, value: float|None)

    ok == False means parsing failed (or the value is NaN/inf) and value is None.
    """
    if isinstance(x, bool):
        return False, None
    try:
        val = float(x)
    except (TypeError, ValueError):
        return False, None
    if not math.isfinite(val):
        return False, None
    return True, val


def is_non_negative_number(x) -> bool:
    """
    True iff x parses to a finite float and value >= 0.
    """
    ok, val = try_parse_float(x)
    return bool(ok and val is not None and val >= 0)


# ---- Dates ----

def require_iso_date(d, field_label: str = "Date") -> str:
    """
    Normalize a date-like value to 'YYYY-MM-DD' or raise ValidationError.
    """
    if d is None or (isinstance(d, str) and not d.strip()):
        raise ValidationError(f"{field_label} is required.")
    try:
        return to_iso(d)
    except ValueError as e:
        raise ValidationError(f"{field_label}: {e}") from e


def require_date_range(date_from, date_to) -> tuple:
    """Both bounds normalized; start after end is rejected."""
    start = require_iso_date(date_from, "Start date")
    end = require_iso_date(date_to, "End date")
    if start > end:
        raise ValidationError(f"Start date {start} is after end date {end}.")
    return start, end
