# utils/helpers.py
from datetime import date, datetime, timedelta
import logging
from typing import Union, Optional

NumberLike = Union[float, int, str]
DateLike = Union[date, datetime, str]

_log = logging.getLogger(__name__)


def today_str() -> str:
    """Return today's date as ISO string (YYYY-MM-DD)."""
    return date.today().isoformat()


def to_iso(d: DateLike) -> str:
    """
    Normalize a date-like value to 'YYYY-MM-DD'.

    Accepts `date`/`datetime` objects or ISO strings; strings are parsed so a
    malformed value fails here rather than silently comparing as text in SQL.
    """
    if isinstance(d, datetime):
        return d.date().isoformat()
    if isinstance(d, date):
        return d.isoformat()
    try:
        return datetime.strptime(str(d).strip(), "%Y-%m-%d").date().isoformat()
    except ValueError as e:
        raise ValueError(f"Invalid date {d!r}; expected YYYY-MM-DD.") from e


def parse_iso(d: DateLike) -> date:
    return date.fromisoformat(to_iso(d))


def day_before(d: DateLike) -> str:
    return (parse_iso(d) - timedelta(days=1)).isoformat()


def month_start(d: DateLike) -> str:
    """First day of the calendar month containing `d`."""
    return parse_iso(d).replace(day=1).isoformat()


def fmt_money(
    v: NumberLike,
    places: int = 2,
    *,
    strict: bool = False,
    sentinel: Optional[str] = None,
) -> str:
    """
    Format a number as money with thousands separators and a fixed number of decimals.

    Behavior on parse failure:
      - By default returns str(v).
      - If `sentinel` is provided (e.g., "N/A"), returns that sentinel instead.
      - If `strict=True`, raises ValueError.
    """
    try:
        x = float(v)
    except (TypeError, ValueError) as e:
        _log.debug("fmt_money: failed to parse %r as float: %s", v, e)
        if strict:
            raise ValueError(f"Could not parse {v!r} as a number.") from e
        return str(sentinel) if sentinel is not None else str(v)
    return f"{x:,.{places}f}"
