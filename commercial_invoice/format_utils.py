from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional

from dateutil import parser as date_parser


_MONEY_RE = re.compile(r"-?\d{1,3}(?:,\d{3})+(?:\.\d+)?|-?\d+(?:\.\d+)?")


def parse_money(value: str | None) -> Optional[float]:
    if not value:
        return None

    cleaned = value.strip()
    cleaned = cleaned.replace("£", "").replace("$", "").replace("€", "")
    cleaned = cleaned.replace(" ", "")
    negative = cleaned.startswith("(") and cleaned.endswith(")")

    match = _MONEY_RE.search(cleaned)
    if not match:
        return None

    number = match.group(0).replace(",", "")
    try:
        amount = float(number)
    except ValueError:
        return None
    return -abs(amount) if negative else amount


def parse_datetime(value: str | None, dayfirst: bool = False) -> Optional[datetime]:
    if not value:
        return None

    cleaned = value.strip()
    if not cleaned:
        return None

    try:
        return date_parser.parse(cleaned, dayfirst=dayfirst)
    except (ValueError, TypeError, OverflowError):
        return None


def format_money(value: float) -> str:
    return "%.2f" % value


def format_currency(value: float) -> str:
    return "$%.2f" % value


def format_ounces(value: float) -> str:
    # %g drops trailing zeros: 4.0 -> "4", 2.5 -> "2.5"
    return "%g oz" % value


def ounces_to_pounds(ounces: float) -> str:
    return "%.2f pounds" % (ounces / 16.0)


def format_ship_date(ship_date: date | None, today: date | None = None) -> str:
    if ship_date is None:
        ship_date = today or date.today()
    return ship_date.strftime("%Y-%m-%d")


def pluralize(count: int, word: str) -> str:
    return f"{count} {word}" + ("s" if count > 1 else "")


def leading_int(value: str) -> int:
    """Integer prefix of a display cell; non-numeric cells such as "-" count as 0."""
    match = re.match(r"\s*([+-]?\d+)", value or "")
    return int(match.group(1)) if match else 0
