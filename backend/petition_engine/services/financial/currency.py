"""
Currency Parsing

Normalizes heterogeneous amount strings into floats.

parse_amount      - locale-agnostic (bank statements: "32.028,03", "1,234.56")
parse_usd_amount  - USD-denominated figures written en-US style ("$20,000")
format_usd        - canonical "USD $12,345" rendering

Both parsers are pure and total: they never raise, and 0.0 means
"no amount found", not a documented zero balance.
"""
import math
import re
from typing import Optional

_NON_NUMERIC = re.compile(r"[^\d.,]")
_EUROPEAN_FORMAT = re.compile(r"^\d{1,3}(?:\.\d{3})+,\d{1,2}$")


def parse_amount(raw: Optional[str]) -> float:
    """
    Parse an amount written in either decimal convention.

    Whichever separator occurs later in the string is the decimal point;
    every earlier separator is thousands grouping. A lone comma is decimal.

    Examples:
        >>> parse_amount("1,234.56")
        1234.56
        >>> parse_amount("32.028,03")
        32028.03
        >>> parse_amount("abc")
        0.0
    """
    if raw is None:
        return 0.0
    if isinstance(raw, (int, float)):
        return float(raw) if math.isfinite(raw) and raw >= 0 else 0.0

    cleaned = _NON_NUMERIC.sub("", str(raw))
    if not cleaned:
        return 0.0

    last_comma = cleaned.rfind(",")
    last_dot = cleaned.rfind(".")

    if last_comma == -1 and last_dot == -1:
        normalized = cleaned
    else:
        decimal_at = max(last_comma, last_dot)
        integer_part = cleaned[:decimal_at].replace(",", "").replace(".", "")
        fraction_part = cleaned[decimal_at + 1:].replace(",", "").replace(".", "")
        normalized = f"{integer_part or '0'}.{fraction_part or '0'}"

    return _to_float(normalized)


def parse_usd_amount(raw: Optional[str]) -> float:
    """
    Parse a USD figure where commas group thousands ("$20,000" -> 20000.0).

    Falls back to parse_amount for unmistakably European-formatted input.
    """
    if raw is None:
        return 0.0
    if isinstance(raw, (int, float)):
        return parse_amount(raw)

    cleaned = _NON_NUMERIC.sub("", str(raw))
    if not cleaned:
        return 0.0
    if _EUROPEAN_FORMAT.match(cleaned):
        return parse_amount(cleaned)

    normalized = cleaned.replace(",", "")
    if normalized.count(".") > 1:
        # "1.234.567" style grouping
        head, _, tail = normalized.rpartition(".")
        normalized = f"{head.replace('.', '')}.{tail}" if len(tail) != 3 else normalized.replace(".", "")
    return _to_float(normalized)


def format_usd(amount: Optional[float]) -> str:
    """Render an amount as 'USD $12,345' (whole dollars, en-US grouping)."""
    if amount is None or not math.isfinite(amount):
        return "USD $0"
    return f"USD ${round(amount):,}"


def _to_float(value: str) -> float:
    try:
        result = float(value)
    except ValueError:
        return 0.0
    if not math.isfinite(result) or result < 0:
        return 0.0
    return result
