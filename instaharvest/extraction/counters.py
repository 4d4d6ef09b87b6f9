"""
Shorthand counter parsing - turns "12.3K" style engagement text into integers

Only uppercase suffixes count; lowercase text such as "5m" is usually a
relative time, not a counter
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_FLOOR
from typing import Optional

SUFFIX_MULTIPLIERS = {
    'K': Decimal(1_000),
    'M': Decimal(1_000_000),
    'B': Decimal(1_000_000_000),
}

_STRIP_RE = re.compile(r'[^\d.KMB]')
_NUMBER_RE = re.compile(r'\d*\.?\d+')
_COUNTER_TEXT_RE = re.compile(r'^\d+[\d.,KMB]*$')


def parse_count(text: Optional[str]) -> int:
    """
    Parse a shorthand counter into an integer

    Args:
        text: Raw counter text such as "12.3K", "1M" or "1,234"

    Returns:
        Floored integer value, or 0 when the text holds no number
    """
    if not text:
        return 0

    cleaned = _STRIP_RE.sub('', text)
    match = _NUMBER_RE.match(cleaned)
    if not match:
        return 0

    try:
        value = Decimal(match.group(0))
    except InvalidOperation:
        return 0

    suffix = cleaned[match.end():match.end() + 1]
    if suffix in SUFFIX_MULTIPLIERS:
        value *= SUFFIX_MULTIPLIERS[suffix]

    return int(value.to_integral_value(rounding=ROUND_FLOOR))


def looks_like_counter(text: Optional[str]) -> bool:
    """True when the text is nothing but a (possibly shorthand) number"""
    if not text:
        return False
    return bool(_COUNTER_TEXT_RE.match(re.sub(r'\s', '', text)))
