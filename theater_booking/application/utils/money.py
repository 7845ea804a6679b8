from __future__ import annotations

import math
import re


def parse_price(value: object, default: float) -> float:
    """Parse a display price such as "₹1,399.00"; falls back to `default`."""
    if value is None or value == "":
        return default
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else default
    cleaned = re.sub(r"[₹,\s]", "", str(value))
    try:
        parsed = float(cleaned)
    except ValueError:
        return default
    return parsed if math.isfinite(parsed) else default


def parse_amount_input(text: str | float | None) -> float | None:
    """Parse an operator-typed amount, keeping only digits and dots. None when unusable."""
    if text is None:
        return None
    if isinstance(text, (int, float)):
        return float(text) if math.isfinite(text) else None
    cleaned = re.sub(r"[^0-9.]", "", text)
    if not cleaned:
        return None
    try:
        parsed = float(cleaned)
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def to_number(value: object) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    try:
        parsed = float(str(value))
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def format_amount(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}"
