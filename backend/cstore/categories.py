# Overview: Product category classification from structured product codes.

"""
Product codes are "<prefix>-<sequence>" where the prefix names the category:

    F-001  Food          B-014  Beverage     T-003  Toiletries
    H-020  Household     P-007  Pharmacy     G-002  General

Promotional sales target a whole category with the wildcard "ALL-<prefix>".
"""

from __future__ import annotations

import re
from typing import Iterable

from .errors import InvalidFormat

CATEGORY_NAMES = {
    "F": "Food",
    "B": "Beverage",
    "T": "Toiletries",
    "H": "Household",
    "P": "Pharmacy",
    "G": "General",
}

CATEGORY_WILDCARD_PREFIX = "ALL-"

_PRODUCT_CODE_RE = re.compile(r"^([FBTHPG])-(\d+)$")


def parse_product_code(code: str) -> tuple[str, int]:
    """Split a product code into (category prefix, numeric sequence)."""
    match = _PRODUCT_CODE_RE.match((code or "").strip())
    if not match:
        raise InvalidFormat(
            f"Invalid product code: {code!r}",
            details={"expected": "<F|B|T|H|P|G>-<digits>"},
        )
    return match.group(1), int(match.group(2))


def is_product_code(code: str) -> bool:
    return bool(_PRODUCT_CODE_RE.match((code or "").strip()))


def category_for(code: str) -> str:
    prefix, _ = parse_product_code(code)
    return CATEGORY_NAMES[prefix]


def category_wildcard(prefix: str) -> str:
    return f"{CATEGORY_WILDCARD_PREFIX}{prefix}"


def wildcard_prefix(target: str) -> str | None:
    """Return the category prefix of an "ALL-<prefix>" target, else None."""
    if not target or not target.startswith(CATEGORY_WILDCARD_PREFIX):
        return None
    prefix = target[len(CATEGORY_WILDCARD_PREFIX):]
    if prefix not in CATEGORY_NAMES:
        return None
    return prefix


def sort_key(code: str) -> tuple[str, int]:
    """Category prefix ascending, then numeric suffix ascending."""
    return parse_product_code(code)


def next_product_code(prefix: str, existing_codes: Iterable[str], pad: int = 3) -> str:
    if prefix not in CATEGORY_NAMES:
        raise InvalidFormat(f"Unknown category prefix: {prefix!r}")
    highest = 0
    for code in existing_codes:
        if not is_product_code(code):
            continue
        existing_prefix, seq = parse_product_code(code)
        if existing_prefix == prefix:
            highest = max(highest, seq)
    return f"{prefix}-{highest + 1:0{pad}d}"
