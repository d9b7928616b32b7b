# Overview: Fixed-point money helpers and configured pricing constants.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from flask import current_app, has_app_context

from .config import Config
from .errors import InvalidAmount


def setting(name: str):
    """Read a pricing constant from the app config, falling back to Config."""
    if has_app_context():
        return current_app.config.get(name, getattr(Config, name))
    return getattr(Config, name)


def div_round_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounded half-up (non-negative operands)."""
    return (2 * numerator + denominator) // (2 * denominator)


def apply_bps(amount_cents: int, bps: int) -> int:
    """Return bps/10000 of an amount, nearest cent."""
    return div_round_half_up(amount_cents * bps, 10_000)


def extract_vat(gross_cents: int, vat_rate_bps: int | None = None) -> int:
    """VAT contained in a VAT-inclusive amount: gross / (1 + r) * r."""
    rate = vat_rate_bps if vat_rate_bps is not None else setting("VAT_RATE_BPS")
    return div_round_half_up(gross_cents * rate, 10_000 + rate)


def whole_units(amount_cents: int) -> int:
    """floor(amount) in currency units."""
    return amount_cents // 100


def format_money(amount_cents: int | None) -> str:
    if amount_cents is None:
        return "-"
    sign = "-" if amount_cents < 0 else ""
    cents = abs(amount_cents)
    return f"{sign}₱{cents // 100:,}.{cents % 100:02d}"


def to_cents(value) -> int:
    """Convert a decimal string or number of currency units to cents."""
    if isinstance(value, bool):
        raise InvalidAmount("Amount must be a number")
    try:
        dec = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmount(f"Invalid amount: {value!r}")
    if not dec.is_finite():
        raise InvalidAmount(f"Invalid amount: {value!r}")
    return int((dec * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
