# Overview: Membership point ledger operations on a locked MembershipCard.

"""
Point rules:
- earning: 1 point per full POINT_EARNING_DIVISOR_CENTS (₱50.00) spent
- redemption: 1 point = ₱1.00 off the payable total
- balance is a non-negative integer at all times

These helpers mutate the card in the caller's DB transaction and never
commit; the checkout service commits once its whole step has succeeded.
"""

from __future__ import annotations

from datetime import date

from ..models import MembershipCard
from ..errors import ExpiredCard, InsufficientPoints, InvalidAmount
from ..pricing import setting
from cstore.time_utils import today


def _non_negative_points(points) -> int:
    if isinstance(points, bool) or not isinstance(points, int):
        raise InvalidAmount("points must be an integer")
    if points < 0:
        raise InvalidAmount("points must be >= 0")
    return points


def points_for_amount(amount_cents: int) -> int:
    if amount_cents <= 0:
        return 0
    return amount_cents // setting("POINT_EARNING_DIVISOR_CENTS")


def earn(card: MembershipCard, amount_cents: int) -> int:
    """Credit points for a qualifying spend. Returns the points added."""
    earned = points_for_amount(amount_cents)
    card.points_balance += earned
    return earned


def use(card: MembershipCard, points: int) -> int:
    """
    Debit points and return their discount value in cents.

    Raises InsufficientPoints if the balance is short (balance unchanged).
    """
    points = _non_negative_points(points)
    if points > card.points_balance:
        raise InsufficientPoints(
            f"Requested {points} point(s) but only {card.points_balance} available",
            details={"requested": points, "balance": card.points_balance},
        )
    card.points_balance -= points
    return points * 100


def refund(card: MembershipCard, points: int) -> None:
    points = _non_negative_points(points)
    card.points_balance += points


def ensure_card_valid(card: MembershipCard, as_of: date | None = None) -> None:
    as_of = as_of or today()
    if card.is_expired(as_of):
        raise ExpiredCard(
            f"Membership card {card.card_number} expired on {card.expiry_date.isoformat()}",
            details={"card_number": card.card_number, "expiry_date": card.expiry_date.isoformat()},
        )
