# Overview: Format checks for customer-facing identifiers and payment cards.

"""
Format-only validation. Nothing here talks to an issuer or registry; a
well-formed identifier is accepted as-is.
"""

from __future__ import annotations

import re
from datetime import date

from .errors import ExpiredCard, InvalidFormat

SENIOR_ID_RE = re.compile(r"^(SRC|PWD)-\d{4}$")
MEMBERSHIP_CARD_RE = re.compile(r"^DLSUCS-\d{8}$")
CUSTOMER_CODE_RE = re.compile(r"^DLSUser-\d{3}$")
CARD_NUMBER_RE = re.compile(r"^\d{16}$")
CVV_RE = re.compile(r"^\d{3}$")
EXPIRY_RE = re.compile(r"^(\d{2})/(\d{2})$")

CUSTOMER_CODE_PREFIX = "DLSUser-"
MEMBERSHIP_CARD_PREFIX = "DLSUCS-"


def is_valid_senior_id(value: str | None) -> bool:
    return bool(value) and bool(SENIOR_ID_RE.match(value.strip()))


def validate_senior_id(value: str | None) -> str:
    if not is_valid_senior_id(value):
        raise InvalidFormat(
            "Invalid Senior/PWD ID format",
            details={"expected": "SRC-XXXX or PWD-XXXX"},
        )
    return value.strip()


def validate_membership_card_number(value: str | None) -> str:
    if not value or not MEMBERSHIP_CARD_RE.match(value.strip()):
        raise InvalidFormat(
            "Invalid membership card number",
            details={"expected": "DLSUCS-XXXXXXXX"},
        )
    return value.strip()


def validate_customer_code(value: str | None) -> str:
    if not value or not CUSTOMER_CODE_RE.match(value.strip()):
        raise InvalidFormat(
            "Invalid customer ID",
            details={"expected": "DLSUser-XXX"},
        )
    return value.strip()


def card_brand(card_number: str) -> str | None:
    """Visa starts with 4, Mastercard with 51-55."""
    if card_number.startswith("4"):
        return "VISA"
    if len(card_number) >= 2 and card_number[0] == "5" and card_number[1] in "12345":
        return "MASTERCARD"
    return None


def validate_payment_card(card_number: str | None, cvv: str | None, expiry: str | None, *, today: date) -> dict:
    """
    Validate a payment card and return {"brand", "last4"}.

    Raises InvalidFormat for a malformed number, CVV or expiry, and
    ExpiredCard when the MM/YY month is before the current month.
    """
    number = (card_number or "").replace(" ", "")
    if not CARD_NUMBER_RE.match(number):
        raise InvalidFormat("Invalid card number. Must be 16 digits (Visa or Mastercard).")
    brand = card_brand(number)
    if brand is None:
        raise InvalidFormat("Only Visa and Mastercard are accepted")

    if not cvv or not CVV_RE.match(cvv.strip()):
        raise InvalidFormat("Invalid CVV. Must be 3 digits.")

    match = EXPIRY_RE.match((expiry or "").strip())
    if not match:
        raise InvalidFormat("Invalid expiry date. Must be MM/YY.")
    month = int(match.group(1))
    year = 2000 + int(match.group(2))
    if not 1 <= month <= 12:
        raise InvalidFormat("Invalid expiry month")
    if (year, month) < (today.year, today.month):
        raise ExpiredCard("Card has expired", details={"expiry": expiry})

    return {"brand": brand, "last4": number[-4:]}
