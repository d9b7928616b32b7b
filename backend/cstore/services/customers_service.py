# Overview: Customer registry and membership card issue; encapsulates business logic and database work.

from __future__ import annotations

import secrets
from datetime import date

from ..extensions import db
from ..models import Customer, MembershipCard
from ..errors import InvalidFormat, InvalidTransactionState, NotFound
from ..identifiers import (
    CUSTOMER_CODE_PREFIX,
    CUSTOMER_CODE_RE,
    MEMBERSHIP_CARD_PREFIX,
    validate_customer_code,
    validate_membership_card_number,
)
from ..pricing import setting
from cstore.time_utils import today
from .concurrency import run_with_retry


def next_customer_code(existing_codes) -> str:
    """DLSUser-NNN with NNN = highest existing + 1."""
    highest = 0
    for code in existing_codes:
        if code and CUSTOMER_CODE_RE.match(code):
            highest = max(highest, int(code[len(CUSTOMER_CODE_PREFIX):]))
    return f"{CUSTOMER_CODE_PREFIX}{highest + 1:03d}"


def _add_years(start: date, years: int) -> date:
    try:
        return start.replace(year=start.year + years)
    except ValueError:
        # Feb 29 -> Feb 28
        return start.replace(year=start.year + years, day=28)


def _generate_card_number() -> str:
    while True:
        candidate = f"{MEMBERSHIP_CARD_PREFIX}{secrets.randbelow(100_000_000):08d}"
        exists = db.session.query(MembershipCard.id).filter_by(card_number=candidate).first()
        if not exists:
            return candidate


def register_customer(first_name: str, last_name: str, middle_name: str | None = None) -> Customer:
    """Create a customer account with the next DLSUser-NNN code."""
    first_name = (first_name or "").strip()
    last_name = (last_name or "").strip()
    if not first_name or not last_name:
        raise InvalidFormat("Last Name and First Name are required")
    middle_name = (middle_name or "").strip() or None

    def _op():
        existing = [c for (c,) in db.session.query(Customer.customer_code).all()]
        customer = Customer(
            customer_code=next_customer_code(existing),
            first_name=first_name,
            last_name=last_name,
            middle_name=middle_name,
        )
        db.session.add(customer)
        db.session.commit()
        return customer

    return run_with_retry(_op)


def _issue_card_locked(customer: Customer, as_of: date | None = None) -> MembershipCard:
    if customer.membership_card is not None:
        raise InvalidTransactionState(
            f"Customer {customer.customer_code} already has a membership card",
            details={"card_number": customer.membership_card.card_number},
        )
    as_of = as_of or today()
    card = MembershipCard(
        card_number=_generate_card_number(),
        points_balance=0,
        expiry_date=_add_years(as_of, setting("MEMBERSHIP_VALIDITY_YEARS")),
    )
    customer.membership_card = card
    db.session.add(card)
    db.session.flush()
    return card


def issue_membership_card(customer_id: int, as_of: date | None = None) -> MembershipCard:
    def _op():
        customer = get_customer(customer_id)
        card = _issue_card_locked(customer, as_of)
        db.session.commit()
        return card

    return run_with_retry(_op)


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFound(f"Customer {customer_id} not found")
    return customer


def get_customer_by_code(customer_code: str) -> Customer:
    customer_code = validate_customer_code(customer_code)
    customer = db.session.query(Customer).filter_by(customer_code=customer_code).first()
    if customer is None:
        raise NotFound(f"Customer {customer_code} not found")
    return customer


def find_by_card_number(card_number: str) -> Customer:
    card_number = validate_membership_card_number(card_number)
    card = db.session.query(MembershipCard).filter_by(card_number=card_number).first()
    if card is None:
        raise NotFound("Membership card not found in system")
    return card.customer


def list_customers() -> list[Customer]:
    return db.session.query(Customer).order_by(Customer.customer_code.asc()).all()
