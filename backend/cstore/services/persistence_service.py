# Overview: Snapshot export/import of inventory and customers plus the append-only sales log.

"""
Snapshot rows are plain dicts so the CLI can write them as JSON. Saving is an
upsert keyed by product_code / customer_code, and every field of a product,
customer and membership card survives a save/load round trip unchanged.
"""

from __future__ import annotations

from typing import Any

from ..extensions import db
from ..models import Customer, MembershipCard, Product, SalesLogEntry
from ..categories import sort_key
from ..errors import InvalidFormat
from ..identifiers import validate_customer_code, validate_membership_card_number
from cstore.time_utils import parse_iso_date
from .products_service import _validate_kind, _validate_price


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def _to_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise InvalidFormat(f"{field} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidFormat(f"{field} must be an integer")


def _to_date(value: Any, field: str):
    try:
        return parse_iso_date(value)
    except (AttributeError, ValueError):
        raise InvalidFormat(f"{field} must be an ISO date (YYYY-MM-DD)")


def _product_row(product: Product) -> dict:
    return {
        "product_code": product.product_code,
        "name": product.name,
        "brand": product.brand,
        "variant": product.variant,
        "price_cents": product.price_cents,
        "quantity_on_hand": product.quantity_on_hand,
        "kind": product.kind,
        "expiration_date": product.expiration_date.isoformat() if product.expiration_date else None,
    }


def _customer_row(customer: Customer) -> dict:
    card = customer.membership_card
    return {
        "customer_code": customer.customer_code,
        "first_name": customer.first_name,
        "last_name": customer.last_name,
        "middle_name": customer.middle_name,
        "membership_card": {
            "card_number": card.card_number,
            "points_balance": card.points_balance,
            "expiry_date": card.expiry_date.isoformat(),
        } if card else None,
    }


def load_inventory() -> list[dict]:
    products = db.session.query(Product).all()
    return [_product_row(p) for p in sorted(products, key=lambda p: sort_key(p.product_code))]


def save_inventory(rows: list[dict]) -> dict:
    """Upsert products by product_code. Returns {"created", "updated"}."""
    created = updated = 0
    try:
        for raw in rows:
            code = _to_text(raw.get("product_code"))
            if code is None:
                raise InvalidFormat("product_code is required")
            expiration_date = _to_date(raw.get("expiration_date"), "expiration_date")
            kind = _validate_kind(_to_text(raw.get("kind")), expiration_date)
            price_cents = _validate_price(_to_int(raw.get("price_cents"), "price_cents"))
            quantity = _to_int(raw.get("quantity_on_hand", 0), "quantity_on_hand")
            if quantity < 0:
                raise InvalidFormat("quantity_on_hand must be >= 0")

            product = db.session.query(Product).filter_by(product_code=code).first()
            if product is None:
                product = Product(product_code=code)
                db.session.add(product)
                created += 1
            else:
                updated += 1
            product.name = _to_text(raw.get("name")) or code
            product.brand = _to_text(raw.get("brand"))
            product.variant = _to_text(raw.get("variant"))
            product.price_cents = price_cents
            product.quantity_on_hand = quantity
            product.kind = kind
            product.expiration_date = expiration_date
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return {"created": created, "updated": updated}


def load_customers() -> list[dict]:
    customers = db.session.query(Customer).order_by(Customer.customer_code.asc()).all()
    return [_customer_row(c) for c in customers]


def save_customers(rows: list[dict]) -> dict:
    """Upsert customers (and their cards) by customer_code."""
    created = updated = 0
    try:
        for raw in rows:
            code = validate_customer_code(raw.get("customer_code"))
            customer = db.session.query(Customer).filter_by(customer_code=code).first()
            if customer is None:
                customer = Customer(customer_code=code)
                db.session.add(customer)
                created += 1
            else:
                updated += 1
            customer.first_name = _to_text(raw.get("first_name")) or ""
            customer.last_name = _to_text(raw.get("last_name")) or ""
            customer.middle_name = _to_text(raw.get("middle_name"))

            card_row = raw.get("membership_card")
            if card_row:
                points = _to_int(card_row.get("points_balance", 0), "points_balance")
                if points < 0:
                    raise InvalidFormat("points_balance must be >= 0")
                expiry_date = _to_date(card_row.get("expiry_date"), "expiry_date")
                if expiry_date is None:
                    raise InvalidFormat("membership card expiry_date is required")
                card_number = validate_membership_card_number(card_row.get("card_number"))
                card = customer.membership_card
                if card is None:
                    card = MembershipCard()
                    customer.membership_card = card
                    db.session.add(card)
                card.card_number = card_number
                card.points_balance = points
                card.expiry_date = expiry_date
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return {"created": created, "updated": updated}


def append_sales_log_line(summary_line: str, transaction_id: int | None = None, commit: bool = False) -> SalesLogEntry:
    entry = SalesLogEntry(transaction_id=transaction_id, line=summary_line)
    db.session.add(entry)
    if commit:
        db.session.commit()
    return entry


def load_sales_log() -> list[str]:
    return [e.line for e in db.session.query(SalesLogEntry).order_by(SalesLogEntry.id.asc()).all()]
