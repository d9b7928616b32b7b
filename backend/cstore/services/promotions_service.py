# Overview: Service-layer operations for the promotional sale catalog; encapsulates business logic and database work.

"""
Promotional Sale Catalog

A sale targets one product code ("F-001") or a whole category ("ALL-F") and
discounts it either by a percentage (basis points) or a fixed amount (cents).

Best-sale resolution:
- candidates are sales that are active, whose window contains as_of, and
  whose target matches the product
- each candidate is scored by the discount amount it yields on the
  product's current price
- the strictly largest amount wins; on a tie the earlier sale (lower id)
  is kept
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models import PromotionalSale, Product
from ..models.promotions import DISCOUNT_PERCENTAGE, DISCOUNT_FIXED
from ..errors import InvalidDiscount, NotFound
from ..categories import is_product_code, wildcard_prefix
from ..pricing import apply_bps
from cstore.time_utils import utcnow
from .concurrency import get_locked, run_with_retry

DISCOUNT_KINDS = (DISCOUNT_PERCENTAGE, DISCOUNT_FIXED)
MAX_PERCENTAGE_BPS = 10_000

_EDITABLE_FIELDS = ("target", "discount_kind", "discount_value", "start_at", "end_at", "is_active")


def _validate_terms(target, discount_kind, discount_value, start_at, end_at, is_active=True) -> None:
    if not isinstance(is_active, bool):
        raise InvalidDiscount("is_active must be true or false")

    if discount_kind not in DISCOUNT_KINDS:
        raise InvalidDiscount(f"discount_kind must be one of {list(DISCOUNT_KINDS)}")

    if isinstance(discount_value, bool) or not isinstance(discount_value, int):
        raise InvalidDiscount("discount_value must be an integer (basis points or cents)")
    if discount_value <= 0:
        raise InvalidDiscount("discount_value must be > 0")
    if discount_kind == DISCOUNT_PERCENTAGE and discount_value > MAX_PERCENTAGE_BPS:
        raise InvalidDiscount("Percentage discount cannot exceed 100%")

    if not isinstance(start_at, datetime) or not isinstance(end_at, datetime):
        raise InvalidDiscount("start_at and end_at are required")
    if end_at < start_at:
        raise InvalidDiscount("end_at must not be before start_at")

    if not (is_product_code(target) or wildcard_prefix(target)):
        raise InvalidDiscount(
            f"Invalid sale target: {target!r}",
            details={"expected": "product code (F-001) or category wildcard (ALL-F)"},
        )


def add_sale(
    target: str,
    discount_kind: str,
    discount_value: int,
    start_at: datetime,
    end_at: datetime,
    *,
    is_active: bool = True,
) -> PromotionalSale:
    """
    Add a sale to the catalog.

    Raises InvalidDiscount for a percentage outside (0, 100%], a non-positive
    fixed amount, an inverted window, or an unknown target shape.
    """
    target = (target or "").strip()
    _validate_terms(target, discount_kind, discount_value, start_at, end_at, is_active)

    sale = PromotionalSale(
        target=target,
        discount_kind=discount_kind,
        discount_value=discount_value,
        start_at=start_at,
        end_at=end_at,
        is_active=is_active,
    )
    db.session.add(sale)
    db.session.commit()
    return sale


def get_sale(sale_id: int) -> PromotionalSale:
    sale = db.session.get(PromotionalSale, sale_id)
    if sale is None:
        raise NotFound(f"Sale {sale_id} not found")
    return sale


def list_sales(active_only: bool = False, as_of: datetime | None = None) -> list[PromotionalSale]:
    sales = db.session.query(PromotionalSale).order_by(PromotionalSale.id.asc()).all()
    if active_only:
        as_of = as_of or utcnow()
        sales = [s for s in sales if s.is_applicable(as_of)]
    return sales


def update_sale(sale_id: int, data: dict) -> PromotionalSale:
    """Edit a sale; the merged terms are validated as a whole."""
    def _op():
        sale = get_locked(PromotionalSale, sale_id, label="Sale")
        merged = {key: data.get(key, getattr(sale, key)) for key in _EDITABLE_FIELDS}
        if isinstance(merged["target"], str):
            merged["target"] = merged["target"].strip()
        _validate_terms(
            merged["target"],
            merged["discount_kind"],
            merged["discount_value"],
            merged["start_at"],
            merged["end_at"],
            merged["is_active"],
        )
        for key, value in merged.items():
            setattr(sale, key, value)
        db.session.commit()
        return sale

    return run_with_retry(_op)


def end_sale(sale_id: int) -> PromotionalSale:
    """Deactivate a sale without removing it."""
    return update_sale(sale_id, {"is_active": False})


def delete_sale(sale_id: int) -> None:
    sale = get_sale(sale_id)
    db.session.delete(sale)
    db.session.commit()


def targets_product(sale: PromotionalSale, product: Product) -> bool:
    if sale.target == product.product_code:
        return True
    prefix = wildcard_prefix(sale.target)
    return prefix is not None and product.product_code.startswith(f"{prefix}-")


def discount_amount(sale: PromotionalSale, price_cents: int) -> int:
    """Discount in cents; fixed discounts never exceed the price."""
    if sale.discount_kind == DISCOUNT_PERCENTAGE:
        return min(apply_bps(price_cents, sale.discount_value), price_cents)
    return min(sale.discount_value, price_cents)


def resolve_best_sale(product: Product, as_of: datetime | None = None) -> PromotionalSale | None:
    as_of = as_of or utcnow()
    candidates = (
        db.session.query(PromotionalSale)
        .filter(
            PromotionalSale.is_active.is_(True),
            PromotionalSale.start_at <= as_of,
            PromotionalSale.end_at >= as_of,
        )
        .order_by(PromotionalSale.id.asc())
        .all()
    )

    best = None
    best_amount = 0
    for sale in candidates:
        if not targets_product(sale, product):
            continue
        amount = discount_amount(sale, product.price_cents)
        if best is None or amount > best_amount:
            best = sale
            best_amount = amount
    return best


def price_with_best_sale(product: Product, as_of: datetime | None = None) -> tuple[int, PromotionalSale | None]:
    sale = resolve_best_sale(product, as_of)
    if sale is None:
        return product.price_cents, None
    return max(product.price_cents - discount_amount(sale, product.price_cents), 0), sale


def discounted_price(product: Product, as_of: datetime | None = None) -> int:
    price, _ = price_with_best_sale(product, as_of)
    return price


def sweep_expired(as_of: datetime | None = None) -> int:
    """Delete every sale whose end_at is strictly before as_of."""
    as_of = as_of or utcnow()
    removed = (
        db.session.query(PromotionalSale)
        .filter(PromotionalSale.end_at < as_of)
        .delete(synchronize_session="fetch")
    )
    db.session.commit()
    current_app.logger.info("Swept %d expired promotional sale(s)", removed)
    return removed
