# Overview: Service-layer operations for the stock ledger; encapsulates business logic and database work.

# backend/cstore/services/stock_service.py

from __future__ import annotations

from datetime import date, timedelta

from ..extensions import db
from ..models import Product, CartLine
from ..models.inventory import (
    PRODUCT_KIND_PERISHABLE,
    RESERVATION_RESERVED,
    RESERVATION_RELEASED,
    RESERVATION_CONSUMED,
)
from ..errors import InsufficientStock, InvalidAmount, NotFound, ReservationError
from ..categories import sort_key
from ..pricing import setting
from cstore.time_utils import utcnow, today
from .concurrency import get_locked, run_with_retry
"""
Stock Ledger Invariants (authoritative)

Reservation model:
- Stock is taken off quantity_on_hand when an item enters a cart, not at
  payment. Two carts can never both hold the same unit.
- A CartLine in RESERVED holds exactly `quantity` units.
- release() returns those units and moves the line to RELEASED.
- consume() moves the line to CONSUMED at settlement; stock is not touched.
- A line leaves RESERVED exactly once. Releasing or consuming twice is a
  caller bug and raises ReservationError.
- Once a line is attached to a checkout transaction, only the checkout
  service may release, resize or consume it; the public calls here refuse.

Business invariants:
- quantity_on_hand is never negative.
- Every mutation happens under a row lock on the one product it touches;
  no operation spans two products.

Ordering:
- Report queries sort by category prefix, then numeric code suffix.
"""


def _positive_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidAmount("quantity must be an integer")
    if quantity <= 0:
        raise InvalidAmount("quantity must be > 0")
    return quantity


def _reserve_locked(product: Product, quantity: int) -> CartLine:
    if quantity > product.quantity_on_hand:
        raise InsufficientStock(
            f"Only {product.quantity_on_hand} unit(s) of {product.product_code} available",
            details={
                "product_code": product.product_code,
                "requested_quantity": quantity,
                "on_hand": product.quantity_on_hand,
            },
        )

    product.quantity_on_hand -= quantity
    line = CartLine(
        product_id=product.id,
        quantity=quantity,
        status=RESERVATION_RESERVED,
    )
    line.product = product
    db.session.add(line)
    db.session.flush()
    return line


def _require_reserved(line: CartLine) -> None:
    if line.status != RESERVATION_RESERVED:
        raise ReservationError(
            f"Reservation {line.id} is already {line.status}",
            details={"cart_line_id": line.id, "status": line.status},
        )


def _require_unattached(line: CartLine) -> None:
    if line.transaction_id is not None:
        raise ReservationError(
            f"Reservation {line.id} belongs to transaction {line.transaction_id}; "
            "change it through checkout (update_item_quantity, remove_item, settle, abandon)",
            details={"cart_line_id": line.id, "transaction_id": line.transaction_id},
        )


def _release_locked(line: CartLine) -> CartLine:
    _require_reserved(line)
    product = get_locked(Product, line.product_id)
    product.quantity_on_hand += line.quantity
    line.status = RESERVATION_RELEASED
    line.closed_at = utcnow()
    return line


def _consume_locked(line: CartLine) -> CartLine:
    _require_reserved(line)
    line.status = RESERVATION_CONSUMED
    line.closed_at = utcnow()
    return line


def _change_reserved_quantity_locked(line: CartLine, new_quantity: int) -> CartLine:
    _require_reserved(line)
    product = get_locked(Product, line.product_id)
    delta = new_quantity - line.quantity
    if delta > product.quantity_on_hand:
        raise InsufficientStock(
            f"Only {product.quantity_on_hand} more unit(s) of {product.product_code} available",
            details={
                "product_code": product.product_code,
                "requested_quantity": new_quantity,
                "reserved": line.quantity,
                "on_hand": product.quantity_on_hand,
            },
        )
    product.quantity_on_hand -= delta
    line.quantity = new_quantity
    if line.unit_price_cents is not None:
        line.line_total_cents = line.unit_price_cents * new_quantity
    return line


def get_cart_line(cart_line_id: int) -> CartLine:
    line = db.session.get(CartLine, cart_line_id)
    if line is None:
        raise NotFound(f"Cart line {cart_line_id} not found")
    return line


def reserve(product_id: int, quantity: int) -> CartLine:
    """
    Take `quantity` units off the shelf and return the reservation handle.

    Raises:
        InsufficientStock: quantity exceeds quantity_on_hand (nothing changes)
        InvalidAmount: quantity is not a positive integer
    """
    quantity = _positive_quantity(quantity)

    def _op():
        product = get_locked(Product, product_id)
        line = _reserve_locked(product, quantity)
        db.session.commit()
        return line

    return run_with_retry(_op)


def release(cart_line_id: int) -> CartLine:
    """Give a reservation's units back to the shelf."""
    def _op():
        line = get_locked(CartLine, cart_line_id, label="Cart line")
        _require_unattached(line)
        _release_locked(line)
        db.session.commit()
        return line

    return run_with_retry(_op)


def change_reserved_quantity(cart_line_id: int, new_quantity: int) -> CartLine:
    """Grow or shrink a reservation, reserving or releasing only the delta."""
    new_quantity = _positive_quantity(new_quantity)

    def _op():
        line = get_locked(CartLine, cart_line_id, label="Cart line")
        _require_unattached(line)
        _change_reserved_quantity_locked(line, new_quantity)
        db.session.commit()
        return line

    return run_with_retry(_op)


def consume(cart_line_id: int) -> CartLine:
    """Close a reservation as sold; its units never return to the shelf."""
    def _op():
        line = get_locked(CartLine, cart_line_id, label="Cart line")
        _require_unattached(line)
        _consume_locked(line)
        db.session.commit()
        return line

    return run_with_retry(_op)


def adjust_quantity(product_id: int, delta: int) -> Product:
    """
    Administrative restock (positive delta) or write-off (negative delta).

    Raises InvalidAmount if the result would be negative.
    """
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise InvalidAmount("delta must be an integer")

    def _op():
        product = get_locked(Product, product_id)
        new_quantity = product.quantity_on_hand + delta
        if new_quantity < 0:
            raise InvalidAmount(
                f"Adjustment would make {product.product_code} stock negative",
                details={"on_hand": product.quantity_on_hand, "delta": delta},
            )
        product.quantity_on_hand = new_quantity
        db.session.commit()
        return product

    return run_with_retry(_op)


def _sorted(products: list[Product]) -> list[Product]:
    return sorted(products, key=lambda p: sort_key(p.product_code))


def list_low_stock(threshold: int | None = None) -> list[Product]:
    if threshold is None:
        threshold = setting("LOW_STOCK_THRESHOLD")
    rows = db.session.query(Product).filter(Product.quantity_on_hand <= threshold).all()
    return _sorted(rows)


def _expiry_cutoff(as_of: date | None, days: int | None) -> date:
    if as_of is None:
        as_of = today()
    if days is None:
        days = setting("EXPIRY_WARNING_DAYS")
    return as_of + timedelta(days=days)


def list_expiring_soon(as_of: date | None = None, days: int | None = None) -> list[Product]:
    """Perishables expiring on or before as_of + days (already expired included)."""
    cutoff = _expiry_cutoff(as_of, days)
    rows = (
        db.session.query(Product)
        .filter(
            Product.kind == PRODUCT_KIND_PERISHABLE,
            Product.expiration_date.isnot(None),
            Product.expiration_date <= cutoff,
        )
        .all()
    )
    return _sorted(rows)


def remove_expiring(as_of: date | None = None, days: int | None = None) -> list[Product]:
    """
    Pull expiring perishables off the shelf by zeroing their stock.

    Units already reserved by open carts are not affected; they are still
    released back (and can be pulled again) if the cart is abandoned.
    """
    def _op():
        pulled = []
        for product in list_expiring_soon(as_of, days):
            locked = get_locked(Product, product.id)
            if locked.quantity_on_hand > 0:
                locked.quantity_on_hand = 0
                pulled.append(locked)
        db.session.commit()
        return pulled

    return run_with_retry(_op)
