# Overview: Service-layer operations for products; encapsulates business logic and database work.

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import Product
from ..models.inventory import PRODUCT_KIND_PERISHABLE, PRODUCT_KIND_NON_PERISHABLE
from ..errors import InvalidAmount, InvalidFormat, NotFound
from ..categories import CATEGORY_NAMES, is_product_code, next_product_code, parse_product_code, sort_key
from .concurrency import get_locked, run_with_retry


# Maximum price: ₱9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999


def _validate_price(price_cents) -> int:
    if isinstance(price_cents, bool) or not isinstance(price_cents, int):
        raise InvalidAmount("price_cents must be an integer")
    if price_cents < 1:
        raise InvalidAmount("price_cents must be >= 1")
    if price_cents > MAX_PRICE_CENTS:
        raise InvalidAmount(f"price_cents cannot exceed {MAX_PRICE_CENTS}")
    return price_cents


def _validate_label(value, field: str, required: bool = False) -> str | None:
    if value is not None and not isinstance(value, str):
        raise InvalidFormat(f"{field} must be text")
    value = (value or "").strip() or None
    if value is None and required:
        raise InvalidFormat(f"{field} is required")
    return value


def _validate_kind(kind: str | None, expiration_date: date | None) -> str:
    if kind is None:
        kind = PRODUCT_KIND_PERISHABLE if expiration_date else PRODUCT_KIND_NON_PERISHABLE
    if kind not in (PRODUCT_KIND_PERISHABLE, PRODUCT_KIND_NON_PERISHABLE):
        raise InvalidFormat(f"Unknown product kind: {kind}")
    if kind == PRODUCT_KIND_PERISHABLE and expiration_date is None:
        raise InvalidFormat("Perishable products require an expiration_date")
    if kind == PRODUCT_KIND_NON_PERISHABLE and expiration_date is not None:
        raise InvalidFormat("Non-perishable products cannot have an expiration_date")
    return kind


def create_product(
    *,
    name: str,
    price_cents: int,
    product_code: str | None = None,
    category_prefix: str | None = None,
    brand: str | None = None,
    variant: str | None = None,
    quantity: int = 0,
    expiration_date: date | None = None,
    kind: str | None = None,
) -> Product:
    """
    Create a product.

    Either pass an explicit product_code ("F-001") or a category_prefix ("F"),
    in which case the next free code in that category is allocated.
    """
    name = _validate_label(name, "name", required=True)
    brand = _validate_label(brand, "brand")
    variant = _validate_label(variant, "variant")
    price_cents = _validate_price(price_cents)
    kind = _validate_kind(kind, expiration_date)
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
        raise InvalidAmount("quantity must be a non-negative integer")

    def _op():
        code = product_code
        if code is None:
            if category_prefix not in CATEGORY_NAMES:
                raise InvalidFormat("category_prefix or product_code is required")
            existing = [c for (c,) in db.session.query(Product.product_code).all()]
            code = next_product_code(category_prefix, existing)
        else:
            code = code.strip()
            parse_product_code(code)
            if db.session.query(Product).filter_by(product_code=code).first():
                raise InvalidFormat(f"Product code {code} already exists")

        product = Product(
            product_code=code,
            name=name,
            brand=brand,
            variant=variant,
            price_cents=price_cents,
            quantity_on_hand=quantity,
            kind=kind,
            expiration_date=expiration_date,
        )
        db.session.add(product)
        db.session.commit()
        return product

    return run_with_retry(_op)


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFound(f"Product {product_id} not found")
    return product


def get_product_by_code(product_code: str) -> Product:
    product = db.session.query(Product).filter_by(product_code=(product_code or "").strip()).first()
    if product is None:
        raise NotFound(f"Product {product_code} not found")
    return product


def resolve_product(ref) -> Product:
    """Accept a numeric id or a product code."""
    if isinstance(ref, int) and not isinstance(ref, bool):
        return get_product(ref)
    if isinstance(ref, str) and is_product_code(ref):
        return get_product_by_code(ref)
    if isinstance(ref, str) and ref.isdigit():
        return get_product(int(ref))
    raise NotFound(f"Product {ref!r} not found")


def list_products(category_prefix: str | None = None) -> list[Product]:
    q = db.session.query(Product)
    if category_prefix:
        q = q.filter(Product.product_code.like(f"{category_prefix}-%"))
    return sorted(q.all(), key=lambda p: sort_key(p.product_code))


def update_product(product_id: int, data: dict) -> Product:
    """Edit display fields and price. Stock goes through stock_service."""
    def _op():
        product = get_locked(Product, product_id)
        for key in ("name", "brand", "variant"):
            if key in data:
                setattr(product, key, _validate_label(data[key], key, required=(key == "name")))
        if "price_cents" in data:
            product.price_cents = _validate_price(data["price_cents"])
        if "expiration_date" in data:
            _validate_kind(product.kind, data["expiration_date"])
            product.expiration_date = data["expiration_date"]
        db.session.commit()
        return product

    return run_with_retry(_op)
