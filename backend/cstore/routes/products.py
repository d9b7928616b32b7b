# Overview: Flask API routes for products and the stock ledger; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..decorators import require_staff, handle_store_errors
from ..errors import InvalidAmount, InvalidFormat
from ..pricing import to_cents
from ..services import products_service, stock_service
from cstore.time_utils import parse_iso_date

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _parse_date_arg(value):
    try:
        return parse_iso_date(value)
    except (AttributeError, ValueError):
        raise InvalidFormat(f"Invalid date: {value!r} (expected YYYY-MM-DD)")


@products_bp.get("")
@handle_store_errors("list products")
def list_products():
    """
    List products in catalog order.

    Query params:
    - category: str (optional) - category prefix, e.g. "F"
    """
    category = request.args.get("category")
    products = products_service.list_products(category)
    return jsonify([p.to_dict() for p in products])


@products_bp.post("")
@require_staff
@handle_store_errors("create product")
def create_product():
    """
    Create a product.

    Body: name, price (decimal) or price_cents, and product_code or
    category_prefix; optional brand, variant, quantity, expiration_date.
    """
    data = request.get_json(silent=True) or {}
    if "price_cents" in data:
        price_cents = data["price_cents"]
    elif "price" in data:
        price_cents = to_cents(data["price"])
    else:
        raise InvalidAmount("price or price_cents is required")

    product = products_service.create_product(
        name=data.get("name"),
        price_cents=price_cents,
        product_code=data.get("product_code"),
        category_prefix=data.get("category_prefix"),
        brand=data.get("brand"),
        variant=data.get("variant"),
        quantity=data.get("quantity", 0),
        expiration_date=_parse_date_arg(data.get("expiration_date")),
    )
    return jsonify(product.to_dict()), 201


@products_bp.get("/<product_ref>")
@handle_store_errors("load product")
def get_product(product_ref: str):
    product = products_service.resolve_product(product_ref)
    return jsonify(product.to_dict())


@products_bp.post("/<int:product_id>/adjust")
@require_staff
@handle_store_errors("adjust stock")
def adjust_stock(product_id: int):
    data = request.get_json(silent=True) or {}
    if "delta" not in data:
        return jsonify({"error": "delta required"}), 400
    product = stock_service.adjust_quantity(product_id, data["delta"])
    return jsonify(product.to_dict())


@products_bp.get("/low-stock")
@handle_store_errors("list low stock")
def low_stock():
    threshold = request.args.get("threshold", type=int)
    return jsonify([p.to_dict() for p in stock_service.list_low_stock(threshold)])


@products_bp.get("/expiring")
@handle_store_errors("list expiring products")
def expiring():
    as_of = _parse_date_arg(request.args.get("as_of"))
    days = request.args.get("days", type=int)
    return jsonify([p.to_dict() for p in stock_service.list_expiring_soon(as_of, days)])


@products_bp.post("/expiring/remove")
@require_staff
@handle_store_errors("remove expiring products")
def remove_expiring():
    data = request.get_json(silent=True) or {}
    as_of = _parse_date_arg(data.get("as_of"))
    pulled = stock_service.remove_expiring(as_of, data.get("days"))
    return jsonify({"removed": [p.product_code for p in pulled]})


@products_bp.patch("/<int:product_id>")
@require_staff
@handle_store_errors("update product")
def update_product(product_id: int):
    """Edit name, brand, variant, price or expiration date."""
    data = request.get_json(silent=True) or {}
    changes = {k: data[k] for k in ("name", "brand", "variant") if k in data}
    if "price_cents" in data:
        changes["price_cents"] = data["price_cents"]
    elif "price" in data:
        changes["price_cents"] = to_cents(data["price"])
    if "expiration_date" in data:
        changes["expiration_date"] = _parse_date_arg(data["expiration_date"])
    product = products_service.update_product(product_id, changes)
    return jsonify(product.to_dict())
