# Overview: Flask API routes for the promotional sale catalog; parses input and returns JSON responses.

from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..decorators import require_staff, handle_store_errors
from ..errors import InvalidDiscount
from ..pricing import to_cents
from ..services import promotions_service, products_service
from cstore.time_utils import parse_iso_datetime

promotions_bp = Blueprint("promotions", __name__, url_prefix="/api/promotions")


def _parse_datetime(value, field: str):
    try:
        return parse_iso_datetime(value) if isinstance(value, str) else value
    except ValueError:
        raise InvalidDiscount(f"{field} must be an ISO-8601 datetime")


def _terms_from_payload(data: dict) -> dict:
    """
    Normalize request fields.

    discount_value is given in display units (10 -> 10%, 25.50 -> ₱25.50)
    and stored as basis points or cents; both scale by 100.
    """
    terms = {}
    for key in ("target", "discount_kind", "is_active"):
        if key in data:
            terms[key] = data[key]
    if "discount_kind" in terms and isinstance(terms["discount_kind"], str):
        terms["discount_kind"] = terms["discount_kind"].upper()
    if "discount_value" in data:
        terms["discount_value"] = to_cents(data["discount_value"])
    for key in ("start_at", "end_at"):
        if key in data:
            terms[key] = _parse_datetime(data[key], key)
    return terms


@promotions_bp.route("", methods=["GET"])
@handle_store_errors("list promotional sales")
def list_sales():
    active_only = request.args.get("active_only", "false").lower() == "true"
    as_of = _parse_datetime(request.args.get("as_of"), "as_of")
    result = promotions_service.list_sales(active_only, as_of)
    return jsonify([s.to_dict() for s in result])


@promotions_bp.route("", methods=["POST"])
@require_staff
@handle_store_errors("create promotional sale")
def create_sale():
    data = request.get_json(silent=True) or {}
    required = ("target", "discount_kind", "discount_value", "start_at", "end_at")
    missing = [f for f in required if f not in data]
    if missing:
        return jsonify({"error": f"Missing required fields: {', '.join(missing)}"}), 400
    terms = _terms_from_payload(data)
    sale = promotions_service.add_sale(
        terms["target"],
        terms["discount_kind"],
        terms["discount_value"],
        terms["start_at"],
        terms["end_at"],
        is_active=terms.get("is_active", True),
    )
    return jsonify(sale.to_dict()), 201


@promotions_bp.route("/<int:sale_id>", methods=["PATCH"])
@require_staff
@handle_store_errors("update promotional sale")
def update_sale(sale_id: int):
    data = request.get_json(silent=True) or {}
    sale = promotions_service.update_sale(sale_id, _terms_from_payload(data))
    return jsonify(sale.to_dict())


@promotions_bp.route("/<int:sale_id>/end", methods=["POST"])
@require_staff
@handle_store_errors("end promotional sale")
def end_sale(sale_id: int):
    return jsonify(promotions_service.end_sale(sale_id).to_dict())


@promotions_bp.route("/<int:sale_id>", methods=["DELETE"])
@require_staff
@handle_store_errors("delete promotional sale")
def delete_sale(sale_id: int):
    promotions_service.delete_sale(sale_id)
    return "", 204


@promotions_bp.route("/sweep", methods=["POST"])
@require_staff
@handle_store_errors("sweep expired sales")
def sweep_expired():
    data = request.get_json(silent=True) or {}
    as_of = _parse_datetime(data.get("as_of"), "as_of")
    return jsonify({"removed": promotions_service.sweep_expired(as_of)})


@promotions_bp.route("/best/<product_ref>", methods=["GET"])
@handle_store_errors("resolve best sale")
def best_sale(product_ref: str):
    product = products_service.resolve_product(product_ref)
    as_of = _parse_datetime(request.args.get("as_of"), "as_of")
    price, sale = promotions_service.price_with_best_sale(product, as_of)
    return jsonify({
        "product_code": product.product_code,
        "price_cents": product.price_cents,
        "discounted_price_cents": price,
        "sale": sale.to_dict() if sale else None,
    })
