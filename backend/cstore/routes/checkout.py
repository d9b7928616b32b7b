# Overview: Flask API routes for checkout transactions; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..decorators import handle_store_errors
from ..errors import InvalidFormat
from ..models.checkout import TXN_SETTLED
from ..pricing import to_cents
from ..services import checkout_service, customers_service, products_service
from ..services.receipt_service import render_receipt

checkout_bp = Blueprint("checkout", __name__, url_prefix="/api/checkout")


def _txn_response(txn, status: int = 200):
    return jsonify({"transaction": txn.to_dict()}), status


@checkout_bp.post("")
@handle_store_errors("open checkout")
def open_checkout():
    """
    Start a checkout session.

    Body (optional): customer_code, promo_pricing ("PER_LINE" | "NONE").
    """
    data = request.get_json(silent=True) or {}
    customer_id = None
    if data.get("customer_code"):
        customer_id = customers_service.get_customer_by_code(data["customer_code"]).id
    txn = checkout_service.open_transaction(customer_id, data.get("promo_pricing"))
    return _txn_response(txn, 201)


@checkout_bp.get("/<int:txn_id>")
@handle_store_errors("load checkout")
def get_checkout(txn_id: int):
    return _txn_response(checkout_service.get_transaction(txn_id))


@checkout_bp.post("/<int:txn_id>/items")
@handle_store_errors("add item")
def add_item(txn_id: int):
    """Body: product (id or code), quantity."""
    data = request.get_json(silent=True) or {}
    if "product" not in data:
        return jsonify({"error": "product required"}), 400
    product = products_service.resolve_product(data["product"])
    line = checkout_service.add_to_cart(txn_id, product.id, data.get("quantity", 1))
    return jsonify({"line": line.to_dict()}), 201


@checkout_bp.patch("/<int:txn_id>/items/<int:line_id>")
@handle_store_errors("update item")
def update_item(txn_id: int, line_id: int):
    data = request.get_json(silent=True) or {}
    if "quantity" not in data:
        return jsonify({"error": "quantity required"}), 400
    line = checkout_service.update_item_quantity(txn_id, line_id, data["quantity"])
    return jsonify({"line": line.to_dict()})


@checkout_bp.delete("/<int:txn_id>/items/<int:line_id>")
@handle_store_errors("remove item")
def remove_item(txn_id: int, line_id: int):
    line = checkout_service.remove_item(txn_id, line_id)
    return jsonify({"line": line.to_dict()})


@checkout_bp.post("/<int:txn_id>/customer")
@handle_store_errors("attach customer")
def attach_customer(txn_id: int):
    """Body: customer_code or card_number."""
    data = request.get_json(silent=True) or {}
    if data.get("card_number"):
        customer = customers_service.find_by_card_number(data["card_number"])
    elif data.get("customer_code"):
        customer = customers_service.get_customer_by_code(data["customer_code"])
    else:
        return jsonify({"error": "customer_code or card_number required"}), 400
    return _txn_response(checkout_service.attach_customer(txn_id, customer.id))


@checkout_bp.post("/<int:txn_id>/totals")
@handle_store_errors("calculate totals")
def calculate_totals(txn_id: int):
    """Body (optional): senior_id ("SRC-1234" or "PWD-1234")."""
    data = request.get_json(silent=True) or {}
    txn = checkout_service.calculate_totals(txn_id, senior_id=data.get("senior_id"))
    return _txn_response(txn)


@checkout_bp.post("/<int:txn_id>/membership")
@handle_store_errors("add membership")
def purchase_membership(txn_id: int):
    return _txn_response(checkout_service.purchase_membership(txn_id))


@checkout_bp.post("/<int:txn_id>/points")
@handle_store_errors("redeem points")
def redeem_points(txn_id: int):
    data = request.get_json(silent=True) or {}
    txn = checkout_service.redeem_points(txn_id, data.get("points"))
    return _txn_response(txn)


@checkout_bp.post("/<int:txn_id>/settle")
@handle_store_errors("settle checkout")
def settle(txn_id: int):
    """
    Take payment.

    Body:
    - method: "CASH" | "CARD"
    - amount_paid (decimal) or amount_paid_cents (int), CASH only
    - card: {"number", "cvv", "expiry": "MM/YY"}, CARD only
    """
    data = request.get_json(silent=True) or {}
    amount_paid_cents = data.get("amount_paid_cents")
    if amount_paid_cents is None and data.get("amount_paid") is not None:
        amount_paid_cents = to_cents(data["amount_paid"])
    card = data.get("card")
    if card is not None and not isinstance(card, dict):
        raise InvalidFormat("card must be an object")

    txn = checkout_service.settle(txn_id, amount_paid_cents, data.get("method"), card)
    return jsonify({
        "transaction": txn.to_dict(),
        "points_earned": txn.points_credited,
    })


@checkout_bp.post("/<int:txn_id>/abandon")
@handle_store_errors("abandon checkout")
def abandon(txn_id: int):
    return _txn_response(checkout_service.abandon(txn_id))


@checkout_bp.get("/<int:txn_id>/receipt")
@handle_store_errors("render receipt")
def receipt(txn_id: int):
    txn = checkout_service.get_transaction(txn_id)
    if txn.status != TXN_SETTLED:
        return jsonify({"error": "Receipt is only available for settled transactions"}), 400
    text = render_receipt(txn, current_app.config.get("STORE_NAME"))
    return current_app.response_class(text, mimetype="text/plain")
