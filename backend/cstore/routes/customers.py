# Overview: Flask API routes for the customer registry; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..decorators import handle_store_errors
from ..services import customers_service

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.post("")
@handle_store_errors("register customer")
def register_customer():
    data = request.get_json(silent=True) or {}
    customer = customers_service.register_customer(
        data.get("first_name"),
        data.get("last_name"),
        data.get("middle_name"),
    )
    return jsonify(customer.to_dict()), 201


@customers_bp.get("/<customer_code>")
@handle_store_errors("load customer")
def get_customer(customer_code: str):
    return jsonify(customers_service.get_customer_by_code(customer_code).to_dict())


@customers_bp.get("/by-card/<card_number>")
@handle_store_errors("look up membership card")
def find_by_card(card_number: str):
    return jsonify(customers_service.find_by_card_number(card_number).to_dict())


@customers_bp.post("/<customer_code>/membership-card")
@handle_store_errors("issue membership card")
def issue_card(customer_code: str):
    customer = customers_service.get_customer_by_code(customer_code)
    card = customers_service.issue_membership_card(customer.id)
    return jsonify(card.to_dict()), 201
