# Overview: Service-layer operations for checkout; the transaction state machine and its discount pipeline.

"""
Checkout Service - one cart, one payable total

WHY: A checkout composes several independent rules (promotional pricing,
senior/PWD discount, VAT extraction, membership fee, point redemption) into
one deterministic amount, while the cart's stock stays reserved until the
session either pays or walks away.

STATE MACHINE:
    OPEN             items can be added, resized and removed
    TOTALS_COMPUTED  totals fixed; membership purchase and point redemption
    SETTLED          paid; reservations consumed; immutable
    ABANDONED        every reservation released and redeemed points refunded

TOTALS (cents, computed once in this order):
    1. subtotal        = sum(line_total) with line prices snapshotted at add
    2. senior discount = 20% of subtotal when a Senior/PWD ID was validated
       final total     = subtotal - senior discount
       vat             = final total / 1.12 * 0.12 (already included, never added)
    3. points          = min(requested, floor(final total)) off the final total
    amount due         = final total + membership fee (if bought this session)

Points are earned on final total + points discount, so redeeming points
never reduces what the purchase earns. The membership fee earns nothing.

Every step validates before it mutates; a failed step leaves the
transaction, the stock and the point balance exactly as they were.
"""

from __future__ import annotations

from datetime import date, datetime

from flask import current_app

from ..extensions import db
from ..models import CartLine, CheckoutTransaction, Customer, MembershipCard, Product
from ..models.checkout import (
    TXN_OPEN,
    TXN_TOTALS_COMPUTED,
    TXN_SETTLED,
    TXN_ABANDONED,
    PROMO_PRICING_PER_LINE,
    PROMO_PRICING_POLICIES,
    METHOD_CASH,
    METHOD_CARD,
    PAYMENT_METHODS,
)
from ..errors import (
    InsufficientPayment,
    InvalidAmount,
    InvalidFormat,
    InvalidTransactionState,
    NotFound,
    ReservationError,
)
from ..identifiers import validate_payment_card, validate_senior_id
from ..pricing import apply_bps, extract_vat, setting, whole_units
from cstore.time_utils import utcnow, today
from . import points_service
from .concurrency import get_locked, run_with_retry
from .customers_service import _issue_card_locked
from .persistence_service import append_sales_log_line
from .promotions_service import price_with_best_sale
from .receipt_service import sales_log_line
from .stock_service import (
    _change_reserved_quantity_locked,
    _consume_locked,
    _release_locked,
    _reserve_locked,
    _positive_quantity,
)


# =============================================================================
# PURE TOTALS
# =============================================================================

def compute_totals(subtotal_cents: int, is_senior: bool) -> dict:
    """
    Senior discount, VAT and final total for a subtotal.

    VAT is extracted from the VAT-inclusive amount that is actually charged.
    """
    senior_discount = apply_bps(subtotal_cents, setting("SENIOR_DISCOUNT_BPS")) if is_senior else 0
    discounted = subtotal_cents - senior_discount
    return {
        "subtotal_cents": subtotal_cents,
        "senior_discount_cents": senior_discount,
        "vat_cents": extract_vat(discounted),
        "final_total_cents": discounted,
    }


# =============================================================================
# HELPERS
# =============================================================================

def _require_status(txn: CheckoutTransaction, *allowed: str) -> None:
    if txn.status not in allowed:
        raise InvalidTransactionState(
            f"Transaction {txn.id} is {txn.status}; expected {' or '.join(allowed)}",
            details={"transaction_id": txn.id, "status": txn.status, "allowed": list(allowed)},
        )


def _locked_txn(txn_id: int) -> CheckoutTransaction:
    return get_locked(CheckoutTransaction, txn_id, label="Transaction")


def _txn_line(txn: CheckoutTransaction, cart_line_id: int) -> CartLine:
    line = get_locked(CartLine, cart_line_id, label="Cart line")
    if line.transaction_id != txn.id:
        raise NotFound(f"Cart line {cart_line_id} is not part of transaction {txn.id}")
    return line


def _snapshot_line(txn: CheckoutTransaction, line: CartLine, as_of: datetime | None) -> CartLine:
    product = line.product or db.session.get(Product, line.product_id)
    if txn.promo_pricing == PROMO_PRICING_PER_LINE:
        unit_price, sale = price_with_best_sale(product, as_of)
    else:
        unit_price, sale = product.price_cents, None

    line.transaction = txn
    line.list_price_cents = product.price_cents
    line.unit_price_cents = unit_price
    line.line_total_cents = unit_price * line.quantity
    line.promotion_id = sale.id if sale else None
    return line


def _card_for(txn: CheckoutTransaction) -> MembershipCard | None:
    if txn.customer is None or txn.customer.membership_card is None:
        return None
    return get_locked(MembershipCard, txn.customer.membership_card.id, label="Membership card")


# =============================================================================
# OPEN
# =============================================================================

def get_transaction(txn_id: int) -> CheckoutTransaction:
    txn = db.session.get(CheckoutTransaction, txn_id)
    if txn is None:
        raise NotFound(f"Transaction {txn_id} not found")
    return txn


def open_transaction(customer_id: int | None = None, promo_pricing: str | None = None) -> CheckoutTransaction:
    """Start a checkout; the pricing policy defaults to config PROMO_PRICING."""
    policy = promo_pricing or setting("PROMO_PRICING")
    if policy not in PROMO_PRICING_POLICIES:
        raise InvalidFormat(f"promo_pricing must be one of {list(PROMO_PRICING_POLICIES)}")

    if customer_id is not None and db.session.get(Customer, customer_id) is None:
        raise NotFound(f"Customer {customer_id} not found")

    txn = CheckoutTransaction(status=TXN_OPEN, customer_id=customer_id, promo_pricing=policy)
    db.session.add(txn)
    db.session.commit()
    return txn


def add_item(txn_id: int, cart_line_id: int, as_of: datetime | None = None) -> CartLine:
    """Attach an existing reservation to the transaction and snapshot its price."""
    def _op():
        txn = _locked_txn(txn_id)
        _require_status(txn, TXN_OPEN)
        line = get_locked(CartLine, cart_line_id, label="Cart line")
        if not line.is_reserved:
            raise ReservationError(f"Reservation {line.id} is already {line.status}")
        if line.transaction_id is not None:
            raise ReservationError(
                f"Reservation {line.id} already belongs to transaction {line.transaction_id}"
            )
        _snapshot_line(txn, line, as_of)
        db.session.commit()
        return line

    return run_with_retry(_op)


def add_to_cart(txn_id: int, product_id: int, quantity: int, as_of: datetime | None = None) -> CartLine:
    """Reserve stock and add it to the transaction in one step."""
    quantity = _positive_quantity(quantity)

    def _op():
        txn = _locked_txn(txn_id)
        _require_status(txn, TXN_OPEN)
        product = get_locked(Product, product_id)
        line = _reserve_locked(product, quantity)
        _snapshot_line(txn, line, as_of)
        db.session.commit()
        return line

    return run_with_retry(_op)


def update_item_quantity(txn_id: int, cart_line_id: int, quantity: int) -> CartLine:
    quantity = _positive_quantity(quantity)

    def _op():
        txn = _locked_txn(txn_id)
        _require_status(txn, TXN_OPEN)
        line = _txn_line(txn, cart_line_id)
        _change_reserved_quantity_locked(line, quantity)
        db.session.commit()
        return line

    return run_with_retry(_op)


def remove_item(txn_id: int, cart_line_id: int) -> CartLine:
    def _op():
        txn = _locked_txn(txn_id)
        _require_status(txn, TXN_OPEN)
        line = _txn_line(txn, cart_line_id)
        _release_locked(line)
        db.session.commit()
        return line

    return run_with_retry(_op)


def attach_customer(txn_id: int, customer_id: int) -> CheckoutTransaction:
    """Identify the shopper (sign-in or membership card lookup) before paying."""
    def _op():
        txn = _locked_txn(txn_id)
        _require_status(txn, TXN_OPEN, TXN_TOTALS_COMPUTED)
        if txn.points_redeemed or txn.membership_purchased:
            raise InvalidTransactionState("Customer cannot change after points or membership were applied")
        customer = db.session.get(Customer, customer_id)
        if customer is None:
            raise NotFound(f"Customer {customer_id} not found")
        txn.customer_id = customer.id
        txn.customer = customer
        db.session.commit()
        return txn

    return run_with_retry(_op)


# =============================================================================
# TOTALS
# =============================================================================

def calculate_totals(
    txn_id: int,
    is_senior_validated: bool = False,
    *,
    senior_id: str | None = None,
) -> CheckoutTransaction:
    """
    Fix subtotal, senior discount, VAT and final total.

    A senior_id, when given, must match SRC-XXXX / PWD-XXXX and marks the
    transaction as senior/PWD.
    """
    if senior_id is not None:
        senior_id = validate_senior_id(senior_id)
        is_senior_validated = True

    def _op():
        txn = _locked_txn(txn_id)
        _require_status(txn, TXN_OPEN)
        lines = txn.active_lines
        if not lines:
            raise InvalidTransactionState("Cannot checkout an empty cart")

        totals = compute_totals(sum(line.line_total_cents for line in lines), bool(is_senior_validated))
        txn.subtotal_cents = totals["subtotal_cents"]
        txn.senior_discount_cents = totals["senior_discount_cents"]
        txn.vat_cents = totals["vat_cents"]
        txn.final_total_cents = totals["final_total_cents"]
        txn.is_senior = bool(is_senior_validated)
        txn.senior_id = senior_id
        txn.status = TXN_TOTALS_COMPUTED
        txn.totals_computed_at = utcnow()
        db.session.commit()
        return txn

    return run_with_retry(_op)


def purchase_membership(txn_id: int) -> CheckoutTransaction:
    """
    Add the membership card fee to this checkout.

    The card itself is issued at settlement, so an abandoned checkout leaves
    no card behind.
    """
    def _op():
        txn = _locked_txn(txn_id)
        _require_status(txn, TXN_OPEN, TXN_TOTALS_COMPUTED)
        if txn.customer is None:
            raise InvalidTransactionState("A registered customer is required to buy a membership card")
        if txn.customer.membership_card is not None:
            raise InvalidTransactionState(f"Customer {txn.customer.customer_code} already has a membership card")
        if txn.membership_purchased:
            raise InvalidTransactionState("Membership card already added to this checkout")
        txn.membership_purchased = True
        txn.membership_fee_cents = setting("MEMBERSHIP_FEE_CENTS")
        db.session.commit()
        return txn

    return run_with_retry(_op)


def redeem_points(txn_id: int, points_requested: int, as_of: date | None = None) -> CheckoutTransaction:
    """
    Apply membership points (1 point = ₱1) against the final total.

    All requested points are debited, then the part above floor(final total)
    is refunded, so the total never goes below zero.

    Raises:
        InsufficientPoints: more points requested than the balance holds
        ExpiredCard: the membership card is past its expiry date
    """
    if isinstance(points_requested, bool) or not isinstance(points_requested, int) or points_requested <= 0:
        raise InvalidAmount("points must be a positive integer")

    def _op():
        txn = _locked_txn(txn_id)
        _require_status(txn, TXN_TOTALS_COMPUTED)
        if txn.points_redeemed:
            raise InvalidTransactionState("Points were already redeemed for this checkout")
        card = _card_for(txn)
        if card is None:
            raise InvalidTransactionState("Customer has no membership card")
        points_service.ensure_card_valid(card, as_of)

        points_service.use(card, points_requested)
        redeemable = min(points_requested, whole_units(txn.final_total_cents))
        excess = points_requested - redeemable
        if excess:
            points_service.refund(card, excess)

        txn.points_redeemed = redeemable
        txn.points_discount_cents = redeemable * 100
        txn.final_total_cents -= txn.points_discount_cents
        db.session.commit()
        return txn

    return run_with_retry(_op)


# =============================================================================
# SETTLE / ABANDON
# =============================================================================

def settle(
    txn_id: int,
    amount_paid_cents: int | None,
    method: str,
    card: dict | None = None,
    as_of: date | None = None,
) -> CheckoutTransaction:
    """
    Take payment and finalize the transaction.

    CASH must cover the amount due; the difference is change.
    CARD is format-checked and charged exactly the amount due.

    On success: reservations are consumed, a purchased membership card is
    issued, points are credited and a sales-log line is appended.
    """
    method = (method or "").upper()
    if method not in PAYMENT_METHODS:
        raise InvalidFormat(f"Payment method must be one of {list(PAYMENT_METHODS)}")
    as_of = as_of or today()

    card_info = None
    if method == METHOD_CARD:
        card = card or {}
        card_info = validate_payment_card(card.get("number"), card.get("cvv"), card.get("expiry"), today=as_of)
    elif isinstance(amount_paid_cents, bool) or not isinstance(amount_paid_cents, int) or amount_paid_cents < 0:
        raise InvalidAmount("amount_paid_cents must be a non-negative integer")

    def _op():
        txn = _locked_txn(txn_id)
        _require_status(txn, TXN_TOTALS_COMPUTED)
        due = txn.amount_due_cents

        if method == METHOD_CASH:
            if amount_paid_cents < due:
                raise InsufficientPayment(
                    "Insufficient payment",
                    details={"amount_due_cents": due, "amount_paid_cents": amount_paid_cents},
                )
            paid = amount_paid_cents
        else:
            paid = due

        for line in txn.active_lines:
            _consume_locked(line)

        if txn.membership_purchased:
            _issue_card_locked(txn.customer, as_of)

        txn.amount_paid_cents = paid
        txn.change_cents = paid - due
        txn.payment_method = method
        if card_info:
            txn.card_brand = card_info["brand"]
            txn.card_last4 = card_info["last4"]

        txn.earning_base_cents = txn.final_total_cents + txn.points_discount_cents
        member_card = _card_for(txn)
        txn.points_credited = points_service.earn(member_card, txn.earning_base_cents) if member_card else 0
        if member_card:
            txn.member_card_number = member_card.card_number
            txn.points_balance_after = member_card.points_balance

        txn.status = TXN_SETTLED
        txn.settled_at = utcnow()
        append_sales_log_line(sales_log_line(txn), transaction_id=txn.id)
        db.session.commit()
        current_app.logger.info(
            "Transaction %s settled: due=%s paid=%s method=%s", txn.id, due, paid, method
        )
        return txn

    return run_with_retry(_op)


def points_earned(txn_id: int) -> int:
    """floor(earning base / ₱50); only defined once the transaction is SETTLED."""
    txn = get_transaction(txn_id)
    _require_status(txn, TXN_SETTLED)
    return points_service.points_for_amount(txn.earning_base_cents)


def abandon(txn_id: int) -> CheckoutTransaction:
    """
    Walk away from the checkout.

    Releases every outstanding reservation exactly once and refunds any
    redeemed points. The transaction is terminal afterwards.
    """
    def _op():
        txn = _locked_txn(txn_id)
        _require_status(txn, TXN_OPEN, TXN_TOTALS_COMPUTED)

        released = 0
        for line in txn.lines:
            if line.is_reserved:
                _release_locked(line)
                released += 1

        if txn.points_redeemed:
            card = _card_for(txn)
            if card is not None:
                points_service.refund(card, txn.points_redeemed)

        txn.status = TXN_ABANDONED
        txn.abandoned_at = utcnow()
        db.session.commit()
        current_app.logger.info("Transaction %s abandoned; released %d reservation(s)", txn.id, released)
        return txn

    return run_with_retry(_op)
