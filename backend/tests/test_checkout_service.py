"""
Checkout pipeline: state machine, discount order, points and settlement.

Amounts are cents throughout (10000 == ₱100.00).
"""

from datetime import timedelta

import pytest

from cstore.errors import (
    ExpiredCard,
    InsufficientPayment,
    InsufficientPoints,
    InsufficientStock,
    InvalidAmount,
    InvalidFormat,
    InvalidTransactionState,
    NotFound,
    ReservationError,
)
from cstore.models.checkout import (
    PROMO_PRICING_NONE,
    TXN_ABANDONED,
    TXN_OPEN,
    TXN_SETTLED,
    TXN_TOTALS_COMPUTED,
)
from cstore.models.inventory import RESERVATION_CONSUMED, RESERVATION_RELEASED
from cstore.models.promotions import DISCOUNT_FIXED, DISCOUNT_PERCENTAGE
from cstore.services import checkout_service, customers_service, persistence_service, stock_service
from cstore.services.checkout_service import compute_totals

from conftest import NOW, TODAY

VISA = {"number": "4111111111111111", "cvv": "123", "expiry": "12/30"}


def _checkout(product, quantity, customer=None, **kwargs):
    txn = checkout_service.open_transaction(customer.id if customer else None, **kwargs)
    checkout_service.add_to_cart(txn.id, product.id, quantity, as_of=NOW)
    return txn


# =============================================================================
# TOTALS
# =============================================================================

@pytest.mark.parametrize("price,qty", [(1, 1), (10000, 2), (2599, 7), (999_999, 3)])
def test_single_line_subtotal_is_price_times_quantity(make_product, price, qty):
    product = make_product("G-001", price_cents=price, quantity=10)
    txn = _checkout(product, qty)

    checkout_service.calculate_totals(txn.id)

    assert txn.subtotal_cents == price * qty
    assert txn.final_total_cents == price * qty
    assert txn.status == TXN_TOTALS_COMPUTED


def test_senior_discount_and_vat(product):
    txn = _checkout(product, 2)

    checkout_service.calculate_totals(txn.id, senior_id="SRC-1234")

    assert txn.subtotal_cents == 20000
    assert txn.senior_discount_cents == 4000
    assert txn.final_total_cents == 16000
    assert txn.vat_cents == 1714
    assert txn.is_senior is True
    assert txn.senior_id == "SRC-1234"


def test_vat_is_included_not_added():
    totals = compute_totals(11200, is_senior=False)
    assert totals["final_total_cents"] == 11200
    assert totals["vat_cents"] == 1200

    senior = compute_totals(12345, is_senior=True)
    assert senior["final_total_cents"] == 12345 - senior["senior_discount_cents"]


def test_invalid_senior_id_keeps_transaction_open(product):
    txn = _checkout(product, 1)

    with pytest.raises(InvalidFormat):
        checkout_service.calculate_totals(txn.id, senior_id="SRC-12")

    assert txn.status == TXN_OPEN
    assert txn.subtotal_cents is None


def test_totals_on_empty_cart_fail(db_session):
    txn = checkout_service.open_transaction()
    with pytest.raises(InvalidTransactionState):
        checkout_service.calculate_totals(txn.id)


def test_totals_are_computed_once(product):
    txn = _checkout(product, 1)
    checkout_service.calculate_totals(txn.id)

    with pytest.raises(InvalidTransactionState):
        checkout_service.calculate_totals(txn.id, is_senior_validated=True)
    assert txn.senior_discount_cents == 0


# =============================================================================
# CART
# =============================================================================

def test_per_line_promotional_pricing(product, make_sale):
    sale = make_sale("ALL-F", DISCOUNT_PERCENTAGE, 1000)
    make_sale("F-001", DISCOUNT_FIXED, 500)
    txn = _checkout(product, 2)

    line = txn.active_lines[0]
    assert (line.list_price_cents, line.unit_price_cents) == (10000, 9000)
    assert line.promotion_id == sale.id

    checkout_service.calculate_totals(txn.id)
    assert txn.subtotal_cents == 18000


def test_no_promotional_pricing_policy(product, make_sale):
    make_sale("ALL-F", DISCOUNT_PERCENTAGE, 1000)
    txn = _checkout(product, 2, promo_pricing=PROMO_PRICING_NONE)

    checkout_service.calculate_totals(txn.id)
    assert txn.subtotal_cents == 20000
    assert txn.active_lines[0].promotion_id is None


def test_unknown_pricing_policy(db_session):
    with pytest.raises(InvalidFormat):
        checkout_service.open_transaction(promo_pricing="SOMETIMES")


def test_adding_beyond_stock_fails(product):
    txn = checkout_service.open_transaction()
    with pytest.raises(InsufficientStock):
        checkout_service.add_to_cart(txn.id, product.id, 11)
    assert product.quantity_on_hand == 10
    assert txn.lines == []


def test_resize_and_remove_lines(product, make_product):
    water = make_product("B-001", price_cents=2500, quantity=20)
    txn = _checkout(product, 1)
    line = checkout_service.add_to_cart(txn.id, water.id, 2)

    checkout_service.update_item_quantity(txn.id, line.id, 4)
    assert water.quantity_on_hand == 16
    assert line.line_total_cents == 10000

    first = txn.active_lines[0]
    checkout_service.remove_item(txn.id, first.id)
    assert product.quantity_on_hand == 10
    assert first.status == RESERVATION_RELEASED

    checkout_service.calculate_totals(txn.id)
    assert txn.subtotal_cents == 10000


def test_lines_of_another_transaction_are_not_found(product):
    mine = _checkout(product, 1)
    other = checkout_service.open_transaction()

    with pytest.raises(NotFound):
        checkout_service.remove_item(other.id, mine.active_lines[0].id)


def test_add_existing_reservation(product):
    txn = checkout_service.open_transaction()
    reservation = stock_service.reserve(product.id, 3)

    checkout_service.add_item(txn.id, reservation.id, as_of=NOW)
    assert reservation.transaction_id == txn.id
    assert reservation.line_total_cents == 30000

    with pytest.raises(ReservationError):
        checkout_service.add_item(checkout_service.open_transaction().id, reservation.id)


def test_cart_is_frozen_after_totals(product):
    txn = _checkout(product, 1)
    checkout_service.calculate_totals(txn.id)

    with pytest.raises(InvalidTransactionState):
        checkout_service.add_to_cart(txn.id, product.id, 1)


@pytest.mark.parametrize("computed", [False, True])
def test_cart_lines_are_closed_to_direct_ledger_calls(product, computed):
    txn = _checkout(product, 2)
    if computed:
        checkout_service.calculate_totals(txn.id)
    line = txn.active_lines[0]

    with pytest.raises(ReservationError):
        stock_service.release(line.id)
    with pytest.raises(ReservationError):
        stock_service.change_reserved_quantity(line.id, 9)
    with pytest.raises(ReservationError):
        stock_service.consume(line.id)

    assert line.is_reserved
    assert line.quantity == 2
    assert product.quantity_on_hand == 8

    if not computed:
        checkout_service.calculate_totals(txn.id)
    checkout_service.settle(txn.id, 20000, "CASH")

    assert txn.subtotal_cents == 20000
    assert line.status == RESERVATION_CONSUMED
    assert line.line_total_cents == 20000
    assert product.quantity_on_hand == 8


# =============================================================================
# POINTS AND MEMBERSHIP
# =============================================================================

def test_redeem_is_clamped_to_whole_final_total(make_product, member):
    snack = make_product("G-001", price_cents=2500, quantity=5)
    txn = _checkout(snack, 1, member)
    checkout_service.calculate_totals(txn.id)

    checkout_service.redeem_points(txn.id, 30, as_of=TODAY)

    assert txn.points_redeemed == 25
    assert txn.points_discount_cents == 2500
    assert txn.final_total_cents == 0
    assert member.membership_card.points_balance == 5


def test_redeem_bounds(product, member):
    txn = _checkout(product, 1, member)
    checkout_service.calculate_totals(txn.id)
    before = txn.final_total_cents

    checkout_service.redeem_points(txn.id, 12, as_of=TODAY)

    assert txn.points_redeemed <= min(30, before // 100)
    assert txn.final_total_cents == before - 1200
    assert member.membership_card.points_balance == 18

    with pytest.raises(InvalidTransactionState):
        checkout_service.redeem_points(txn.id, 1, as_of=TODAY)


def test_redeem_more_than_balance(product, member):
    txn = _checkout(product, 1, member)
    checkout_service.calculate_totals(txn.id)

    with pytest.raises(InsufficientPoints):
        checkout_service.redeem_points(txn.id, 31, as_of=TODAY)

    assert member.membership_card.points_balance == 30
    assert txn.points_redeemed == 0
    assert txn.final_total_cents == 10000


@pytest.mark.parametrize("points", [0, -3, "5", 2.0])
def test_redeem_requires_positive_integer(product, member, points):
    txn = _checkout(product, 1, member)
    checkout_service.calculate_totals(txn.id)
    with pytest.raises(InvalidAmount):
        checkout_service.redeem_points(txn.id, points)


def test_redeem_with_expired_card(product, member):
    txn = _checkout(product, 1, member)
    checkout_service.calculate_totals(txn.id)

    with pytest.raises(ExpiredCard):
        checkout_service.redeem_points(
            txn.id, 5, as_of=member.membership_card.expiry_date + timedelta(days=1)
        )
    assert member.membership_card.points_balance == 30


def test_redeem_requires_membership(product, customer):
    txn = _checkout(product, 1, customer)
    checkout_service.calculate_totals(txn.id)
    with pytest.raises(InvalidTransactionState):
        checkout_service.redeem_points(txn.id, 1)


def test_membership_fee_is_charged_but_earns_nothing(product, customer):
    txn = _checkout(product, 2, customer)
    checkout_service.calculate_totals(txn.id, senior_id="PWD-0001")
    checkout_service.purchase_membership(txn.id)

    assert txn.final_total_cents == 16000
    assert txn.amount_due_cents == 21000
    assert customer.membership_card is None

    checkout_service.settle(txn.id, 21000, "cash", as_of=TODAY)

    card = customer.membership_card
    assert card is not None
    assert card.points_balance == 3
    assert txn.points_credited == 3


def test_membership_needs_a_registered_customer_without_card(product, member):
    guest = _checkout(product, 1)
    with pytest.raises(InvalidTransactionState):
        checkout_service.purchase_membership(guest.id)

    txn = _checkout(product, 1, member)
    with pytest.raises(InvalidTransactionState):
        checkout_service.purchase_membership(txn.id)


def test_card_issued_elsewhere_blocks_membership_settlement(product, customer):
    txn = _checkout(product, 1, customer)
    checkout_service.calculate_totals(txn.id)
    checkout_service.purchase_membership(txn.id)
    customers_service.issue_membership_card(customer.id, as_of=TODAY)

    with pytest.raises(InvalidTransactionState):
        checkout_service.settle(txn.id, 15000, "CASH", as_of=TODAY)

    assert txn.status == TXN_TOTALS_COMPUTED
    assert txn.active_lines[0].is_reserved
    assert product.quantity_on_hand == 9


# =============================================================================
# SETTLE
# =============================================================================

def test_cash_settlement(product):
    txn = _checkout(product, 2)
    checkout_service.calculate_totals(txn.id, senior_id="SRC-1234")

    checkout_service.settle(txn.id, 20000, "CASH")

    assert txn.status == TXN_SETTLED
    assert txn.amount_paid_cents == 20000
    assert txn.change_cents == 4000
    assert txn.points_credited == 0
    assert all(line.status == RESERVATION_CONSUMED for line in txn.active_lines)
    assert product.quantity_on_hand == 8

    log = persistence_service.load_sales_log()
    assert len(log) == 1
    assert log[0].endswith(",GUEST,160.00,CASH")


def test_short_cash_payment_changes_nothing(product):
    txn = _checkout(product, 1)
    checkout_service.calculate_totals(txn.id)

    with pytest.raises(InsufficientPayment):
        checkout_service.settle(txn.id, 9999, "CASH")

    assert txn.status == TXN_TOTALS_COMPUTED
    assert txn.active_lines[0].is_reserved
    assert persistence_service.load_sales_log() == []


def test_card_settlement_charges_exact_amount(product):
    txn = _checkout(product, 1)
    checkout_service.calculate_totals(txn.id)

    checkout_service.settle(txn.id, None, "CARD", card=VISA, as_of=TODAY)

    assert txn.amount_paid_cents == 10000
    assert txn.change_cents == 0
    assert (txn.card_brand, txn.card_last4) == ("VISA", "1111")


def test_bad_card_or_method(product):
    txn = _checkout(product, 1)
    checkout_service.calculate_totals(txn.id)

    with pytest.raises(InvalidFormat):
        checkout_service.settle(txn.id, None, "CARD", card={**VISA, "cvv": "1"}, as_of=TODAY)
    with pytest.raises(ExpiredCard):
        checkout_service.settle(txn.id, None, "CARD", card={**VISA, "expiry": "01/25"}, as_of=TODAY)
    with pytest.raises(InvalidFormat):
        checkout_service.settle(txn.id, 10000, "GCASH")
    assert txn.status == TXN_TOTALS_COMPUTED


def test_settle_before_totals(product):
    txn = _checkout(product, 1)
    with pytest.raises(InvalidTransactionState):
        checkout_service.settle(txn.id, 10000, "CASH")


def test_points_are_earned_on_pre_redemption_total(product, member):
    txn = _checkout(product, 2, member)
    checkout_service.calculate_totals(txn.id)
    checkout_service.redeem_points(txn.id, 30, as_of=TODAY)

    checkout_service.settle(txn.id, 17000, "CASH", as_of=TODAY)

    assert txn.earning_base_cents == 20000
    assert checkout_service.points_earned(txn.id) == 4
    assert member.membership_card.points_balance == 4
    assert persistence_service.load_sales_log()[0].endswith(f",{member.customer_code},170.00,CASH")


def test_points_earned_only_after_settlement(product):
    txn = _checkout(product, 1)
    checkout_service.calculate_totals(txn.id)
    with pytest.raises(InvalidTransactionState):
        checkout_service.points_earned(txn.id)


# =============================================================================
# ABANDON
# =============================================================================

def test_abandon_releases_stock_and_refunds_points(product, member):
    txn = _checkout(product, 3, member)
    checkout_service.calculate_totals(txn.id)
    checkout_service.redeem_points(txn.id, 20, as_of=TODAY)
    assert product.quantity_on_hand == 7

    checkout_service.abandon(txn.id)

    assert txn.status == TXN_ABANDONED
    assert product.quantity_on_hand == 10
    assert member.membership_card.points_balance == 30

    with pytest.raises(InvalidTransactionState):
        checkout_service.abandon(txn.id)
    assert product.quantity_on_hand == 10


def test_settled_transaction_cannot_be_abandoned(product):
    txn = _checkout(product, 1)
    checkout_service.calculate_totals(txn.id)
    checkout_service.settle(txn.id, 10000, "CASH")

    with pytest.raises(InvalidTransactionState):
        checkout_service.abandon(txn.id)
    assert product.quantity_on_hand == 9


def test_abandoned_membership_purchase_issues_no_card(product, customer):
    txn = _checkout(product, 1, customer)
    checkout_service.calculate_totals(txn.id)
    checkout_service.purchase_membership(txn.id)
    checkout_service.abandon(txn.id)

    assert customers_service.get_customer(customer.id).membership_card is None
