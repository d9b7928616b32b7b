# Overview: Receipt text and one-line sales-log summaries for checkout transactions.

from __future__ import annotations

from ..models import CheckoutTransaction
from ..pricing import format_money, setting
from cstore.time_utils import utcnow

RULE = "-" * 36
DOUBLE_RULE = "=" * 36


def _plain_amount(amount_cents: int) -> str:
    return f"{amount_cents // 100}.{amount_cents % 100:02d}"


def _timestamp(txn: CheckoutTransaction) -> str:
    return (txn.settled_at or txn.created_at or utcnow()).strftime("%Y-%m-%d %H:%M:%S")


def _customer_label(txn: CheckoutTransaction) -> str:
    return txn.customer.full_name if txn.customer else "Guest"


def render_line(line) -> str:
    name = line.product.name if line.product else f"#{line.product_id}"
    text = f"{line.quantity} x {name} @ {format_money(line.unit_price_cents)} = {format_money(line.line_total_cents)}"
    if line.promotion_id and line.list_price_cents != line.unit_price_cents:
        text += f" (was {format_money(line.list_price_cents)})"
    return text


def render_totals(txn: CheckoutTransaction) -> str:
    """Order summary shown before payment."""
    rows = ["--- Transaction Totals ---", f"Subtotal: {format_money(txn.subtotal_cents)}"]
    if txn.senior_discount_cents:
        rows.append(f"Senior/PWD Discount (20%): -{format_money(txn.senior_discount_cents)}")
    if txn.points_discount_cents:
        rows.append(f"Points Redeemed ({txn.points_redeemed}): -{format_money(txn.points_discount_cents)}")
    if txn.membership_fee_cents:
        rows.append(f"Membership Card: +{format_money(txn.membership_fee_cents)}")
    rows.append(f"VAT (12% included): {format_money(txn.vat_cents)}")
    rows.append(RULE)
    rows.append(f"Total Due: {format_money(txn.amount_due_cents)}")
    return "\n".join(rows) + "\n"


def render_receipt(txn: CheckoutTransaction, store_name: str | None = None) -> str:
    store_name = store_name or setting("STORE_NAME")
    rows = [
        DOUBLE_RULE,
        store_name.center(36).rstrip(),
        DOUBLE_RULE,
        f"Transaction: {txn.id}",
        f"Date/Time: {_timestamp(txn)}",
        f"Customer: {_customer_label(txn)}",
    ]
    if txn.is_senior:
        rows.append("Status: Senior/PWD")
    rows.append(RULE)
    rows.append("Items:")
    rows.extend(render_line(line) for line in txn.active_lines)
    rows.append(RULE)
    rows.append(f"Subtotal: {format_money(txn.subtotal_cents)}")
    if txn.senior_discount_cents:
        rows.append(f"Senior Discount: -{format_money(txn.senior_discount_cents)}")
    if txn.points_discount_cents:
        rows.append(f"Points Redeemed: -{format_money(txn.points_discount_cents)}")
    if txn.membership_fee_cents:
        rows.append(f"Membership Card: +{format_money(txn.membership_fee_cents)}")
    rows.append(f"VAT (12%): {format_money(txn.vat_cents)}")
    rows.append(RULE)
    rows.append(f"TOTAL DUE: {format_money(txn.amount_due_cents)}")
    rows.append(f"AMOUNT PAID: {format_money(txn.amount_paid_cents)}")
    rows.append(f"CHANGE: {format_money(txn.change_cents)}")
    method = txn.payment_method or "N/A"
    if txn.card_last4:
        method = f"{method} ({txn.card_brand} ****{txn.card_last4})"
    rows.append(f"Payment Method: {method}")
    if txn.member_card_number:
        rows.append(RULE)
        rows.append("MEMBERSHIP POINTS")
        rows.append(f"Card: {txn.member_card_number}")
        rows.append(f"Points Earned: +{txn.points_credited or 0}")
        rows.append(f"Total Points: {txn.points_balance_after}")
    rows.append(DOUBLE_RULE)
    return "\n".join(rows) + "\n"


def sales_log_line(txn: CheckoutTransaction) -> str:
    """<timestamp>,<customer code or GUEST>,<amount charged>,<method>"""
    customer = txn.customer.customer_code if txn.customer else "GUEST"
    return ",".join([
        _timestamp(txn),
        customer,
        _plain_amount(txn.amount_due_cents or 0),
        txn.payment_method or "N/A",
    ])
