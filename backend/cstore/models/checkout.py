from __future__ import annotations

from ..extensions import db
from cstore.time_utils import to_utc_z
from .inventory import RESERVATION_RELEASED

TXN_OPEN = "OPEN"
TXN_TOTALS_COMPUTED = "TOTALS_COMPUTED"
TXN_SETTLED = "SETTLED"
TXN_ABANDONED = "ABANDONED"

PROMO_PRICING_PER_LINE = "PER_LINE"
PROMO_PRICING_NONE = "NONE"
PROMO_PRICING_POLICIES = (PROMO_PRICING_PER_LINE, PROMO_PRICING_NONE)

METHOD_CASH = "CASH"
METHOD_CARD = "CARD"
PAYMENT_METHODS = (METHOD_CASH, METHOD_CARD)


class CheckoutTransaction(db.Model):
    """
    One checkout attempt.

    LIFECYCLE:
        OPEN -> TOTALS_COMPUTED -> SETTLED
          |            |
          +------------+-------> ABANDONED

    SETTLED and ABANDONED are terminal; a settled row is never updated again.

    AMOUNTS (all cents):
    - final_total_cents: goods total after senior discount and points
    - membership_fee_cents: card bought in this session, charged on top
    - amount due = final_total_cents + membership_fee_cents
    - vat_cents is the VAT already contained in the total (display only)
    """
    __tablename__ = "checkout_transactions"
    __table_args__ = (
        db.Index("ix_checkout_transactions_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    status = db.Column(db.String(16), nullable=False, default=TXN_OPEN, index=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    promo_pricing = db.Column(db.String(16), nullable=False, default=PROMO_PRICING_PER_LINE)

    is_senior = db.Column(db.Boolean, nullable=False, default=False)
    senior_id = db.Column(db.String(16), nullable=True)

    subtotal_cents = db.Column(db.Integer, nullable=True)
    vat_cents = db.Column(db.Integer, nullable=True)
    senior_discount_cents = db.Column(db.Integer, nullable=False, default=0)
    final_total_cents = db.Column(db.Integer, nullable=True)

    points_redeemed = db.Column(db.Integer, nullable=False, default=0)
    points_discount_cents = db.Column(db.Integer, nullable=False, default=0)

    membership_purchased = db.Column(db.Boolean, nullable=False, default=False)
    membership_fee_cents = db.Column(db.Integer, nullable=False, default=0)

    amount_paid_cents = db.Column(db.Integer, nullable=True)
    change_cents = db.Column(db.Integer, nullable=True)
    payment_method = db.Column(db.String(16), nullable=True)
    card_brand = db.Column(db.String(16), nullable=True)
    card_last4 = db.Column(db.String(4), nullable=True)

    earning_base_cents = db.Column(db.Integer, nullable=True)
    points_credited = db.Column(db.Integer, nullable=True)
    # Card and balance as of settlement, for receipt reprints
    member_card_number = db.Column(db.String(32), nullable=True)
    points_balance_after = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    totals_computed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    settled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    abandoned_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("transactions", lazy=True))
    lines = db.relationship(
        "CartLine",
        backref=db.backref("transaction", lazy=True),
        order_by="CartLine.id",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def amount_due_cents(self) -> int | None:
        if self.final_total_cents is None:
            return None
        return self.final_total_cents + (self.membership_fee_cents or 0)

    @property
    def active_lines(self) -> list:
        """Lines still holding stock or already consumed at settlement."""
        return [line for line in self.lines if line.status != RESERVATION_RELEASED]

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "status": self.status,
            "customer_id": self.customer_id,
            "customer_code": self.customer.customer_code if self.customer else None,
            "promo_pricing": self.promo_pricing,
            "is_senior": self.is_senior,
            "senior_id": self.senior_id,
            "subtotal_cents": self.subtotal_cents,
            "vat_cents": self.vat_cents,
            "senior_discount_cents": self.senior_discount_cents,
            "final_total_cents": self.final_total_cents,
            "points_redeemed": self.points_redeemed,
            "points_discount_cents": self.points_discount_cents,
            "membership_purchased": self.membership_purchased,
            "membership_fee_cents": self.membership_fee_cents,
            "amount_due_cents": self.amount_due_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "change_cents": self.change_cents,
            "payment_method": self.payment_method,
            "card_brand": self.card_brand,
            "card_last4": self.card_last4,
            "earning_base_cents": self.earning_base_cents,
            "points_credited": self.points_credited,
            "member_card_number": self.member_card_number,
            "points_balance_after": self.points_balance_after,
            "created_at": to_utc_z(self.created_at),
            "totals_computed_at": to_utc_z(self.totals_computed_at) if self.totals_computed_at else None,
            "settled_at": to_utc_z(self.settled_at) if self.settled_at else None,
            "abandoned_at": to_utc_z(self.abandoned_at) if self.abandoned_at else None,
            "version_id": self.version_id,
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.active_lines]
        return data


class SalesLogEntry(db.Model):
    """
    Append-only one-line summary per settled transaction.

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "sales_log"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("checkout_transactions.id"), nullable=True, index=True)
    line = db.Column(db.String(255), nullable=False)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "line": self.line,
            "occurred_at": to_utc_z(self.occurred_at),
        }
