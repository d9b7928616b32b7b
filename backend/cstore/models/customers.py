from __future__ import annotations

from ..extensions import db
from cstore.time_utils import to_utc_z


class Customer(db.Model):
    """
    Registered store customer.

    customer_code ("DLSUser-007") is allocated sequentially by the customer
    registry. Walk-in guests have no Customer row at all.
    """
    __tablename__ = "customers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    customer_code = db.Column(db.String(32), nullable=False, unique=True, index=True)

    first_name = db.Column(db.String(128), nullable=False)
    last_name = db.Column(db.String(128), nullable=False)
    middle_name = db.Column(db.String(128), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    membership_card = db.relationship(
        "MembershipCard",
        back_populates="customer",
        uselist=False,
        lazy=True,
    )

    @property
    def full_name(self) -> str:
        parts = [self.first_name]
        if self.middle_name:
            parts.append(self.middle_name)
        parts.append(self.last_name)
        return " ".join(parts)

    @property
    def has_membership(self) -> bool:
        return self.membership_card is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_code": self.customer_code,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "middle_name": self.middle_name,
            "full_name": self.full_name,
            "membership_card": self.membership_card.to_dict() if self.membership_card else None,
            "created_at": to_utc_z(self.created_at),
        }


class MembershipCard(db.Model):
    """
    Membership card and its point balance.

    One card per customer (unique customer_id). points_balance is a
    non-negative integer; 1 point redeems for 1 currency unit.
    """
    __tablename__ = "membership_cards"
    __table_args__ = (
        db.UniqueConstraint("customer_id", name="uq_membership_cards_customer"),
        db.CheckConstraint("points_balance >= 0", name="ck_membership_cards_points_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    card_number = db.Column(db.String(32), nullable=False, unique=True, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False)

    points_balance = db.Column(db.Integer, nullable=False, default=0)
    expiry_date = db.Column(db.Date, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", back_populates="membership_card")
    __mapper_args__ = {"version_id_col": version_id}

    def is_expired(self, as_of_date) -> bool:
        return self.expiry_date < as_of_date

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "card_number": self.card_number,
            "customer_id": self.customer_id,
            "points_balance": self.points_balance,
            "expiry_date": self.expiry_date.isoformat() if self.expiry_date else None,
            "created_at": to_utc_z(self.created_at),
        }
