from __future__ import annotations

from ..extensions import db
from cstore.time_utils import to_utc_z

DISCOUNT_PERCENTAGE = "PERCENTAGE"
DISCOUNT_FIXED = "FIXED"


class PromotionalSale(db.Model):
    """
    Time-bounded discount on one product or a whole category.

    target is either an exact product code ("F-001") or a category wildcard
    ("ALL-F"). discount_value is basis points for PERCENTAGE (10000 = 100%)
    and cents for FIXED.

    A sale applies only while is_active AND start_at <= as_of <= end_at; the
    flag and the window are independent.
    """
    __tablename__ = "promotional_sales"
    # autoincrement keeps ids monotonic even after deletes
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)

    target = db.Column(db.String(32), nullable=False, index=True)
    discount_kind = db.Column(db.String(16), nullable=False)  # PERCENTAGE, FIXED
    discount_value = db.Column(db.Integer, nullable=False)

    start_at = db.Column(db.DateTime, nullable=False)
    end_at = db.Column(db.DateTime, nullable=False, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    @property
    def sale_code(self) -> str:
        return f"SALE-{self.id:04d}" if self.id else "SALE-????"

    def is_applicable(self, as_of) -> bool:
        return bool(self.is_active) and self.start_at <= as_of <= self.end_at

    def to_dict(self):
        return {
            "id": self.id,
            "sale_code": self.sale_code,
            "target": self.target,
            "discount_kind": self.discount_kind,
            "discount_value": self.discount_value,
            "start_at": to_utc_z(self.start_at),
            "end_at": to_utc_z(self.end_at),
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
