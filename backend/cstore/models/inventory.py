from __future__ import annotations

from sqlalchemy.orm import validates

from ..extensions import db
from ..categories import category_for, parse_product_code
from cstore.time_utils import to_utc_z

PRODUCT_KIND_PERISHABLE = "PERISHABLE"
PRODUCT_KIND_NON_PERISHABLE = "NON_PERISHABLE"

RESERVATION_RESERVED = "RESERVED"
RESERVATION_RELEASED = "RELEASED"
RESERVATION_CONSUMED = "CONSUMED"


class Product(db.Model):
    """
    Product master data and the stock ledger's quantity on hand.

    CODE DESIGN DECISION:
    product_code ("F-001") is the canonical identifier. Its prefix fixes the
    category, which is resolved once when the code is assigned and stored in
    `category`; no query site re-derives it.

    KIND:
    PERISHABLE products always carry an expiration_date; NON_PERISHABLE never
    do. The kind is chosen at creation.

    CONCURRENCY:
    quantity_on_hand is only mutated under a row lock, and version_id makes a
    lost update raise StaleDataError instead of silently overwriting.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("quantity_on_hand >= 0", name="ck_products_qoh_non_negative"),
        db.CheckConstraint("price_cents >= 1", name="ck_products_price_positive"),
        db.Index("ix_products_category", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_code = db.Column(db.String(32), nullable=False, unique=True, index=True)
    category = db.Column(db.String(32), nullable=False)

    name = db.Column(db.String(255), nullable=False)
    brand = db.Column(db.String(128), nullable=True)
    variant = db.Column(db.String(128), nullable=True)

    price_cents = db.Column(db.Integer, nullable=False)
    quantity_on_hand = db.Column(db.Integer, nullable=False, default=0)

    kind = db.Column(db.String(16), nullable=False, default=PRODUCT_KIND_NON_PERISHABLE)
    expiration_date = db.Column(db.Date, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    @validates("product_code")
    def _assign_category(self, key, value):
        self.category = category_for(value)
        return value.strip()

    @property
    def is_perishable(self) -> bool:
        return self.kind == PRODUCT_KIND_PERISHABLE

    @property
    def category_prefix(self) -> str:
        return parse_product_code(self.product_code)[0]

    def __repr__(self) -> str:
        return f"<Product id={self.id} code={self.product_code!r} name={self.name!r} qoh={self.quantity_on_hand}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_code": self.product_code,
            "category": self.category,
            "name": self.name,
            "brand": self.brand,
            "variant": self.variant,
            "price_cents": self.price_cents,
            "quantity_on_hand": self.quantity_on_hand,
            "kind": self.kind,
            "expiration_date": self.expiration_date.isoformat() if self.expiration_date else None,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class CartLine(db.Model):
    """
    A stock reservation held by a shopping cart.

    The reserved quantity has already been taken off Product.quantity_on_hand.
    Each line ends in exactly one of:
    - RELEASED: removed from the cart or the checkout was abandoned
      (stock restored)
    - CONSUMED: the checkout settled (stock stays decremented)

    Price fields are snapshots taken when the line joins a transaction.
    """
    __tablename__ = "cart_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_cart_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("checkout_transactions.id"), nullable=True, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=RESERVATION_RESERVED, index=True)

    list_price_cents = db.Column(db.Integer, nullable=True)
    unit_price_cents = db.Column(db.Integer, nullable=True)
    line_total_cents = db.Column(db.Integer, nullable=True)
    promotion_id = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    product = db.relationship("Product")

    @property
    def is_reserved(self) -> bool:
        return self.status == RESERVATION_RESERVED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_code": self.product.product_code if self.product else None,
            "product_name": self.product.name if self.product else None,
            "transaction_id": self.transaction_id,
            "quantity": self.quantity,
            "status": self.status,
            "list_price_cents": self.list_price_cents,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "promotion_id": self.promotion_id,
            "created_at": to_utc_z(self.created_at),
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
        }
