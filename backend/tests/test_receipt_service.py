import unittest
from datetime import datetime

from flask import Flask

from cstore.extensions import db
from cstore.models import CartLine, CheckoutTransaction, Customer, MembershipCard, Product, SalesLogEntry
from cstore.services import checkout_service, customers_service, products_service
from cstore.services.receipt_service import render_receipt, render_totals, sales_log_line


class ReceiptServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = Flask(__name__)
        cls.app.config.update(
            SECRET_KEY="test",
            SQLALCHEMY_DATABASE_URI="sqlite:///:memory:",
            SQLALCHEMY_TRACK_MODIFICATIONS=False,
            TESTING=True,
            STORE_NAME="TEST MART",
            PROMO_PRICING="PER_LINE",
        )
        db.init_app(cls.app)
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        from cstore import models  # noqa: F401
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        db.session.query(SalesLogEntry).delete()
        db.session.query(CartLine).delete()
        db.session.query(CheckoutTransaction).delete()
        db.session.query(MembershipCard).delete()
        db.session.query(Customer).delete()
        db.session.query(Product).delete()
        db.session.commit()

        self.sandwich = products_service.create_product(
            name="Chicken Sandwich", price_cents=8500, product_code="F-001", quantity=5,
            expiration_date=datetime(2030, 1, 1).date(),
        )
        self.water = products_service.create_product(
            name="Bottled Water", price_cents=2500, product_code="B-001", quantity=20,
        )

    def _settled(self, customer=None, senior_id=None, paid=None):
        txn = checkout_service.open_transaction(customer.id if customer else None)
        checkout_service.add_to_cart(txn.id, self.sandwich.id, 2)
        checkout_service.add_to_cart(txn.id, self.water.id, 1)
        checkout_service.calculate_totals(txn.id, senior_id=senior_id)
        checkout_service.settle(txn.id, paid if paid is not None else txn.amount_due_cents, "CASH")
        return txn

    def test_receipt_lists_lines_and_totals(self):
        txn = self._settled(paid=20000)
        text = render_receipt(txn)

        self.assertIn("TEST MART", text)
        self.assertIn("Customer: Guest", text)
        self.assertIn("2 x Chicken Sandwich @ ₱85.00 = ₱170.00", text)
        self.assertIn("1 x Bottled Water @ ₱25.00 = ₱25.00", text)
        self.assertIn("Subtotal: ₱195.00", text)
        self.assertIn("TOTAL DUE: ₱195.00", text)
        self.assertIn("CHANGE: ₱5.00", text)
        self.assertNotIn("Senior Discount", text)
        self.assertNotIn("MEMBERSHIP POINTS", text)

    def test_senior_receipt_shows_discount(self):
        customer = customers_service.register_customer("Lola", "Basyang")
        txn = self._settled(customer=customer, senior_id="SRC-0420")
        text = render_receipt(txn, store_name="BRANCH 2")

        self.assertIn("BRANCH 2", text)
        self.assertIn("Customer: Lola Basyang", text)
        self.assertIn("Status: Senior/PWD", text)
        self.assertIn("Senior Discount: -₱39.00", text)
        self.assertIn("TOTAL DUE: ₱156.00", text)

    def test_member_receipt_shows_points_block(self):
        customer = customers_service.register_customer("Maria", "Clara")
        card = customers_service.issue_membership_card(customer.id)
        card.points_balance = 10
        db.session.commit()

        txn = self._settled(customer=customer)
        card.points_balance = 0
        db.session.commit()
        text = render_receipt(txn)

        self.assertIn("MEMBERSHIP POINTS", text)
        self.assertIn(f"Card: {card.card_number}", text)
        self.assertIn("Points Earned: +3", text)
        self.assertIn("Total Points: 13", text)

    def test_totals_summary_before_payment(self):
        txn = checkout_service.open_transaction()
        checkout_service.add_to_cart(txn.id, self.water.id, 4)
        checkout_service.calculate_totals(txn.id)

        summary = render_totals(txn)
        self.assertIn("Subtotal: ₱100.00", summary)
        self.assertIn("VAT (12% included): ₱10.71", summary)
        self.assertIn("Total Due: ₱100.00", summary)

    def test_sales_log_line_format(self):
        customer = customers_service.register_customer("Ana", "Reyes")
        txn = self._settled(customer=customer)
        txn.settled_at = datetime(2025, 3, 14, 9, 5, 7)

        self.assertEqual(sales_log_line(txn), "2025-03-14 09:05:07,DLSUser-001,195.00,CASH")


if __name__ == "__main__":
    unittest.main()
