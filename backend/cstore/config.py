# backend/cstore/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/cstore.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///cstore.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    STORE_NAME = os.environ.get("STORE_NAME", "DLSU CONVENIENCE STORE")

    # Staff-only endpoints compare the X-Staff-Code header against this value.
    # There is no built-in default: staff writes are refused until it is set.
    STAFF_ACCESS_CODE = os.environ.get("STAFF_ACCESS_CODE")

    # PER_LINE: best promotional sale is applied to each cart line when added.
    # NONE: list prices are charged and promotions are informational only.
    PROMO_PRICING = os.environ.get("PROMO_PRICING", "PER_LINE")

    # Money is integer cents, rates are basis points
    VAT_RATE_BPS = int(os.environ.get("VAT_RATE_BPS", "1200"))
    SENIOR_DISCOUNT_BPS = int(os.environ.get("SENIOR_DISCOUNT_BPS", "2000"))
    MEMBERSHIP_FEE_CENTS = int(os.environ.get("MEMBERSHIP_FEE_CENTS", "5000"))
    POINT_EARNING_DIVISOR_CENTS = int(os.environ.get("POINT_EARNING_DIVISOR_CENTS", "5000"))
    MEMBERSHIP_VALIDITY_YEARS = int(os.environ.get("MEMBERSHIP_VALIDITY_YEARS", "1"))

    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "5"))
    EXPIRY_WARNING_DAYS = int(os.environ.get("EXPIRY_WARNING_DAYS", "3"))
