"""
Promotional sale catalog: validation, best-sale resolution and sweeping.

Discount values are stored as basis points (PERCENTAGE) or cents (FIXED).
"""

from datetime import timedelta

import pytest

from cstore.errors import InvalidDiscount, NotFound
from cstore.models import PromotionalSale
from cstore.models.promotions import DISCOUNT_FIXED, DISCOUNT_PERCENTAGE
from cstore.services import promotions_service

from conftest import NOW


def test_category_percentage_beats_smaller_fixed_discount(product, make_sale):
    pct = make_sale("ALL-F", DISCOUNT_PERCENTAGE, 1000)   # 10% of 100.00 = 10.00
    make_sale("F-001", DISCOUNT_FIXED, 500)                # 5.00

    assert promotions_service.resolve_best_sale(product, NOW).id == pct.id
    price, sale = promotions_service.price_with_best_sale(product, NOW)
    assert (price, sale.id) == (9000, pct.id)


def test_resolution_is_idempotent(product, make_sale):
    make_sale("ALL-F", DISCOUNT_PERCENTAGE, 1500)
    make_sale("F-001", DISCOUNT_FIXED, 1200)

    first = promotions_service.resolve_best_sale(product, NOW)
    second = promotions_service.resolve_best_sale(product, NOW)
    assert first.id == second.id


def test_equal_discounts_keep_the_earlier_sale(product, make_sale):
    earlier = make_sale("F-001", DISCOUNT_FIXED, 1000)
    make_sale("ALL-F", DISCOUNT_PERCENTAGE, 1000)          # also 10.00

    assert promotions_service.resolve_best_sale(product, NOW).id == earlier.id


def test_sales_outside_window_or_inactive_or_other_category_are_ignored(product, make_sale):
    make_sale("ALL-F", DISCOUNT_PERCENTAGE, 5000, start_at=NOW + timedelta(hours=1))
    make_sale("ALL-F", DISCOUNT_PERCENTAGE, 5000, end_at=NOW - timedelta(seconds=1),
              start_at=NOW - timedelta(days=2))
    make_sale("ALL-F", DISCOUNT_PERCENTAGE, 5000, is_active=False)
    make_sale("ALL-B", DISCOUNT_PERCENTAGE, 5000)
    make_sale("F-002", DISCOUNT_FIXED, 5000)

    assert promotions_service.resolve_best_sale(product, NOW) is None
    assert promotions_service.discounted_price(product, NOW) == product.price_cents


def test_window_bounds_are_inclusive(product, make_sale):
    sale = make_sale("F-001", DISCOUNT_FIXED, 100, start_at=NOW, end_at=NOW + timedelta(hours=1))

    assert promotions_service.resolve_best_sale(product, NOW).id == sale.id
    assert promotions_service.resolve_best_sale(product, NOW + timedelta(hours=1)).id == sale.id


def test_fixed_discount_never_exceeds_price(make_product, make_sale):
    cheap = make_product("P-001", price_cents=550)
    make_sale("P-001", DISCOUNT_FIXED, 10000)

    assert promotions_service.discounted_price(cheap, NOW) == 0


@pytest.mark.parametrize("kind,value", [
    (DISCOUNT_PERCENTAGE, 0),
    (DISCOUNT_PERCENTAGE, 10001),
    (DISCOUNT_FIXED, -5),
    (DISCOUNT_FIXED, 12.5),
    ("BOGO", 100),
])
def test_add_sale_rejects_bad_discounts(db_session, kind, value):
    with pytest.raises(InvalidDiscount):
        promotions_service.add_sale("F-001", kind, value, NOW, NOW + timedelta(days=1))
    assert db_session.query(PromotionalSale).count() == 0


@pytest.mark.parametrize("target", ["ALL-Z", "F001", "", "ALL-"])
def test_add_sale_rejects_bad_targets(db_session, target):
    with pytest.raises(InvalidDiscount):
        promotions_service.add_sale(target, DISCOUNT_FIXED, 100, NOW, NOW + timedelta(days=1))


def test_add_sale_rejects_inverted_window(db_session):
    with pytest.raises(InvalidDiscount):
        promotions_service.add_sale("F-001", DISCOUNT_FIXED, 100, NOW, NOW - timedelta(minutes=1))


def test_update_validates_merged_terms(make_sale):
    sale = make_sale("ALL-F", DISCOUNT_FIXED, 20000)

    with pytest.raises(InvalidDiscount):
        promotions_service.update_sale(sale.id, {"discount_kind": DISCOUNT_PERCENTAGE})

    updated = promotions_service.update_sale(sale.id, {"discount_value": 300, "target": "F-001"})
    assert (updated.target, updated.discount_value) == ("F-001", 300)


@pytest.mark.parametrize("flag", ["false", "no", 0, None])
def test_is_active_must_be_a_boolean(make_sale, flag):
    with pytest.raises(InvalidDiscount):
        promotions_service.add_sale("F-001", DISCOUNT_FIXED, 100, NOW, NOW + timedelta(days=1), is_active=flag)

    sale = make_sale("F-001", DISCOUNT_FIXED, 100)
    with pytest.raises(InvalidDiscount):
        promotions_service.update_sale(sale.id, {"is_active": flag})
    assert promotions_service.get_sale(sale.id).is_active is True


def test_end_sale_keeps_it_but_stops_applying(product, make_sale):
    sale = make_sale("F-001", DISCOUNT_FIXED, 100)
    promotions_service.end_sale(sale.id)

    assert promotions_service.get_sale(sale.id).is_active is False
    assert promotions_service.resolve_best_sale(product, NOW) is None
    assert promotions_service.list_sales(active_only=True, as_of=NOW) == []


def test_delete_sale(make_sale):
    sale = make_sale("F-001", DISCOUNT_FIXED, 100)
    promotions_service.delete_sale(sale.id)

    with pytest.raises(NotFound):
        promotions_service.get_sale(sale.id)


def test_sweep_removes_only_ended_sales(make_sale):
    make_sale("F-001", DISCOUNT_FIXED, 100, start_at=NOW - timedelta(days=5), end_at=NOW - timedelta(days=1))
    current = make_sale("ALL-F", DISCOUNT_PERCENTAGE, 500)

    assert promotions_service.sweep_expired(NOW) == 1
    assert [s.id for s in promotions_service.list_sales()] == [current.id]


def test_sale_code_format(make_sale):
    sale = make_sale("F-001", DISCOUNT_FIXED, 100)
    assert sale.sale_code == f"SALE-{sale.id:04d}"
