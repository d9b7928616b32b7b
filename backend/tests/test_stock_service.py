"""
Stock ledger: reservations come off the shelf immediately and go back
exactly once.
"""

from datetime import timedelta

import pytest

from cstore.errors import InsufficientStock, InvalidAmount, NotFound, ReservationError
from cstore.models.inventory import RESERVATION_CONSUMED, RESERVATION_RELEASED, RESERVATION_RESERVED
from cstore.services import stock_service

from conftest import TODAY


def test_reserve_takes_stock_off_the_shelf(product):
    line = stock_service.reserve(product.id, 4)

    assert line.status == RESERVATION_RESERVED
    assert line.quantity == 4
    assert product.quantity_on_hand == 6


def test_reserve_more_than_on_hand_fails_and_changes_nothing(make_product):
    product = make_product("G-001", quantity=3)

    with pytest.raises(InsufficientStock) as exc:
        stock_service.reserve(product.id, 5)

    assert exc.value.details["on_hand"] == 3
    assert product.quantity_on_hand == 3


@pytest.mark.parametrize("quantity", [0, -1, 1.5, True])
def test_reserve_rejects_non_positive_quantities(product, quantity):
    with pytest.raises(InvalidAmount):
        stock_service.reserve(product.id, quantity)
    assert product.quantity_on_hand == 10


def test_reserve_unknown_product(db_session):
    with pytest.raises(NotFound):
        stock_service.reserve(999, 1)


def test_interleaved_reserve_release_restores_stock(product):
    first = stock_service.reserve(product.id, 3)
    second = stock_service.reserve(product.id, 5)
    stock_service.release(first.id)
    third = stock_service.reserve(product.id, 2)
    stock_service.release(third.id)
    stock_service.release(second.id)

    assert product.quantity_on_hand == 10


def test_release_twice_is_rejected(product):
    line = stock_service.reserve(product.id, 2)
    stock_service.release(line.id)

    with pytest.raises(ReservationError):
        stock_service.release(line.id)
    assert line.status == RESERVATION_RELEASED
    assert product.quantity_on_hand == 10


def test_consumed_line_cannot_be_released(product):
    line = stock_service.reserve(product.id, 2)
    stock_service.consume(line.id)

    with pytest.raises(ReservationError):
        stock_service.release(line.id)
    assert line.status == RESERVATION_CONSUMED
    assert product.quantity_on_hand == 8


def test_change_reserved_quantity_moves_only_the_delta(product):
    line = stock_service.reserve(product.id, 2)

    stock_service.change_reserved_quantity(line.id, 7)
    assert product.quantity_on_hand == 3

    stock_service.change_reserved_quantity(line.id, 1)
    assert product.quantity_on_hand == 9
    assert line.quantity == 1

    with pytest.raises(InsufficientStock):
        stock_service.change_reserved_quantity(line.id, 11)
    assert line.quantity == 1
    assert product.quantity_on_hand == 9


def test_adjust_quantity_never_goes_negative(product):
    stock_service.adjust_quantity(product.id, 5)
    assert product.quantity_on_hand == 15

    with pytest.raises(InvalidAmount):
        stock_service.adjust_quantity(product.id, -16)
    assert product.quantity_on_hand == 15


def test_low_stock_is_sorted_by_code(make_product):
    make_product("G-010", quantity=1)
    make_product("B-002", quantity=5)
    make_product("B-001", quantity=6)
    make_product("G-002", quantity=0)

    codes = [p.product_code for p in stock_service.list_low_stock()]
    assert codes == ["B-002", "G-002", "G-010"]
    assert [p.product_code for p in stock_service.list_low_stock(threshold=0)] == ["G-002"]


def test_expiring_soon_and_removal(make_product):
    make_product("F-002", quantity=4, expiration_date=TODAY + timedelta(days=3))
    make_product("F-001", quantity=2, expiration_date=TODAY - timedelta(days=1))
    make_product("F-003", quantity=9, expiration_date=TODAY + timedelta(days=4))
    make_product("B-001", quantity=9)

    expiring = stock_service.list_expiring_soon(as_of=TODAY)
    assert [p.product_code for p in expiring] == ["F-001", "F-002"]

    pulled = stock_service.remove_expiring(as_of=TODAY)
    assert [p.product_code for p in pulled] == ["F-001", "F-002"]
    assert all(p.quantity_on_hand == 0 for p in pulled)
