"""Tests for status transitions and stock checks."""

from types import SimpleNamespace

import pytest

from facturahn.services.fiscal_engine import LineItem
from facturahn.services.inventory import (
    ORDER_ADD,
    ORDER_DELETE,
    can_transition,
    required_quantities,
    stock_shortages,
    validate_inventory_order,
)


def _product(description="Martillo", stock=5, is_service=False):
    return SimpleNamespace(description=description, quantity_in_stock=stock, is_service=is_service)


PRODUCTS = {
    "p1": _product("Martillo", 5),
    "p2": _product("Clavos", 100),
    "s1": _product("Instalación", 0, is_service=True),
}


@pytest.mark.parametrize(
    "current,new,allowed",
    [
        ("pending", "paid", True),
        ("pending", "cancelled", True),
        ("paid", "pending", True),
        ("paid", "cancelled", True),
        ("cancelled", "pending", False),
        ("cancelled", "paid", False),
        ("pending", "pending", False),
        ("pending", "archived", False),
    ],
)
def test_can_transition(current, new, allowed):
    assert can_transition(current, new) is allowed


class TestStock:
    def test_required_quantities_sum_repeated_products(self):
        items = [
            LineItem("Martillo", 2, 50, product_id="p1"),
            LineItem("Martillo", 1, 50, product_id="p1"),
            LineItem("Instalación", 1, 100, is_service=True, product_id="s1"),
            LineItem("Flete", 1, 20),
        ]

        assert required_quantities(items) == {"p1": 3}

    def test_no_shortage_when_stock_covers(self):
        items = [LineItem("Martillo", 5, 50, product_id="p1")]

        assert stock_shortages(items, PRODUCTS) == []

    def test_shortage_reports_requested_and_available(self):
        items = [LineItem("Martillo", 6, 50, product_id="p1")]

        shortage, = stock_shortages(items, PRODUCTS)

        assert shortage.product_id == "p1"
        assert shortage.requested == 6
        assert shortage.available == 5

    def test_missing_product_is_a_shortage(self):
        items = [LineItem("Tornillo", 1, 2, product_id="gone")]

        shortage, = stock_shortages(items, PRODUCTS)

        assert shortage.available == 0


class TestInventoryOrder:
    def test_valid_add(self):
        rows = [{"product_id": "p1", "quantity_delta": 10}]

        assert validate_inventory_order(ORDER_ADD, rows, PRODUCTS) == []

    def test_unknown_type(self):
        assert validate_inventory_order("MOVE", [{"product_id": "p1"}], PRODUCTS)

    def test_needs_rows(self):
        assert validate_inventory_order(ORDER_ADD, [], PRODUCTS) == [
            "Debe incluir al menos un producto"
        ]

    def test_delete_cannot_exceed_stock(self):
        rows = [{"product_id": "p1", "quantity_delta": 6}]

        errors = validate_inventory_order(ORDER_DELETE, rows, PRODUCTS)

        assert errors == ["Martillo: la cantidad no puede ser mayor al stock"]

    def test_reports_every_bad_row(self):
        rows = [
            {"product_id": "s1", "quantity_delta": 1},
            {"product_id": "p2", "quantity_delta": 0},
            {"product_id": "nope", "quantity_delta": 1},
        ]

        assert len(validate_inventory_order(ORDER_ADD, rows, PRODUCTS)) == 3

    @pytest.mark.parametrize("delta", [float("inf"), float("nan"), "3"])
    def test_delta_must_be_a_finite_number(self, delta):
        rows = [{"product_id": "p1", "quantity_delta": delta}]

        errors = validate_inventory_order(ORDER_ADD, rows, PRODUCTS)

        assert errors == ["Martillo: la cantidad debe ser mayor que cero"]
