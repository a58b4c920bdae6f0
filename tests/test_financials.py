"""Tests for the shared financial derivation."""

from types import SimpleNamespace

import pytest

from services.financials import (
    build_line_items, cash_change, compute_job_financials, line_total, recommended_deposit,
)


def make_job(**overrides):
    fields = {
        "id": "JOB-TEST",
        "measurements": [],
        "selected_products": [],
        "quotation": 0.0,
        "deposit": 0.0,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestLineItems:
    """Line items come from measurement-attached products, then selected products."""

    def test_measurement_products_count_once_each(self):
        items = build_line_items(
            [
                {"window_id": "W1", "product_name": "Roller Blind", "product_price": 100},
                {"window_id": "W2", "product_name": "Roller Blind", "product_price": 150},
            ],
            [],
        )
        assert [i.description for i in items] == ["Roller Blind (W1)", "Roller Blind (W2)"]
        assert all(i.quantity == 1 for i in items)
        assert all(i.source == "measurement" for i in items)

    def test_measurements_without_product_are_skipped(self):
        items = build_line_items([{"window_id": "W1", "width": 100, "height": 120}], [])
        assert items == []

    def test_selected_products_multiply_quantity(self):
        items = build_line_items([], [{"product_name": "Shutter", "price": 280, "quantity": 3}])
        assert len(items) == 1
        assert items[0].total == 840.0
        assert items[0].source == "product"

    def test_order_is_measurements_then_products(self):
        items = build_line_items(
            [{"window_id": "W1", "product_name": "Roman Blind", "product_price": 160}],
            [{"product_name": "Shutter", "price": 280, "quantity": 1}],
        )
        assert [i.source for i in items] == ["measurement", "product"]

    def test_line_total_defaults_quantity_to_one(self):
        assert line_total(45.5, None) == 45.5
        assert line_total("12.25", 2) == 24.5


class TestComputeJobFinancials:
    """Subtotal, deposit and balance derived in one place."""

    def test_two_windows_subtotal_and_deposit(self):
        job = make_job(measurements=[
            {"window_id": "W1", "product_name": "Roller Blind", "product_price": 100},
            {"window_id": "W2", "product_name": "Roller Blind", "product_price": 150},
        ])
        financials = compute_job_financials(job)
        assert financials.computed_subtotal == 250.0
        assert financials.subtotal == 250.0
        assert financials.recommended_deposit == 75.0
        assert financials.balance == 250.0

    def test_falls_back_to_quotation_without_products(self):
        job = make_job(quotation=1000.0, deposit=300.0)
        financials = compute_job_financials(job)
        assert financials.computed_subtotal == 0.0
        assert financials.subtotal == 1000.0
        assert financials.balance == 700.0

    def test_computed_subtotal_wins_over_quotation(self):
        job = make_job(
            quotation=999.0,
            selected_products=[{"product_name": "Venetian", "price": 65, "quantity": 2}],
        )
        assert compute_job_financials(job).subtotal == 130.0

    def test_balance_never_negative(self):
        job = make_job(quotation=100.0, deposit=150.0)
        assert compute_job_financials(job).balance == 0.0

    def test_missing_amounts_are_zero(self):
        job = make_job(quotation=None, deposit=None, measurements=None, selected_products=None)
        financials = compute_job_financials(job)
        assert financials.subtotal == 0.0
        assert financials.balance == 0.0
        assert financials.line_items == []

    def test_numeric_strings_are_accepted(self):
        job = make_job(quotation="500", deposit="150.50")
        financials = compute_job_financials(job)
        assert financials.balance == 349.5


class TestHelpers:

    def test_recommended_deposit_is_thirty_percent(self):
        assert recommended_deposit(1000.0) == 300.0
        assert recommended_deposit(0.0) == 0.0

    @pytest.mark.parametrize("received,due,expected", [
        (750.0, 700.0, 50.0),
        (700.0, 700.0, 0.0),
        (20.0, 19.99, 0.01),
    ])
    def test_cash_change(self, received, due, expected):
        assert cash_change(received, due) == expected
