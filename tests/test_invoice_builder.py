from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

from app.models.enums.payment_method import PaymentMethod
from app.utils.invoice_builder import (
    ProductTaxInfo,
    build_gst_breakup,
    build_invoice_data,
    build_invoice_item,
)


def _line(product_id, price, qty, name="Item"):
    return SimpleNamespace(product_id=product_id, price=Decimal(price), qty=qty, product_name=name)


def _order(items, discount="0"):
    return SimpleNamespace(
        id=7,
        date=datetime(2024, 5, 1, 10, 30, tzinfo=timezone.utc),
        items=items,
        discount=Decimal(discount),
        customer_phone="9876543210",
        payment_method=PaymentMethod.UPI,
        notes="",
    )


def test_item_splits_tax_inclusive_price():
    item = build_invoice_item(Decimal("118"), 2, Decimal("18"))

    assert item.unit_gst_amount == Decimal("21.24")
    assert item.unit_price_excl == Decimal("96.76")
    assert item.line_base_amount == Decimal("193.52")
    assert item.line_gst_amount == Decimal("42.48")
    assert item.line_total == Decimal("236.00")


def test_item_rounds_per_unit_before_multiplying():
    # 10.05 at 5% is 0.5025 per unit; three units must show 1.50, not 1.51
    item = build_invoice_item(Decimal("10.05"), 3, Decimal("5"))

    assert item.unit_gst_amount == Decimal("0.50")
    assert item.unit_price_excl == Decimal("9.55")
    assert item.line_gst_amount == Decimal("1.50")
    assert item.line_base_amount == Decimal("28.65")
    assert item.line_total == Decimal("30.15")


def test_zero_rate_item_has_no_tax():
    item = build_invoice_item(Decimal("50"), 1, Decimal("0"))

    assert item.unit_gst_amount == Decimal("0.00")
    assert item.line_base_amount == Decimal("50.00")


def test_breakup_groups_by_rate_in_ascending_order():
    items = [
        build_invoice_item(Decimal("118"), 1, Decimal("18")),
        build_invoice_item(Decimal("105"), 1, Decimal("5")),
        build_invoice_item(Decimal("118"), 1, Decimal("18")),
    ]

    breakup = build_gst_breakup(items)

    assert [b.rate for b in breakup] == [Decimal("5"), Decimal("18")]
    assert [b.amount for b in breakup] == [Decimal("5.25"), Decimal("42.48")]


def test_invoice_totals_apply_discount_once():
    order = _order(
        [_line(1, "118", 2), _line(2, "10.05", 3), _line(3, "50", 1)],
        discount="20",
    )
    products = {
        1: ProductTaxInfo(1, "Runner", "6404", Decimal("18")),
        2: ProductTaxInfo(2, "Socks", "6115", Decimal("5")),
        3: ProductTaxInfo(3, "Bottle", "", None),
    }

    data = build_invoice_data(order, products, "Test Sports")

    assert data.shop.name == "Test Sports"
    assert data.invoice.id == "7"
    assert data.invoice.payment_method == "UPI"
    assert data.totals.base_amount == Decimal("272.17")
    assert data.totals.gst_amount == Decimal("43.98")
    assert data.totals.discount == Decimal("20.00")
    assert data.totals.grand_total == Decimal("296.15")
    assert [b.rate for b in data.gst_breakup] == [Decimal("0"), Decimal("5"), Decimal("18")]
    assert [i.hsn_sac for i in data.items] == ["6404", "6115", ""]


def test_invoice_falls_back_to_line_snapshot_for_missing_product():
    order = _order([_line(None, "100", 1, name="Old Runner")])

    data = build_invoice_data(order, {}, "Test Sports")

    item = data.items[0]
    assert item.name == "Old Runner"
    assert item.product_id == ""
    assert item.gst_rate == Decimal("0")
    assert data.totals.grand_total == Decimal("100.00")
    assert data.invoice.notes is None
