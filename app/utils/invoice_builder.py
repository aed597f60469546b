# app/utils/invoice_builder.py
"""
Tax-inclusive invoice computation.

Order prices are GST inclusive. Each unit price is split into a GST part and
a base part, both rounded to two places per unit, and only then multiplied by
the quantity. Rounding per unit first is what the printed invoices have always
shown, so line totals must not be derived from the unrounded line amount.
The order discount is taken off once, on the grand total.
"""
from decimal import Decimal
from typing import NamedTuple, Optional

from app.models.orders.order_models import Order
from app.schemas.orders.invoice_schemas import (
    GstBreakup,
    InvoiceData,
    InvoiceHeader,
    InvoiceItem,
    InvoiceShop,
    InvoiceTotals,
)
from app.utils.decimal_utils import ZERO, to_decimal as r2

HUNDRED = Decimal("100")


class ProductTaxInfo(NamedTuple):
    id: int
    name: str
    hsn_sac: str
    gst: Optional[Decimal]


def build_invoice_item(
    price: Decimal,
    qty: int,
    rate: Decimal,
    *,
    product_id: str = "",
    name: str = "",
    hsn_sac: str = "",
) -> InvoiceItem:
    unit_gst = r2(price * rate / HUNDRED)
    unit_base = r2(price - unit_gst)

    return InvoiceItem(
        product_id=product_id,
        name=name,
        hsn_sac=hsn_sac,
        gst_rate=rate,
        qty=qty,
        unit_price_incl=r2(price),
        unit_gst_amount=unit_gst,
        unit_price_excl=unit_base,
        line_base_amount=r2(unit_base * qty),
        line_gst_amount=r2(unit_gst * qty),
        line_total=r2(price * qty),
    )


def build_gst_breakup(items: list[InvoiceItem]) -> list[GstBreakup]:
    buckets: dict[Decimal, Decimal] = {}
    for item in items:
        buckets[item.gst_rate] = r2(buckets.get(item.gst_rate, ZERO) + item.line_gst_amount)

    return [
        GstBreakup(rate=rate, amount=r2(amount))
        for rate, amount in sorted(buckets.items())
    ]


def build_invoice_data(
    order: Order,
    products: dict[int, ProductTaxInfo],
    shop_name: str,
) -> InvoiceData:
    items: list[InvoiceItem] = []
    for line in order.items:
        info = products.get(line.product_id) if line.product_id is not None else None
        rate = info.gst if info is not None and info.gst is not None else ZERO

        items.append(
            build_invoice_item(
                Decimal(line.price),
                line.qty,
                Decimal(rate),
                product_id=str(line.product_id or ""),
                name=info.name if info is not None else line.product_name,
                hsn_sac=(info.hsn_sac if info is not None else "") or "",
            )
        )

    base_amount = r2(sum((i.line_base_amount for i in items), ZERO))
    gst_amount = r2(sum((i.line_gst_amount for i in items), ZERO))
    discount = r2(order.discount)
    grand_total = r2(base_amount + gst_amount - discount)

    payment_method = order.payment_method.value if order.payment_method else None

    return InvoiceData(
        shop=InvoiceShop(name=shop_name),
        invoice=InvoiceHeader(
            id=str(order.id),
            date=order.date,
            customer_phone=order.customer_phone or None,
            payment_method=payment_method,
            notes=order.notes or None,
            discount=discount,
        ),
        items=items,
        totals=InvoiceTotals(
            base_amount=base_amount,
            gst_amount=gst_amount,
            discount=discount,
            grand_total=grand_total,
        ),
        gst_breakup=build_gst_breakup(items),
    )
