# app/schemas/orders/invoice_schemas.py

from pydantic import BaseModel
from typing import List, Optional
from decimal import Decimal
from datetime import datetime


class InvoiceShop(BaseModel):
    name: str


class InvoiceHeader(BaseModel):
    id: str
    date: datetime
    customer_phone: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    discount: Decimal


class InvoiceItem(BaseModel):
    product_id: str
    name: str
    hsn_sac: str
    gst_rate: Decimal
    qty: int
    unit_price_incl: Decimal
    unit_gst_amount: Decimal
    unit_price_excl: Decimal
    line_base_amount: Decimal
    line_gst_amount: Decimal
    line_total: Decimal


class InvoiceTotals(BaseModel):
    base_amount: Decimal
    gst_amount: Decimal
    discount: Decimal
    grand_total: Decimal


class GstBreakup(BaseModel):
    rate: Decimal
    amount: Decimal


class InvoiceData(BaseModel):
    shop: InvoiceShop
    invoice: InvoiceHeader
    items: List[InvoiceItem]
    totals: InvoiceTotals
    gst_breakup: List[GstBreakup]
