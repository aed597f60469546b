# app/schemas/orders/order_schemas.py

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from decimal import Decimal
from datetime import datetime

from app.models.enums.payment_status import PaymentStatus
from app.models.enums.payment_method import PaymentMethod
from app.schemas.common_schemas import Pagination


# =====================================================
# INPUTS
# =====================================================
class OrderItemCreate(BaseModel):
    product_id: int
    size: Optional[str] = None
    qty: int = Field(gt=0)
    price: Decimal = Field(ge=0, description="Unit selling price, tax inclusive")


class OrderCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    # emptiness is checked by the service so it surfaces as a 400
    items: List[OrderItemCreate] = []
    customer_phone: Optional[str] = Field(default=None, max_length=20)
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: PaymentMethod = PaymentMethod.CASH
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    notes: str = Field(default="", max_length=1000)


class OrderUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    payment_status: Optional[PaymentStatus] = None
    customer_phone: Optional[str] = Field(default=None, max_length=20)
    payment_method: Optional[PaymentMethod] = None
    discount: Optional[Decimal] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=1000)


# =====================================================
# OUTPUTS
# =====================================================
class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: Optional[int]
    product_name: str
    product_category: str
    size: str
    qty: int
    price: Decimal
    subtotal: Decimal


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    date: datetime
    items: List[OrderItemOut]
    total: Decimal
    profit: Decimal
    discount: Decimal

    customer_phone: str
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    notes: str

    created_at: datetime
    updated_at: Optional[datetime]


class OrderAnalytics(BaseModel):
    total_orders: int
    total_revenue: Decimal
    total_profit: Decimal
    avg_order_price: Decimal


class OrderListData(BaseModel):
    orders: List[OrderOut]
    analytics: OrderAnalytics
    pagination: Pagination
