from decimal import Decimal

from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, Enum, Index, CheckConstraint
from sqlalchemy.orm import relationship
from app.core.db import Base
from app.models.base.mixins import TimestampMixin
from app.models.enums.payment_status import PaymentStatus
from app.models.enums.payment_method import PaymentMethod


class Order(Base, TimestampMixin):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    date = Column(DateTime(timezone=True), nullable=False, index=True)
    total = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    profit = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    discount = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))

    customer_phone = Column(String(20), nullable=False, default="", index=True)
    payment_status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING, index=True)
    payment_method = Column(Enum(PaymentMethod), nullable=False, default=PaymentMethod.CASH)
    notes = Column(String(1000), nullable=False, default="")

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_order_status_date", "payment_status", "date"),
        CheckConstraint("discount >= 0", name="ck_order_discount_non_negative"),
    )

    @property
    def items_total(self) -> Decimal:
        return sum((i.subtotal for i in self.items), Decimal("0.00"))

    def __repr__(self):
        return f"<Order id={self.id} status={self.payment_status} total={self.total}>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    size = Column(String(50), nullable=False)
    qty = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    subtotal = Column(Numeric(14, 2), nullable=False)

    # snapshots taken at placement time
    product_name = Column(String(255), nullable=False, default="")
    product_category = Column(String(100), nullable=False, default="")
    wholesale_price = Column(Numeric(12, 2), nullable=False)

    order = relationship("Order", back_populates="items")

    __table_args__ = (
        CheckConstraint("qty > 0", name="ck_order_item_qty_positive"),
        CheckConstraint("price >= 0", name="ck_order_item_price_non_negative"),
        CheckConstraint("subtotal >= 0", name="ck_order_item_subtotal_non_negative"),
    )

    def __repr__(self):
        return f"<OrderItem id={self.id} product_id={self.product_id} size={self.size} qty={self.qty}>"
