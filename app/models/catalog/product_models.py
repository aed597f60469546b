from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, Index, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship
from app.core.db import Base
from app.models.base.mixins import TimestampMixin


class Product(Base, TimestampMixin):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, index=True)
    category = Column(String(100), nullable=False, index=True)
    brand = Column(String(100), nullable=False, default="")
    description = Column(String(1000), nullable=False, default="")
    barcode = Column(String(100), nullable=True, index=True)
    hsn_sac = Column(String(20), nullable=False, default="")
    gst = Column(Numeric(5, 2), nullable=True)
    wholesale_price = Column(Numeric(12, 2), nullable=False)
    retail_price = Column(Numeric(12, 2), nullable=False)

    sizes = relationship(
        "ProductSize",
        back_populates="product",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ProductSize.position",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_product_identity", "name", "category", "brand"),
        CheckConstraint("wholesale_price >= 0", name="ck_product_wholesale_price_non_negative"),
        CheckConstraint("retail_price >= 0", name="ck_product_retail_price_non_negative"),
    )

    @property
    def total_quantity(self) -> int:
        return sum(s.quantity for s in self.sizes)

    def find_size(self, label: str):
        return next((s for s in self.sizes if s.size == label), None)

    def __repr__(self):
        return f"<Product id={self.id} name={self.name} category={self.category}>"


class ProductSize(Base):
    __tablename__ = "product_sizes"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    size = Column(String(50), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    position = Column(Integer, nullable=False, default=0)

    product = relationship("Product", back_populates="sizes")

    __table_args__ = (
        UniqueConstraint("product_id", "size", name="uq_product_size_label"),
        CheckConstraint("quantity >= 0", name="ck_product_size_quantity_non_negative"),
    )

    def __repr__(self):
        return f"<ProductSize product_id={self.product_id} size={self.size} qty={self.quantity}>"
