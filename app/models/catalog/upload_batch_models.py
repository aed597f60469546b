from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from app.core.db import Base
from app.models.base.mixins import utc_now


class UploadBatch(Base):
    __tablename__ = "upload_batches"

    id = Column(Integer, primary_key=True)
    upload_id = Column(String(36), nullable=False, unique=True, index=True)
    file_name = Column(String(255), nullable=False)
    file_hash = Column(String(64), nullable=False, unique=True, index=True)
    product_ids = Column(JSON, nullable=False, default=list)
    updated_products = Column(Integer, nullable=False, default=0)
    uploaded_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)

    quantity_changes = relationship(
        "QuantityChange",
        back_populates="batch",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="QuantityChange.id",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<UploadBatch upload_id={self.upload_id} file={self.file_name}>"


class QuantityChange(Base):
    __tablename__ = "upload_batch_quantity_changes"

    id = Column(Integer, primary_key=True)
    batch_id = Column(Integer, ForeignKey("upload_batches.id", ondelete="CASCADE"), nullable=False, index=True)
    # plain id, the product may be gone by the time the batch is rolled back
    product_id = Column(Integer, nullable=False, index=True)
    size = Column(String(50), nullable=False)
    old_quantity = Column(Integer, nullable=False)
    new_quantity = Column(Integer, nullable=False)
    size_added = Column(Boolean, nullable=False, default=False)

    batch = relationship("UploadBatch", back_populates="quantity_changes")

    def __repr__(self):
        return (
            f"<QuantityChange product_id={self.product_id} size={self.size} "
            f"{self.old_quantity}->{self.new_quantity}>"
        )
