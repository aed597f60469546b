# app/schemas/catalog/upload_schemas.py

from pydantic import BaseModel, ConfigDict
from typing import List
from datetime import datetime


class QuantityChangeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: int
    size: str
    old_quantity: int
    new_quantity: int
    size_added: bool


class BulkUploadResult(BaseModel):
    upload_id: str
    file_name: str
    inserted: int
    updated: int
    quantity_changes: int


class UploadBatchOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    upload_id: str
    file_name: str
    file_hash: str
    product_ids: List[int]
    updated_products: int
    quantity_changes: List[QuantityChangeOut]
    uploaded_at: datetime


class RollbackResult(BaseModel):
    upload_id: str
    file_name: str
    deleted_products: int
    reverted_changes: int
