# app/schemas/catalog/product_schemas.py

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from decimal import Decimal
from datetime import datetime

from app.schemas.common_schemas import Pagination


class SizeQuantity(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, from_attributes=True)

    size: str = Field(min_length=1, max_length=50)
    quantity: int = Field(ge=0)


def _unique_sizes(sizes: Optional[List[SizeQuantity]]) -> Optional[List[SizeQuantity]]:
    if sizes is None:
        return sizes
    labels = [s.size for s in sizes]
    duplicates = sorted({label for label in labels if labels.count(label) > 1})
    if duplicates:
        raise ValueError(f"Duplicate size labels: {', '.join(duplicates)}")
    return sizes


class ProductCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    category: str = Field(min_length=1, max_length=100)
    wholesale_price: Decimal = Field(ge=0)
    retail_price: Decimal = Field(ge=0)
    sizes: List[SizeQuantity] = Field(min_length=1, description="At least one size must be provided")

    description: str = ""
    brand: str = ""
    barcode: Optional[str] = None
    hsn_sac: str = ""
    gst: Optional[Decimal] = Field(default=None, ge=0, le=100)

    @field_validator("sizes")
    @classmethod
    def check_sizes(cls, v):
        return _unique_sizes(v)


class ProductUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    wholesale_price: Optional[Decimal] = Field(default=None, ge=0)
    retail_price: Optional[Decimal] = Field(default=None, ge=0)
    sizes: Optional[List[SizeQuantity]] = Field(default=None, min_length=1)

    description: Optional[str] = None
    brand: Optional[str] = None
    barcode: Optional[str] = None
    hsn_sac: Optional[str] = None
    gst: Optional[Decimal] = Field(default=None, ge=0, le=100)

    @field_validator("sizes")
    @classmethod
    def check_sizes(cls, v):
        return _unique_sizes(v)


class ProductOut(BaseModel):
    id: int
    name: str
    category: str
    brand: str
    description: str
    barcode: Optional[str]
    hsn_sac: str
    gst: Optional[Decimal]
    wholesale_price: Decimal
    retail_price: Decimal
    sizes: List[SizeQuantity]
    quantity: int

    created_at: datetime
    updated_at: Optional[datetime]


class ProductListData(BaseModel):
    products: List[ProductOut]
    pagination: Pagination
