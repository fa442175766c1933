# FILE: clinic/schemas/pharmacy.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: Optional[str] = None
    type: str = "Disease"
    color: Optional[str] = Field(default=None, max_length=20)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    description: Optional[str] = None
    type: Optional[str] = None
    color: Optional[str] = Field(default=None, max_length=20)


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    type: str
    color: Optional[str] = None


class MedicineBase(BaseModel):
    generic_name: Optional[str] = None
    manufacturer: Optional[str] = None
    type: Optional[str] = None
    strength: Optional[str] = None
    unit: Optional[str] = None
    reorder_level: Optional[int] = Field(default=None, ge=0)
    purchase_price: Optional[Decimal] = Field(default=None, ge=0)
    selling_price: Optional[Decimal] = Field(default=None, ge=0)
    mrp: Optional[Decimal] = Field(default=None, ge=0)
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    barcode: Optional[str] = None
    category_ids: Optional[List[int]] = None

    @field_validator("barcode")
    @classmethod
    def _blank_barcode(cls, v: Optional[str]):
        # blank barcodes would collide on the unique index
        v = (v or "").strip()
        return v or None


class MedicineCreate(MedicineBase):
    name: str = Field(min_length=1, max_length=191)
    current_stock: int = Field(default=0, ge=0)


class MedicineBulkIn(BaseModel):
    # rows stay raw so that each one is validated and reported on its own
    medicines: List[Dict[str, Any]] = Field(default_factory=list)


class MedicineUpdate(MedicineBase):
    name: Optional[str] = Field(default=None, min_length=1, max_length=191)


class StockAdjustIn(BaseModel):
    type: Literal["IN", "OUT", "ADJUSTMENT"]
    quantity: int = Field(ge=0)
    reason: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = None


class MedicineOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    generic_name: Optional[str] = None
    manufacturer: Optional[str] = None
    type: Optional[str] = None
    strength: Optional[str] = None
    unit: Optional[str] = None
    current_stock: int
    reorder_level: int
    purchase_price: Optional[Decimal] = None
    selling_price: Optional[Decimal] = None
    mrp: Optional[Decimal] = None
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    barcode: Optional[str] = None
    categories: List[CategoryOut] = []
    created_at: datetime


class StockTransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    medicine_id: int
    type: str
    quantity: int
    balance_after: int
    reason: Optional[str] = None
    reference_id: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime
