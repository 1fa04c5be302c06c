# File: app/schemas/product.py

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field

class ProductCreate(BaseModel):
    product_name: str = Field(min_length=1, max_length=200)
    version: Optional[str] = Field(default=None, max_length=60)
    license_info: Optional[str] = Field(default=None, max_length=500)
    eos_date: Optional[date] = None
    monitoring_solution: bool = False
    patch_history: Optional[str] = None

class ProductUpdate(BaseModel):
    product_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    version: Optional[str] = Field(default=None, max_length=60)
    license_info: Optional[str] = Field(default=None, max_length=500)
    eos_date: Optional[date] = None
    monitoring_solution: Optional[bool] = None
    patch_history: Optional[str] = None

class ProductOut(BaseModel):
    id: int
    user_master_id: int
    user_master_name: Optional[str] = None
    product_name: str
    version: Optional[str] = None
    license_info: Optional[str] = None
    eos_date: Optional[date] = None
    monitoring_solution: bool
    patch_history: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
