"""Pydantic schemas for reference value endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ReferenceCreate(BaseModel):
    category: str = Field(..., min_length=1, max_length=50)
    code: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    sort_order: int = 0


class ReferenceUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True


class ReferenceResponse(BaseModel):
    id: int
    category: str
    code: str
    name: str
    description: Optional[str] = None
    sort_order: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ToggleResponse(BaseModel):
    id: int
    is_active: bool
