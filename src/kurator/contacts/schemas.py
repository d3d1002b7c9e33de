"""Pydantic schemas for contact endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ContactCreate(BaseModel):
    block_id: int
    full_name: str = Field(..., min_length=1, max_length=500)
    organization_id: Optional[int] = None
    position: Optional[str] = Field(None, max_length=255)
    influence_status_id: Optional[int] = None
    influence_type_id: Optional[int] = None
    usefulness_description: Optional[str] = None
    communication_channel_id: Optional[int] = None
    contact_source_id: Optional[int] = None
    next_touch_date: Optional[datetime] = None
    notes: Optional[str] = None


class ContactUpdate(BaseModel):
    """Partial update. Fields left out of the body keep their value,
    except ``organization_id``, which is always written."""

    organization_id: Optional[int] = None
    position: Optional[str] = Field(None, max_length=255)
    influence_status_id: Optional[int] = None
    influence_type_id: Optional[int] = None
    usefulness_description: Optional[str] = None
    communication_channel_id: Optional[int] = None
    contact_source_id: Optional[int] = None
    next_touch_date: Optional[datetime] = None
    notes: Optional[str] = None


class ContactSummary(BaseModel):
    id: int
    contact_code: str
    block_id: int
    full_name: str
    organization_id: Optional[int] = None
    position: Optional[str] = None
    influence_status_id: Optional[int] = None
    influence_type_id: Optional[int] = None
    last_interaction_date: Optional[datetime] = None
    next_touch_date: Optional[datetime] = None
    is_overdue: bool = False
    responsible_curator_id: int
    updated_at: datetime


class ContactResponse(ContactSummary):
    usefulness_description: Optional[str] = None
    communication_channel_id: Optional[int] = None
    contact_source_id: Optional[int] = None
    notes: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_by: int


class StatusHistoryResponse(BaseModel):
    id: int
    contact_id: int
    previous_status: str
    new_status: str
    changed_by: int
    changed_at: datetime

    model_config = {"from_attributes": True}
