"""Pydantic schemas for interaction endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class InteractionCreate(BaseModel):
    contact_id: int
    interaction_date: Optional[datetime] = None
    interaction_type_id: Optional[int] = None
    result_id: Optional[int] = None
    comment: Optional[str] = None
    # e.g. '{"newStatus": "2"}'
    status_change_json: Optional[str] = None
    attachments_json: Optional[str] = None
    next_touch_date: Optional[datetime] = None


class InteractionUpdate(BaseModel):
    interaction_date: Optional[datetime] = None
    interaction_type_id: Optional[int] = None
    result_id: Optional[int] = None
    comment: Optional[str] = None
    status_change_json: Optional[str] = None
    attachments_json: Optional[str] = None
    next_touch_date: Optional[datetime] = None


class InteractionResponse(BaseModel):
    id: int
    contact_id: int
    interaction_date: datetime
    interaction_type_id: Optional[int] = None
    result_id: Optional[int] = None
    curator_id: int
    comment: Optional[str] = None
    status_change_json: Optional[str] = None
    attachments_json: Optional[str] = None
    next_touch_date: Optional[datetime] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    updated_by: int
