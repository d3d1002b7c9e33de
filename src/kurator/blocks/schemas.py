"""Pydantic schemas for block endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from kurator.blocks.models import BlockStatus, CuratorType


class BlockCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    code: str = Field(..., min_length=1, max_length=20, pattern=r"^[A-Z0-9]+$")
    description: Optional[str] = None
    status: BlockStatus = BlockStatus.ACTIVE


class BlockUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    status: BlockStatus = BlockStatus.ACTIVE


class CuratorAssign(BaseModel):
    user_id: int
    curator_type: CuratorType


class BlockCuratorResponse(BaseModel):
    id: int
    user_id: int
    user_login: str
    curator_type: CuratorType
    assigned_at: datetime


class BlockResponse(BaseModel):
    id: int
    name: str
    code: str
    description: Optional[str] = None
    status: BlockStatus
    curators: list[BlockCuratorResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
