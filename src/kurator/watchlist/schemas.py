"""Pydantic schemas for watchlist endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from kurator.watchlist.models import MonitoringFrequency, RiskLevel


class WatchlistCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    role_status: Optional[str] = Field(None, max_length=255)
    risk_sphere_id: Optional[int] = None
    threat_source: Optional[str] = None
    conflict_date: Optional[datetime] = None
    risk_level: RiskLevel = RiskLevel.LOW
    monitoring_frequency: MonitoringFrequency = MonitoringFrequency.MONTHLY
    last_check_date: Optional[datetime] = None
    next_check_date: Optional[datetime] = None
    dynamics_description: Optional[str] = None
    watch_owner_id: Optional[int] = None
    attachments_json: Optional[str] = None


class WatchlistUpdate(BaseModel):
    role_status: Optional[str] = Field(None, max_length=255)
    risk_sphere_id: Optional[int] = None
    threat_source: Optional[str] = None
    conflict_date: Optional[datetime] = None
    risk_level: Optional[RiskLevel] = None
    monitoring_frequency: Optional[MonitoringFrequency] = None
    last_check_date: Optional[datetime] = None
    next_check_date: Optional[datetime] = None
    dynamics_description: Optional[str] = None
    watch_owner_id: Optional[int] = None
    attachments_json: Optional[str] = None


class CheckRequest(BaseModel):
    next_check_date: Optional[datetime] = None
    dynamics_update: Optional[str] = None
    new_risk_level: Optional[RiskLevel] = None


class WatchlistResponse(BaseModel):
    id: int
    full_name: str
    role_status: Optional[str] = None
    risk_sphere_id: Optional[int] = None
    threat_source: Optional[str] = None
    conflict_date: Optional[datetime] = None
    risk_level: RiskLevel
    monitoring_frequency: MonitoringFrequency
    last_check_date: Optional[datetime] = None
    next_check_date: Optional[datetime] = None
    dynamics_description: Optional[str] = None
    watch_owner_id: Optional[int] = None
    attachments_json: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    updated_by: int

    model_config = {"from_attributes": True}


class WatchlistHistoryResponse(BaseModel):
    id: int
    watchlist_id: int
    old_risk_level: Optional[RiskLevel] = None
    new_risk_level: Optional[RiskLevel] = None
    changed_by: int
    changed_at: datetime
    comment: Optional[str] = None

    model_config = {"from_attributes": True}


class WatchlistStatistics(BaseModel):
    total: int
    requires_check: int
    by_risk_level: dict[str, int]
    by_risk_sphere: dict[int, int]
    by_monitoring_frequency: dict[str, int]
