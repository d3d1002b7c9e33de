"""Pydantic schemas for dashboard endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class RecentInteractionSummary(BaseModel):
    id: int
    contact_id: int
    contact_code: str
    contact_name: str
    interaction_date: datetime
    interaction_type_id: Optional[int] = None
    result_id: Optional[int] = None


class AttentionContact(BaseModel):
    id: int
    contact_code: str
    full_name: str
    next_touch_date: Optional[datetime] = None
    days_overdue: int
    influence_status_id: Optional[int] = None


class CuratorDashboard(BaseModel):
    total_contacts: int
    interactions_last_month: int
    average_interaction_interval: float
    overdue_contacts: int
    recent_interactions: list[RecentInteractionSummary]
    contacts_requiring_attention: list[AttentionContact]
    contacts_by_influence_status: dict[str, int]
    interactions_by_type: dict[str, int]


class MonthDelta(BaseModel):
    current: int
    previous: int
    change: int
    percent: Optional[float] = None


class AuditLogSummary(BaseModel):
    id: int
    user_login: str
    action: str
    entity_type: str
    entity_id: str
    timestamp: datetime


class AdminDashboard(BaseModel):
    total_contacts: int
    total_interactions: int
    total_blocks: int
    total_users: int
    new_contacts_last_month: int
    interactions_last_month: int
    new_contacts_delta: MonthDelta
    interactions_delta: MonthDelta
    contacts_by_block: dict[str, int]
    contacts_by_influence_status: dict[str, int]
    contacts_by_influence_type: dict[str, int]
    interactions_by_block: dict[str, int]
    top_curators_by_activity: dict[str, int]
    status_change_dynamics: dict[str, int]
    recent_audit_logs: list[AuditLogSummary]


class InteractionStatistics(BaseModel):
    from_date: datetime
    to_date: datetime
    total_interactions: int
    unique_contacts: int
    by_type: dict[str, int]
    by_result: dict[str, int]
