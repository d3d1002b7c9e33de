"""Pydantic schemas for audit log API responses."""

import json
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from kurator.audit.models import AuditAction, AuditLogModel


def _load(value: str | None) -> Any:
    if value is None:
        return None
    try:
        return json.loads(value)
    except ValueError:
        return value


class AuditLogResponse(BaseModel):
    id: int
    user_id: int
    user_login: str
    action: AuditAction
    entity_type: str
    entity_id: str
    old_values: Optional[Any] = None
    new_values: Optional[Any] = None
    timestamp: datetime

    @classmethod
    def from_row(cls, log: AuditLogModel, login: str) -> "AuditLogResponse":
        return cls(
            id=log.id,
            user_id=log.user_id,
            user_login=login,
            action=log.action,
            entity_type=log.entity_type,
            entity_id=log.entity_id,
            old_values=_load(log.old_values_json),
            new_values=_load(log.new_values_json),
            timestamp=log.timestamp,
        )


class AuditStatistics(BaseModel):
    from_date: datetime
    to_date: datetime
    total: int
    by_action: dict[str, int]
    by_entity_type: dict[str, int]
    by_user: dict[str, int]
