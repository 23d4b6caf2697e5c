"""Audit trail schemas"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID
from pydantic import BaseModel, Field


class AuditEntry(BaseModel):
    """An audit event to record"""
    action: str
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    tenant_id: Optional[UUID] = None
    actor_id: Optional[UUID] = None
    old_value: Optional[Dict[str, Any]] = None
    new_value: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class AuditQuery(BaseModel):
    """Filters for historical audit queries"""
    tenant_id: Optional[UUID] = None
    actor_id: Optional[UUID] = None
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    action: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: int = Field(default=50, ge=1, le=10000)
    offset: int = Field(default=0, ge=0)


class AuditLogResponse(BaseModel):
    """Stored audit entry"""
    id: UUID
    action: str
    entity_type: Optional[str]
    entity_id: Optional[str]
    tenant_id: Optional[UUID]
    actor_id: Optional[UUID]
    old_value: Optional[Dict[str, Any]]
    new_value: Optional[Dict[str, Any]]
    changes: Optional[Dict[str, Any]]
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="metadata_json")
    ip_address: Optional[str]
    user_agent: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True
        populate_by_name = True


ReportGrouping = Literal["actor", "action", "entity_type"]


class DateRange(BaseModel):
    start: datetime
    end: datetime


class AuditSummary(BaseModel):
    total_actions: int
    unique_actors: int
    date_range: DateRange


class AuditReport(BaseModel):
    """Aggregated audit activity for one tenant"""
    summary: AuditSummary
    entries: Optional[List[AuditLogResponse]] = None
    grouped: Optional[Dict[str, List[AuditLogResponse]]] = None
