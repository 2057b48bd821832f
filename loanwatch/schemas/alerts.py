"""Alert schemas for quick actions and the internal alerts API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class QuickAction(BaseModel):
    """Action button descriptor rendered by the admin UI. Never interpreted here."""

    id: str
    label: str
    action: str
    params: dict[str, Any] = Field(default_factory=dict)


class AlertRead(BaseModel):
    """Alert as returned by GET /internal/alerts."""

    id: int
    alert_type: str
    priority: str
    title: str
    description: str
    source_id: str
    source_type: str
    source_data: dict[str, Any] | None
    quick_actions: list[QuickAction] | None
    is_resolved: bool
    resolved_at: datetime | None
    resolved_by: str | None
    resolved_action: str | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AlertList(BaseModel):
    """List of open alerts."""

    items: list[AlertRead]
    total: int


class AlertResolveRequest(BaseModel):
    """Body of POST /internal/alerts/{alert_id}/resolve."""

    resolved_by: str = Field(..., min_length=1, max_length=255)
    action: str = Field("dismiss", min_length=1, max_length=64)
