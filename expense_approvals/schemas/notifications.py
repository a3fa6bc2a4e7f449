from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: str
    title: str
    message: str | None
    is_read: bool
    created_at: datetime


class MarkAllReadOut(BaseModel):
    updated: int
