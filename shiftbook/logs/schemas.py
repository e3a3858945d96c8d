"""Shift log request schemas.

Entry fields are loosely typed: batch ingestion reports per-entry validation
errors instead of rejecting the whole request, so the checks live in the service.
"""

from typing import Any

from pydantic import BaseModel, Field


class LogEntryPayload(BaseModel):
    plant: Any = None
    shop_order: Any = None
    step_id: Any = None
    split: Any = None
    work_center: Any = None
    user_id: Any = None
    category: Any = None
    subject: Any = None
    message: Any = None
    log_dt: Any = None  # datetime or ISO 8601 string


class BatchAddRequest(BaseModel):
    logs: list[LogEntryPayload] = Field(default_factory=list)


class MarkRequest(BaseModel):
    log_id: str | None = None
    work_center: str | None = None


class BatchMarkRequest(BaseModel):
    logs: list[MarkRequest] = Field(default_factory=list)
