"""Notification value objects. None of these are persisted."""

import enum
from datetime import datetime

from pydantic import BaseModel, Field


class DispatchStatus(str, enum.Enum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


class ChatTarget(BaseModel):
    url: str
    name: str = ""
    active: bool = True


class Recipients(BaseModel):
    """Resolved targets for one category in one plant."""

    emails: list[str] = Field(default_factory=list)
    chat_target: ChatTarget | None = None

    @property
    def is_empty(self) -> bool:
        return not self.emails and self.chat_target is None


class LogDetails(BaseModel):
    log_id: str | None = None
    plant: str
    shop_order: str = ""
    step_id: str = ""
    split: str = ""
    work_center: str = ""
    user_id: str = ""
    created_at: datetime | None = None


class NotificationPlan(BaseModel):
    """Everything dispatch needs, captured before the request's session goes away."""

    model_config = {"frozen": True}

    category_id: str
    recipients: Recipients
    subject: str
    message: str
    details: LogDetails


class ChannelResult(BaseModel):
    attempted: bool = False
    success: bool = False
    error: str | None = None


class DispatchOutcome(BaseModel):
    category_id: str
    recipients: list[str] = Field(default_factory=list)
    email: ChannelResult = Field(default_factory=ChannelResult)
    chat: ChannelResult = Field(default_factory=ChannelResult)

    @property
    def status(self) -> DispatchStatus:
        if not self.email.attempted and not self.chat.attempted:
            return DispatchStatus.SKIPPED
        email_ok = not self.email.attempted or self.email.success
        chat_ok = not self.chat.attempted or self.chat.success
        return DispatchStatus.SENT if email_ok and chat_ok else DispatchStatus.FAILED


class SendMailRequest(BaseModel):
    plant: str
    subject: str = ""
    message: str = ""
