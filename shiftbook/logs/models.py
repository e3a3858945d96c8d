"""Shift log and per-work-center visibility models."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ..database.base import Base


class ShiftLog(Base):
    __tablename__ = "shift_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    plant = Column(String(4), nullable=False)
    shop_order = Column(String(30), nullable=False)
    step_id = Column(String(4), nullable=False)
    split = Column(String(3), default="")
    work_center = Column(String(36), nullable=False)  # origin
    user_id = Column(String(512), nullable=False)
    category_id = Column(
        UUID(as_uuid=True),
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=False,
    )
    subject = Column(String(1024), nullable=False)
    message = Column(Text, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Acknowledgement by the origin work center itself
    origin_read_at = Column(DateTime(timezone=True), nullable=True)
    origin_read_changed_at = Column(DateTime(timezone=True), nullable=True)

    visibility = relationship("LogWorkCenter", back_populates="log", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_shift_logs_plant_created", "plant", "created_at"),
        Index("idx_shift_logs_work_center", "work_center"),
        Index("idx_shift_logs_category", "category_id"),
    )


class LogWorkCenter(Base):
    """Visibility record: one destination work center's read state for one log."""

    __tablename__ = "log_work_centers"

    log_id = Column(
        UUID(as_uuid=True),
        ForeignKey("shift_logs.id", ondelete="CASCADE"),
        primary_key=True,
    )
    work_center = Column(String(36), primary_key=True)
    read_at = Column(DateTime(timezone=True), nullable=True)
    read_changed_at = Column(DateTime(timezone=True), nullable=True)

    log = relationship("ShiftLog", back_populates="visibility")

    __table_args__ = (Index("idx_log_work_centers_wc", "work_center"),)
