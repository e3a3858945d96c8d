"""Category configuration models: recipients, required work centers, chat channel, translations."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ..database.base import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    plant = Column(String(4), nullable=False)
    send_mail = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    mails = relationship("CategoryMail", back_populates="category", cascade="all, delete-orphan")
    work_centers = relationship("CategoryWorkCenter", back_populates="category", cascade="all, delete-orphan")
    chat_channel = relationship(
        "CategoryChatChannel", back_populates="category", uselist=False, cascade="all, delete-orphan"
    )
    translations = relationship("CategoryTranslation", back_populates="category", cascade="all, delete-orphan")

    __table_args__ = (Index("idx_categories_plant", "plant"),)


class CategoryMail(Base):
    __tablename__ = "category_mails"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    category_id = Column(
        UUID(as_uuid=True),
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    mail_address = Column(String(512), nullable=False)

    category = relationship("Category", back_populates="mails")

    __table_args__ = (UniqueConstraint("category_id", "mail_address", name="uq_category_mail"),)


class CategoryWorkCenter(Base):
    """A work center that must acknowledge every log filed under the category."""

    __tablename__ = "category_work_centers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    category_id = Column(
        UUID(as_uuid=True),
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    work_center = Column(String(36), nullable=False)

    category = relationship("Category", back_populates="work_centers")

    __table_args__ = (UniqueConstraint("category_id", "work_center", name="uq_category_work_center"),)


class CategoryChatChannel(Base):
    __tablename__ = "category_chat_channels"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    category_id = Column(
        UUID(as_uuid=True),
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    name = Column(String(255), default="")
    webhook_url = Column(String(2048), nullable=False)
    active = Column(Boolean, nullable=False, default=True)

    category = relationship("Category", back_populates="chat_channel")


class CategoryTranslation(Base):
    __tablename__ = "category_translations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    category_id = Column(
        UUID(as_uuid=True),
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    language = Column(String(5), nullable=False)  # lowercase ISO code: en, de, ...
    description = Column(String(255), default="")

    category = relationship("Category", back_populates="translations")

    __table_args__ = (UniqueConstraint("category_id", "language", name="uq_category_language"),)
