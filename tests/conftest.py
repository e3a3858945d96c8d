"""Shared test fixtures."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shiftbook.audit.models import AuditLog
from shiftbook.categories.models import (
    Category,
    CategoryChatChannel,
    CategoryMail,
    CategoryTranslation,
    CategoryWorkCenter,
)
from shiftbook.database.base import Base
from shiftbook.logs.models import LogWorkCenter, ShiftLog
from shiftbook.logs.schemas import LogEntryPayload

# Models must be imported so Base.metadata.create_all() sees all tables.
_ALL_MODELS = [AuditLog, Category, CategoryMail, CategoryWorkCenter, CategoryChatChannel, CategoryTranslation,
               ShiftLog, LogWorkCenter]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db_session(engine):
    """In-memory SQLite database. UUID columns fall back to CHAR(32)."""
    TestSession = sessionmaker(bind=engine)
    session = TestSession()
    try:
        yield session
    finally:
        session.close()


def _make_category(db, plant="1000", send_mail=True, mails=(), work_centers=(), chat=None, translations=None):
    category = Category(plant=plant, send_mail=send_mail)
    category.mails = [CategoryMail(mail_address=m) for m in mails]
    category.work_centers = [CategoryWorkCenter(work_center=wc) for wc in work_centers]
    category.translations = [
        CategoryTranslation(language=lang, description=desc) for lang, desc in (translations or {}).items()
    ]
    if chat is not None:
        category.chat_channel = CategoryChatChannel(**chat)
    db.add(category)
    db.commit()
    return category


@pytest.fixture
def make_category(db_session):
    def _factory(**kwargs):
        return _make_category(db_session, **kwargs)

    return _factory


@pytest.fixture
def test_category(db_session):
    """Category in plant 1000 with two mails, two required work centers and an active chat channel."""
    return _make_category(
        db_session,
        mails=("shift.lead@example.com", "quality@example.com"),
        work_centers=("WC1", "WC2"),
        chat={"name": "Shift channel", "webhook_url": "https://chat.example.com/hook", "active": True},
        translations={"en": "Quality issue", "de": "Qualitätsproblem"},
    )


@pytest.fixture
def make_entry():
    def _factory(category, /, **overrides):
        data = {
            "plant": "1000",
            "shop_order": "SO-100",
            "step_id": "0010",
            "split": "001",
            "work_center": "WC0",
            "user_id": "operator@example.com",
            "category": str(category.id),
            "subject": "Machine stopped",
            "message": "Spindle overheated at 14:02",
        }
        data.update(overrides)
        return LogEntryPayload(**data)

    return _factory
