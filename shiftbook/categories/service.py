"""Category service: administration and the work-center fan-out set."""

import logging
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..errors import NotFound, ValidationFailed
from ..identifiers import to_uuid
from ..logs.models import ShiftLog
from .models import Category, CategoryChatChannel, CategoryMail, CategoryTranslation, CategoryWorkCenter
from .schemas import CategoryPayload

logger = logging.getLogger(__name__)

FALLBACK_LANGUAGE = "en"


def _clean_mails(mails: list[str]) -> list[str]:
    cleaned: list[str] = []
    for raw in mails:
        address = (raw or "").strip()
        if not address or "@" not in address or len(address) > 512:
            raise ValidationFailed(f"Invalid mail address: {raw!r}")
        if address.lower() not in {m.lower() for m in cleaned}:
            cleaned.append(address)
    return cleaned


def _clean_work_centers(work_centers: list[str]) -> list[str]:
    cleaned: list[str] = []
    for raw in work_centers:
        wc = (raw or "").strip()
        if not wc or len(wc) > 36:
            raise ValidationFailed(f"Invalid work center: {raw!r}")
        if wc not in cleaned:
            cleaned.append(wc)
    return cleaned


def _apply_children(category: Category, payload: CategoryPayload, replace_chat: bool) -> None:
    # Unchanged rows are kept: the unit of work inserts before it deletes,
    # so re-adding an existing value would hit the unique constraints.
    mails = _clean_mails(payload.mails)
    category.mails = [m for m in category.mails if m.mail_address in mails] + [
        CategoryMail(mail_address=m) for m in mails if m not in {x.mail_address for x in category.mails}
    ]

    work_centers = _clean_work_centers(payload.work_centers)
    category.work_centers = [wc for wc in category.work_centers if wc.work_center in work_centers] + [
        CategoryWorkCenter(work_center=wc)
        for wc in work_centers
        if wc not in {x.work_center for x in category.work_centers}
    ]

    languages: dict[str, str] = {}
    for t in payload.translations:
        languages[t.language.strip().lower()] = t.description
    kept = []
    for t in category.translations:
        if t.language in languages:
            t.description = languages.pop(t.language)
            kept.append(t)
    category.translations = kept + [
        CategoryTranslation(language=lng, description=desc) for lng, desc in languages.items()
    ]

    if replace_chat:
        chat = payload.chat_channel
        if chat is None:
            category.chat_channel = None
        elif category.chat_channel is not None:
            category.chat_channel.name = chat.name
            category.chat_channel.webhook_url = chat.webhook_url
            category.chat_channel.active = chat.active
        else:
            category.chat_channel = CategoryChatChannel(
                name=chat.name, webhook_url=chat.webhook_url, active=chat.active
            )


def get_category(db: Session, category_id: str | UUID, plant: str | None = None) -> Category | None:
    uid = to_uuid(category_id)
    if uid is None:
        return None
    query = db.query(Category).filter(Category.id == uid)
    if plant is not None:
        query = query.filter(Category.plant == plant)
    return query.first()


def create_category(db: Session, payload: CategoryPayload) -> Category:
    category = Category(plant=payload.plant, send_mail=payload.send_mail)
    _apply_children(category, payload, replace_chat=True)
    db.add(category)
    db.flush()
    logger.info(
        "Created category %s for plant %s (%d mails, %d work centers)",
        category.id, category.plant, len(category.mails), len(category.work_centers),
    )
    return category


def update_category(
    db: Session, category_id: str, payload: CategoryPayload, *, replace_chat: bool = True
) -> Category:
    """Replace a category's configuration.

    Logs already filed under the category keep the visibility records they were created with.
    """
    category = get_category(db, category_id)
    if not category:
        raise NotFound(f"Category {category_id} not found")

    category.plant = payload.plant
    category.send_mail = payload.send_mail
    _apply_children(category, payload, replace_chat=replace_chat)
    db.flush()
    return category


def delete_category(db: Session, category_id: str) -> None:
    category = get_category(db, category_id)
    if not category:
        raise NotFound(f"Category {category_id} not found")

    in_use = db.query(func.count(ShiftLog.id)).filter(ShiftLog.category_id == category.id).scalar() or 0
    if in_use:
        raise ValidationFailed(f"Category {category_id} is referenced by {in_use} logs and cannot be deleted")

    db.delete(category)
    db.flush()


def list_categories(db: Session, plant: str) -> list[Category]:
    return db.query(Category).filter(Category.plant == plant).order_by(Category.created_at.asc()).all()


def describe(category: Category | None, language: str, category_id=None) -> tuple[str, str]:
    """Return (description, language used), falling back to English, then to a generic label."""
    if category is not None:
        by_language = {t.language: t.description for t in category.translations}
        if by_language.get(language):
            return by_language[language], language
        if by_language.get(FALLBACK_LANGUAGE):
            return by_language[FALLBACK_LANGUAGE], FALLBACK_LANGUAGE
        category_id = category.id
    return f"Category {category_id}", "none"


def category_to_dict(category: Category, language: str = FALLBACK_LANGUAGE) -> dict:
    chat = category.chat_channel
    return {
        "id": str(category.id),
        "plant": category.plant,
        "send_mail": bool(category.send_mail),
        "description": describe(category, language)[0],
        "mails": [m.mail_address for m in category.mails],
        "work_centers": [wc.work_center for wc in category.work_centers],
        "chat_channel": (
            {"name": chat.name or "", "webhook_url": chat.webhook_url, "active": bool(chat.active)} if chat else None
        ),
    }


# ── Fan-out ────────────────────────────────────────────────────────────


def build_visibility_set(db: Session, category_id: UUID) -> list[str]:
    """Work centers that must receive a visibility record for a log filed under the category.

    The returned list is a snapshot: callers copy it into the new log's records.
    """
    rows = (
        db.query(CategoryWorkCenter.work_center)
        .filter(CategoryWorkCenter.category_id == category_id)
        .distinct()
        .all()
    )
    return sorted({wc for (wc,) in rows if wc})
