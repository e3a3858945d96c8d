"""Category notification resolver: who gets told about a log. Lookup only, never sends."""

from uuid import UUID

from sqlalchemy.orm import Session

from ..categories.models import Category, CategoryMail
from ..categories.service import get_category
from ..identifiers import to_uuid
from .schemas import ChatTarget, Recipients


def resolve_recipients(db: Session, category_id: str | UUID, plant: str) -> Recipients:
    """Resolve email recipients and chat target for automatic dispatch.

    Emails are returned only when the category's ``send_mail`` flag is on.
    The chat target has its own ``active`` flag and ignores ``send_mail``.
    An unknown category resolves to nobody.
    """
    category = get_category(db, category_id, plant)
    if not category:
        return Recipients()

    emails = [m.mail_address for m in category.mails] if category.send_mail else []

    chat_target = None
    channel = category.chat_channel
    if channel is not None and channel.active and channel.webhook_url:
        chat_target = ChatTarget(url=channel.webhook_url, name=channel.name or "", active=True)

    return Recipients(emails=emails, chat_target=chat_target)


def get_mail_recipients(db: Session, category_id: str, plant: str) -> dict:
    """Configured addresses for a category, independent of the ``send_mail`` flag."""
    uid = to_uuid(category_id)
    addresses: list[str] = []
    if uid is not None:
        rows = (
            db.query(CategoryMail.mail_address)
            .join(Category, CategoryMail.category_id == Category.id)
            .filter(Category.id == uid, Category.plant == plant)
            .order_by(CategoryMail.mail_address.asc())
            .all()
        )
        addresses = [address for (address,) in rows]

    return {
        "category": category_id,
        "plant": plant,
        "recipients": "; ".join(addresses),
        "count": len(addresses),
    }
