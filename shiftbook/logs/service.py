"""Log ingestion: validate, persist with visibility records, then hand off notification."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import NamedTuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..categories.service import build_visibility_set, get_category
from ..config import settings
from ..errors import NotFound, ValidationFailed
from ..identifiers import to_uuid
from ..notifications.resolver import resolve_recipients
from ..notifications.schemas import NotificationPlan
from ..notifications.service import build_plan, dispatch_notification
from .models import LogWorkCenter, ShiftLog
from .schemas import LogEntryPayload

logger = logging.getLogger(__name__)

Schedule = Callable[..., object]

# field -> (label, max length, required)
_FIELD_RULES = {
    "plant": ("Plant", 4, True),
    "shop_order": ("Shop order", 30, True),
    "step_id": ("Step ID", 4, True),
    "split": ("Split", 3, False),
    "work_center": ("Work center", 36, True),
    "user_id": ("User ID", 512, True),
    "subject": ("Subject", 1024, True),
    "message": ("Message", 4096, True),
}


class LogCreation(NamedTuple):
    log: ShiftLog
    visibility_count: int


def _now() -> datetime:
    return datetime.now(UTC)


def _parse_log_dt(value) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError as exc:
            raise ValidationFailed("Log date must be an ISO 8601 timestamp") from exc
    raise ValidationFailed("Log date must be an ISO 8601 timestamp")


def _validate_entry(entry: LogEntryPayload) -> datetime | None:
    """Check every field; returns the parsed caller timestamp, if any."""
    for field, (label, max_len, required) in _FIELD_RULES.items():
        value = getattr(entry, field)
        if value is None or value == "":
            if required:
                raise ValidationFailed(f"{label} is required")
            continue
        if not isinstance(value, str) or len(value) > max_len:
            raise ValidationFailed(f"{label} must be a string with maximum {max_len} characters")
    if to_uuid(entry.category) is None:
        raise ValidationFailed("Category must be a valid UUID")
    return _parse_log_dt(entry.log_dt)


def _effective_timestamp(log_dt: datetime | None) -> datetime:
    """Server time, or the caller's timestamp normalised to UTC and never in the future."""
    now = _now()
    if log_dt is None:
        return now
    if log_dt.tzinfo is None:
        log_dt = log_dt.replace(tzinfo=UTC)
    return min(log_dt.astimezone(UTC), now)


def _persist_entry(db: Session, entry: LogEntryPayload) -> tuple[ShiftLog, NotificationPlan, int]:
    """Validate and stage one entry (flush only). Raises before writing anything on bad input."""
    log_dt = _validate_entry(entry)

    category = get_category(db, entry.category, entry.plant)
    if not category:
        raise NotFound(f"Category {entry.category} not found for plant {entry.plant}")

    log = ShiftLog(
        plant=entry.plant,
        shop_order=entry.shop_order,
        step_id=entry.step_id,
        split=entry.split or "",
        work_center=entry.work_center,
        user_id=entry.user_id,
        category_id=category.id,
        subject=entry.subject,
        message=entry.message,
        created_at=_effective_timestamp(log_dt),
    )
    db.add(log)
    db.flush()

    work_centers = build_visibility_set(db, category.id)
    for wc in work_centers:
        db.add(LogWorkCenter(log_id=log.id, work_center=wc))
    db.flush()

    plan = build_plan(log, resolve_recipients(db, category.id, entry.plant))
    return log, plan, len(work_centers)


def create_log(db: Session, entry: LogEntryPayload, schedule: Schedule | None = None) -> LogCreation:
    """Create one log with its visibility records in a single transaction.

    After the commit the notification plan is handed to ``schedule`` (typically
    ``BackgroundTasks.add_task``); dispatch outcome never affects the result.
    """
    try:
        log, plan, count = _persist_entry(db, entry)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Storage error while creating log for plant %s", entry.plant)
        raise

    logger.info(
        "Created log %s (plant=%s, work_center=%s, category=%s) with %d visibility records",
        log.id, log.plant, log.work_center, log.category_id, count,
    )
    if schedule is not None:
        schedule(dispatch_notification, plan)
    return LogCreation(log, count)


def batch_create_logs(db: Session, entries: list[LogEntryPayload], schedule: Schedule | None = None) -> dict:
    """Create many logs in one transaction, reporting bad entries instead of failing on them.

    A storage error rolls back every entry and propagates; nothing is dispatched.
    """
    if not entries:
        raise ValidationFailed("At least one log entry is required")
    if len(entries) > settings.max_batch_size:
        raise ValidationFailed(f"Maximum {settings.max_batch_size} logs per batch")

    errors: list[str] = []
    items: list[dict] = []
    created: list[ShiftLog] = []
    plans: list[NotificationPlan] = []

    try:
        for index, entry in enumerate(entries, 1):
            try:
                log, plan, _count = _persist_entry(db, entry)
            except (ValidationFailed, NotFound) as exc:
                errors.append(f"Log {index}: {exc}")
                items.append({"index": index, "ok": False, "error": str(exc)})
                continue
            created.append(log)
            plans.append(plan)
            items.append({"index": index, "ok": True, "log_id": str(log.id)})
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Storage error in batch of %d logs, batch rolled back", len(entries))
        raise

    logger.info("Batch created %d of %d logs (%d rejected)", len(created), len(entries), len(errors))
    if schedule is not None:
        for plan in plans:
            schedule(dispatch_notification, plan)

    return {
        "success": not errors,
        "count": len(created),
        "errors": errors,
        "logs": [log_to_dict(log) for log in created],
        "items": items,
    }


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive values; everything is stored in UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def iso(value: datetime | None) -> str | None:
    value = as_utc(value)
    return value.isoformat() if value else None


def log_to_dict(log: ShiftLog) -> dict:
    return {
        "id": str(log.id),
        "plant": log.plant,
        "shop_order": log.shop_order,
        "step_id": log.step_id,
        "split": log.split or "",
        "work_center": log.work_center,
        "user_id": log.user_id,
        "category": str(log.category_id),
        "subject": log.subject,
        "message": log.message,
        "created_at": iso(log.created_at),
    }
