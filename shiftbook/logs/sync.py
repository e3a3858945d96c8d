"""Paginated log queries for polling clients.

Clients poll with ``lasttimestamp`` and compare ``lastChangeTimestamp`` to
decide whether anything (new logs or read-state toggles) changed.
"""

import math
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import exists, func, or_, select
from sqlalchemy.orm import Query, Session

from ..categories.models import Category
from ..categories.service import FALLBACK_LANGUAGE, describe
from ..config import settings
from ..errors import NotFound, ValidationFailed
from ..identifiers import to_uuid
from .models import LogWorkCenter, ShiftLog
from .service import as_utc, iso, log_to_dict


@dataclass
class LogFilter:
    plant: str
    work_center: str | None = None
    category: str | None = None
    include_dest_work_center: bool = True
    include_orig_work_center: bool = True
    lasttimestamp: datetime | None = None


def _filtered_query(db: Session, flt: LogFilter) -> Query:
    if not flt.plant:
        raise ValidationFailed("Plant is required")

    query = db.query(ShiftLog).filter(ShiftLog.plant == flt.plant)

    if flt.category:
        category_id = to_uuid(flt.category)
        if category_id is None:
            raise ValidationFailed("Category must be a valid UUID")
        query = query.filter(ShiftLog.category_id == category_id)

    if flt.lasttimestamp is not None:
        query = query.filter(ShiftLog.created_at > as_utc(flt.lasttimestamp))

    wc = flt.work_center
    if wc:
        is_dest = exists().where(LogWorkCenter.log_id == ShiftLog.id, LogWorkCenter.work_center == wc)
        is_orig = ShiftLog.work_center == wc
        if flt.include_dest_work_center and flt.include_orig_work_center:
            query = query.filter(or_(is_orig, is_dest))
        elif flt.include_dest_work_center:
            query = query.filter(is_dest)
        elif flt.include_orig_work_center:
            query = query.filter(is_orig)
    return query


def _log_ids(query: Query):
    ids = query.with_entities(ShiftLog.id).subquery()
    return select(ids.c.id)


def _last_change(db: Session, query: Query) -> datetime | None:
    created, origin_changed = query.with_entities(
        func.max(ShiftLog.created_at), func.max(ShiftLog.origin_read_changed_at)
    ).one()
    dest_changed = (
        db.query(func.max(LogWorkCenter.read_changed_at))
        .filter(LogWorkCenter.log_id.in_(_log_ids(query)))
        .scalar()
    )
    candidates = [as_utc(v) for v in (created, origin_changed, dest_changed) if v is not None]
    return max(candidates) if candidates else None


def _read_counts(db: Session, query: Query, flt: LogFilter) -> tuple[int, int]:
    """(read, unread) over the visibility records of the filtered logs."""
    # Both flags off: the work center narrows neither the logs nor the counts.
    wc = flt.work_center if flt.include_dest_work_center or flt.include_orig_work_center else None
    total = read = 0

    if not wc or flt.include_dest_work_center:
        dest = db.query(func.count(LogWorkCenter.log_id), func.count(LogWorkCenter.read_at)).filter(
            LogWorkCenter.log_id.in_(_log_ids(query))
        )
        if wc:
            dest = dest.filter(LogWorkCenter.work_center == wc)
        dest_total, dest_read = dest.one()
        total += dest_total
        read += dest_read

    if wc and flt.include_orig_work_center:
        orig_total, orig_read = (
            query.filter(ShiftLog.work_center == wc)
            .with_entities(func.count(ShiftLog.id), func.count(ShiftLog.origin_read_at))
            .one()
        )
        total += orig_total
        read += orig_read

    return read, total - read


def _read_state(db: Session, logs: list[ShiftLog], work_center: str | None) -> dict:
    """Latest read timestamp per log id for one work center."""
    if not work_center or not logs:
        return {}
    state: dict = {}
    rows = (
        db.query(LogWorkCenter.log_id, LogWorkCenter.read_at)
        .filter(
            LogWorkCenter.log_id.in_([log.id for log in logs]),
            LogWorkCenter.work_center == work_center,
            LogWorkCenter.read_at.isnot(None),
        )
        .all()
    )
    for log_id, read_at in rows:
        state[log_id] = as_utc(read_at)
    for log in logs:
        if log.work_center == work_center and log.origin_read_at is not None:
            origin = as_utc(log.origin_read_at)
            if state.get(log.id) is None or origin > state[log.id]:
                state[log.id] = origin
    return state


def _category_descriptions(db: Session, logs: list[ShiftLog], language: str) -> dict:
    ids = {log.category_id for log in logs}
    if not ids:
        return {}
    categories = db.query(Category).filter(Category.id.in_(ids)).all()
    by_id = {c.id: c for c in categories}
    return {cid: describe(by_id.get(cid), language, cid)[0] for cid in ids}


def _check_paging(page: int, page_size: int) -> None:
    if page < 1:
        raise ValidationFailed("Page must be a positive integer")
    if page_size < 1 or page_size > settings.max_page_size:
        raise ValidationFailed(f"Page size must be between 1 and {settings.max_page_size}")


def _build_page(
    db: Session, query: Query, flt: LogFilter, page: int, page_size: int, language: str, order: str
) -> dict:
    total = query.count()

    ordering = (
        (ShiftLog.created_at.asc(), ShiftLog.id.asc())
        if order == "asc"
        else (ShiftLog.created_at.desc(), ShiftLog.id.desc())
    )
    logs = query.order_by(*ordering).offset((page - 1) * page_size).limit(page_size).all()

    read_state = _read_state(db, logs, flt.work_center)
    descriptions = _category_descriptions(db, logs, language)
    read_count, unread_count = _read_counts(db, query, flt)
    last_change = _last_change(db, query)

    items = []
    for log in logs:
        item = log_to_dict(log)
        item["is_read"] = iso(read_state.get(log.id))
        item["category_desc"] = descriptions.get(log.category_id)
        items.append(item)

    return {
        "logs": items,
        "total": total,
        "page": page,
        "pageSize": page_size,
        "totalPages": math.ceil(total / page_size) if total else 0,
        "lastChangeTimestamp": last_change.isoformat() if last_change else None,
        "readCount": read_count,
        "unreadCount": unread_count,
    }


def get_logs_page(
    db: Session,
    flt: LogFilter,
    page: int = 1,
    page_size: int = 20,
    language: str = FALLBACK_LANGUAGE,
    order: str = "desc",
) -> dict:
    _check_paging(page, page_size)
    if order not in ("asc", "desc"):
        raise ValidationFailed("Order must be 'asc' or 'desc'")
    return _build_page(db, _filtered_query(db, flt), flt, page, page_size, language, order)


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def search_logs(
    db: Session,
    flt: LogFilter,
    search: str,
    page: int = 1,
    page_size: int = 20,
    language: str = FALLBACK_LANGUAGE,
) -> dict:
    """Case-insensitive substring search within the filtered logs.

    Matches the author, subject, message, origin work center and any destination
    work center. Same result shape as ``get_logs_page``, newest first.
    """
    search = (search or "").strip()
    if not search:
        raise ValidationFailed("Search string is required and cannot be empty")
    _check_paging(page, page_size)

    pattern = _like_pattern(search)
    matches_destination = exists().where(
        LogWorkCenter.log_id == ShiftLog.id,
        LogWorkCenter.work_center.ilike(pattern, escape="\\"),
    )
    query = _filtered_query(db, flt).filter(
        or_(
            ShiftLog.user_id.ilike(pattern, escape="\\"),
            ShiftLog.subject.ilike(pattern, escape="\\"),
            ShiftLog.message.ilike(pattern, escape="\\"),
            ShiftLog.work_center.ilike(pattern, escape="\\"),
            matches_destination,
        )
    )
    return _build_page(db, query, flt, page, page_size, language, "desc")


def get_last_change_timestamp(db: Session, flt: LogFilter) -> datetime | None:
    return _last_change(db, _filtered_query(db, flt))


def get_latest_log(db: Session, plant: str, work_center: str, language: str = FALLBACK_LANGUAGE) -> dict:
    """Newest log originating from a work center."""
    if not plant or not work_center:
        raise ValidationFailed("Plant and work center are required")
    log = (
        db.query(ShiftLog)
        .filter(ShiftLog.plant == plant, ShiftLog.work_center == work_center)
        .order_by(ShiftLog.created_at.desc(), ShiftLog.id.desc())
        .first()
    )
    if not log:
        raise NotFound(f"No logs found for plant {plant} and work center {work_center}")

    item = log_to_dict(log)
    item["category_desc"] = describe(db.get(Category, log.category_id), language, log.category_id)[0]
    return item
