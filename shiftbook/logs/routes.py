"""Shift log routes: ingestion, acknowledgement and polling."""

from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..audit.service import audit
from ..config import settings
from ..database.base import get_db
from .schemas import BatchAddRequest, BatchMarkRequest, LogEntryPayload, MarkRequest
from .service import batch_create_logs, create_log, iso, log_to_dict
from .sync import LogFilter, get_last_change_timestamp, get_latest_log, get_logs_page, search_logs
from .tracker import Mode, mark_batch, mark_read, mark_unread

router = APIRouter(prefix="/logs", tags=["logs"])


def _language(lang: str) -> str:
    lang = (lang or "").strip().lower()
    return lang if lang in settings.supported_languages_list else "en"


@router.post("")
def add_log_entry(
    request: Request,
    body: LogEntryPayload,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    # Staged before create_log commits, so the audit row and the log land together.
    audit(
        db, request, "log_create", f"plant={body.plant}, work_center={body.work_center}, category={body.category}",
        user_id=body.user_id if isinstance(body.user_id, str) else None,
    )
    log, visibility_count = create_log(db, body, background_tasks.add_task)
    return JSONResponse({"ok": True, "log": log_to_dict(log), "visibility_count": visibility_count})


@router.post("/batch")
def batch_add_log_entries(
    request: Request,
    body: BatchAddRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    audit(db, request, "log_batch_create", f"entries={len(body.logs)}")
    result = batch_create_logs(db, body.logs, background_tasks.add_task)
    return JSONResponse(result)


@router.post("/read")
def mark_log_as_read(request: Request, body: MarkRequest, db: Session = Depends(get_db)):
    read_at = mark_read(db, body.log_id, body.work_center)
    audit(db, request, "log_read", f"log={body.log_id}, work_center={body.work_center}")
    db.commit()
    return JSONResponse({"ok": True, "log_id": body.log_id, "work_center": body.work_center, "read_at": iso(read_at)})


@router.post("/unread")
def mark_log_as_unread(request: Request, body: MarkRequest, db: Session = Depends(get_db)):
    mark_unread(db, body.log_id, body.work_center)
    audit(db, request, "log_unread", f"log={body.log_id}, work_center={body.work_center}")
    db.commit()
    return JSONResponse({"ok": True, "log_id": body.log_id, "work_center": body.work_center, "read_at": None})


@router.post("/batch-read")
def batch_mark_logs_as_read(request: Request, body: BatchMarkRequest, db: Session = Depends(get_db)):
    result = mark_batch(db, body.logs, Mode.READ)
    audit(db, request, "log_batch_read", f"total={result['totalCount']}, failed={result['failedCount']}")
    db.commit()
    return JSONResponse(result)


@router.post("/batch-unread")
def batch_mark_logs_as_unread(request: Request, body: BatchMarkRequest, db: Session = Depends(get_db)):
    result = mark_batch(db, body.logs, Mode.UNREAD)
    audit(db, request, "log_batch_unread", f"total={result['totalCount']}, failed={result['failedCount']}")
    db.commit()
    return JSONResponse(result)


@router.get("")
def get_logs_paginated(
    plant: str = Query(""),
    work_center: str | None = Query(None),
    category: str | None = Query(None),
    include_dest_work_center: bool = Query(True),
    include_orig_work_center: bool = Query(True),
    lasttimestamp: datetime | None = Query(None),
    page: int = Query(1),
    page_size: int = Query(20),
    order: str = Query("desc"),
    lang: str = Query("en"),
    db: Session = Depends(get_db),
):
    flt = LogFilter(
        plant=plant,
        work_center=work_center,
        category=category,
        include_dest_work_center=include_dest_work_center,
        include_orig_work_center=include_orig_work_center,
        lasttimestamp=lasttimestamp,
    )
    return JSONResponse(get_logs_page(db, flt, page, page_size, _language(lang), order))


@router.get("/search")
def search_logs_by_string(
    plant: str = Query(""),
    q: str = Query(""),
    work_center: str | None = Query(None),
    category: str | None = Query(None),
    include_dest_work_center: bool = Query(True),
    include_orig_work_center: bool = Query(True),
    page: int = Query(1),
    page_size: int = Query(20),
    lang: str = Query("en"),
    db: Session = Depends(get_db),
):
    flt = LogFilter(
        plant=plant,
        work_center=work_center,
        category=category,
        include_dest_work_center=include_dest_work_center,
        include_orig_work_center=include_orig_work_center,
    )
    return JSONResponse(search_logs(db, flt, q, page, page_size, _language(lang)))


@router.get("/last-change")
def get_last_change(
    plant: str = Query(""),
    work_center: str | None = Query(None),
    category: str | None = Query(None),
    include_dest_work_center: bool = Query(True),
    include_orig_work_center: bool = Query(True),
    db: Session = Depends(get_db),
):
    flt = LogFilter(
        plant=plant,
        work_center=work_center,
        category=category,
        include_dest_work_center=include_dest_work_center,
        include_orig_work_center=include_orig_work_center,
    )
    return JSONResponse({"lastChangeTimestamp": iso(get_last_change_timestamp(db, flt))})


@router.get("/latest")
def get_latest(
    plant: str = Query(""),
    work_center: str = Query(""),
    lang: str = Query("en"),
    db: Session = Depends(get_db),
):
    return JSONResponse({"log": get_latest_log(db, plant, work_center, _language(lang))})
