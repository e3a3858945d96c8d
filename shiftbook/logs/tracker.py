"""Per-work-center read/unread state.

A (log, work center) pair is either a visibility record or the log's own
origin work center. Last writer wins; there is no locking.
"""

import enum
import logging
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from ..config import settings
from ..errors import NotFound, ValidationFailed
from ..identifiers import to_uuid
from .models import LogWorkCenter, ShiftLog
from .schemas import MarkRequest

logger = logging.getLogger(__name__)


class Mode(str, enum.Enum):
    READ = "read"
    UNREAD = "unread"


def _now() -> datetime:
    return datetime.now(UTC)


def _set_state(db: Session, log_id, work_center, read_at: datetime | None, changed_at: datetime) -> None:
    """Write the read state of one pair. Does not commit."""
    if not log_id:
        raise ValidationFailed("log_id is required")
    if not work_center:
        raise ValidationFailed("work_center is required")
    uid = to_uuid(log_id)
    if uid is None:
        raise ValidationFailed("Invalid log_id")

    found = False
    record = db.get(LogWorkCenter, (uid, work_center))
    if record is not None:
        record.read_at = read_at
        record.read_changed_at = changed_at
        found = True

    log = db.query(ShiftLog).filter(ShiftLog.id == uid, ShiftLog.work_center == work_center).first()
    if log is not None:
        log.origin_read_at = read_at
        log.origin_read_changed_at = changed_at
        found = True

    if not found:
        raise NotFound(f"Entry not found for log_id {log_id} and workcenter {work_center}")
    db.flush()


def mark_read(db: Session, log_id: str, work_center: str) -> datetime:
    """Acknowledge a log for one work center. Re-marking renews the timestamp."""
    now = _now()
    _set_state(db, log_id, work_center, now, now)
    db.commit()
    logger.info("Log %s marked read by %s", log_id, work_center)
    return now


def mark_unread(db: Session, log_id: str, work_center: str) -> bool:
    _set_state(db, log_id, work_center, None, _now())
    db.commit()
    logger.info("Log %s marked unread by %s", log_id, work_center)
    return True


def mark_batch(db: Session, pairs: list[MarkRequest], mode: Mode) -> dict:
    """Mark many pairs; each one commits on its own and failures are reported, not raised.

    Every item of one batch shares a single timestamp.
    """
    if not pairs:
        raise ValidationFailed("At least one log entry is required")
    if len(pairs) > settings.max_batch_size:
        raise ValidationFailed(f"Maximum {settings.max_batch_size} logs per batch")

    timestamp = _now()
    read_at = timestamp if mode == Mode.READ else None

    errors: list[str] = []
    success_count = 0
    for index, pair in enumerate(pairs, 1):
        try:
            _set_state(db, pair.log_id, pair.work_center, read_at, timestamp)
            db.commit()
        except (ValidationFailed, NotFound) as exc:
            db.rollback()
            errors.append(f"Log {index}: {exc}")
            continue
        success_count += 1

    failed_count = len(pairs) - success_count
    logger.info("Batch %s: %d of %d pairs updated", mode.value, success_count, len(pairs))
    return {
        "success": failed_count == 0,
        "totalCount": len(pairs),
        "successCount": success_count,
        "failedCount": failed_count,
        "errors": errors,
    }
