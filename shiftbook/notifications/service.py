"""Notification dispatch.

Dispatch is one-shot and never raises: every transport error ends up as a failed
channel result and a log line. Log creation schedules it after commit, so it runs
outside the request's transaction.
"""

import logging

from sqlalchemy.orm import Session

from ..categories.service import get_category
from ..errors import NotFound, ValidationFailed
from ..logs.models import ShiftLog
from .chat import build_chat_card, send_chat_message
from .email import build_log_email, send_email, smtp_configured
from .resolver import resolve_recipients
from .schemas import ChannelResult, DispatchOutcome, DispatchStatus, LogDetails, NotificationPlan, Recipients

logger = logging.getLogger(__name__)

_DEFAULT_SUBJECT = "Shift Book Log Entry"


def build_plan(log: ShiftLog, recipients: Recipients) -> NotificationPlan:
    """Snapshot a freshly created log into a dispatchable plan."""
    return NotificationPlan(
        category_id=str(log.category_id),
        recipients=recipients,
        subject=log.subject or _DEFAULT_SUBJECT,
        message=log.message or "",
        details=LogDetails(
            log_id=str(log.id),
            plant=log.plant,
            shop_order=log.shop_order,
            step_id=log.step_id,
            split=log.split or "",
            work_center=log.work_center,
            user_id=log.user_id,
            created_at=log.created_at,
        ),
    )


def _dispatch_email(plan: NotificationPlan) -> ChannelResult:
    if not smtp_configured():
        logger.warning("Email for category %s skipped: SMTP not configured", plan.category_id)
        return ChannelResult(attempted=True, success=False, error="SMTP not configured")
    try:
        ok = send_email(build_log_email(plan))
    except Exception as exc:
        logger.exception("Email dispatch for category %s crashed", plan.category_id)
        return ChannelResult(attempted=True, success=False, error=str(exc))
    return ChannelResult(attempted=True, success=ok, error=None if ok else "SMTP delivery failed")


def _dispatch_chat(plan: NotificationPlan) -> ChannelResult:
    target = plan.recipients.chat_target
    try:
        ok = send_chat_message(target, build_chat_card(plan))
    except Exception as exc:
        logger.exception("Chat dispatch for category %s crashed", plan.category_id)
        return ChannelResult(attempted=True, success=False, error=str(exc))
    return ChannelResult(attempted=True, success=ok, error=None if ok else "Webhook delivery failed")


def dispatch_notification(plan: NotificationPlan) -> DispatchOutcome:
    """Send email and/or chat notification for a plan. Never raises."""
    outcome = DispatchOutcome(category_id=plan.category_id, recipients=list(plan.recipients.emails))

    if plan.recipients.emails:
        outcome.email = _dispatch_email(plan)
    else:
        logger.debug("Email skipped for category %s: no recipients or notifications disabled", plan.category_id)

    if plan.recipients.chat_target is not None:
        outcome.chat = _dispatch_chat(plan)

    log_id = plan.details.log_id or "-"
    if outcome.status == DispatchStatus.FAILED:
        logger.error(
            "Notification for log %s (category %s) failed: email=%s chat=%s",
            log_id, plan.category_id, outcome.email.error, outcome.chat.error,
        )
    else:
        logger.info(
            "Notification for log %s (category %s): %s, %d email recipients, chat=%s",
            log_id, plan.category_id, outcome.status.value, len(outcome.recipients), outcome.chat.attempted,
        )
    return outcome


def send_mail_by_category(db: Session, category_id: str, plant: str, subject: str, message: str) -> dict:
    """Manually trigger the category's notification outside of log creation.

    Runs synchronously; transports are bounded by their timeouts.
    """
    if not subject or len(subject) > 1024:
        raise ValidationFailed("Subject must be a non-empty string with maximum 1024 characters")
    if not message or len(message) > 4096:
        raise ValidationFailed("Message must be a non-empty string with maximum 4096 characters")
    if not get_category(db, category_id, plant):
        raise NotFound(f"Category {category_id} not found for plant {plant}")

    recipients = resolve_recipients(db, category_id, plant)
    plan = NotificationPlan(
        category_id=str(category_id),
        recipients=recipients,
        subject=subject,
        message=message,
        details=LogDetails(plant=plant),
    )
    outcome = dispatch_notification(plan)

    return {
        "category": str(category_id),
        "plant": plant,
        "recipients": "; ".join(outcome.recipients),
        "count": len(outcome.recipients),
        "status": outcome.status.value,
        "email": outcome.email.model_dump(),
        "chat": outcome.chat.model_dump(),
    }
