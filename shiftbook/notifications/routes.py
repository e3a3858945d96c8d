"""Category recipient lookup and manual notification routes."""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..audit.service import audit
from ..config import settings
from ..database.base import get_db
from ..rate_limit import limiter
from .resolver import get_mail_recipients
from .schemas import SendMailRequest
from .service import send_mail_by_category

router = APIRouter(prefix="/categories", tags=["notifications"])


@router.get("/{category_id}/recipients")
def mail_recipients(category_id: str, plant: str = Query(...), db: Session = Depends(get_db)):
    return JSONResponse(get_mail_recipients(db, category_id, plant))


@router.post("/{category_id}/send-mail")
@limiter.limit(settings.rate_limit_send_mail)
def send_mail(category_id: str, request: Request, body: SendMailRequest, db: Session = Depends(get_db)):
    result = send_mail_by_category(db, category_id, body.plant, body.subject, body.message)
    audit(db, request, "category_send_mail", f"category={category_id}, plant={body.plant}, status={result['status']}")
    db.commit()
    return JSONResponse(result)
