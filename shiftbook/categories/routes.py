"""Category administration routes."""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..audit.service import audit
from ..database.base import get_db
from ..errors import NotFound
from .schemas import CategoryPayload
from .service import (
    FALLBACK_LANGUAGE,
    category_to_dict,
    create_category,
    delete_category,
    get_category,
    list_categories,
    update_category,
)

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("")
def list_plant_categories(
    plant: str = Query(...),
    lang: str = Query(FALLBACK_LANGUAGE),
    db: Session = Depends(get_db),
):
    return JSONResponse({"categories": [category_to_dict(c, lang) for c in list_categories(db, plant)]})


@router.post("")
def add_category(request: Request, body: CategoryPayload, db: Session = Depends(get_db)):
    category = create_category(db, body)
    audit(db, request, "category_create", f"category={category.id}, plant={category.plant}")
    db.commit()
    return JSONResponse({"ok": True, "category": category_to_dict(category)}, status_code=201)


@router.get("/{category_id}")
def get_single_category(category_id: str, lang: str = Query(FALLBACK_LANGUAGE), db: Session = Depends(get_db)):
    category = get_category(db, category_id)
    if not category:
        raise NotFound(f"Category {category_id} not found")
    return JSONResponse({"category": category_to_dict(category, lang)})


@router.put("/{category_id}")
def edit_category(category_id: str, request: Request, body: CategoryPayload, db: Session = Depends(get_db)):
    category = update_category(db, category_id, body, replace_chat="chat_channel" in body.model_fields_set)
    audit(db, request, "category_update", f"category={category.id}")
    db.commit()
    return JSONResponse({"ok": True, "category": category_to_dict(category)})


@router.delete("/{category_id}")
def remove_category(category_id: str, request: Request, db: Session = Depends(get_db)):
    delete_category(db, category_id)
    audit(db, request, "category_delete", f"category={category_id}")
    db.commit()
    return JSONResponse({"ok": True})
