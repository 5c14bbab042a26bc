from fastapi import APIRouter, Depends, HTTPException
from typing import List
from sqlalchemy.orm import Session
import logging

from restopos.db.session import get_db
from restopos.models.category import Category as CategoryModel
from restopos.schemas.category import CategoryCreate, CategoryRead

router = APIRouter(prefix="/categories", tags=["Categories"])

logger = logging.getLogger(__name__)


def _read(c: CategoryModel) -> CategoryRead:
    return CategoryRead(id=c.id, name=c.name, menus_count=len(c.menus), created_at=c.created_at)


def _ensure_unique(db: Session, name: str, ignore_id: int | None = None):
    q = db.query(CategoryModel).filter(CategoryModel.name == name)
    if ignore_id is not None:
        q = q.filter(CategoryModel.id != ignore_id)
    if q.first():
        raise HTTPException(status_code=409, detail="Category name already exists")


@router.get("", response_model=List[CategoryRead])
@router.get("/", response_model=List[CategoryRead])
def list_categories(db: Session = Depends(get_db)):
    rows = db.query(CategoryModel).order_by(CategoryModel.created_at.desc(), CategoryModel.id.desc()).all()
    return [_read(c) for c in rows]


@router.post("", response_model=CategoryRead, status_code=201)
@router.post("/", response_model=CategoryRead, status_code=201)
def create_category(payload: CategoryCreate, db: Session = Depends(get_db)):
    name = payload.name.strip()
    _ensure_unique(db, name)
    try:
        c = CategoryModel(name=name)
        db.add(c)
        db.commit()
        db.refresh(c)
        logger.info("created category id=%s name=%r", c.id, c.name)
        return _read(c)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=str(e))


@router.put("/{category_id}", response_model=CategoryRead)
def update_category(category_id: int, payload: CategoryCreate, db: Session = Depends(get_db)):
    c = db.query(CategoryModel).filter(CategoryModel.id == category_id).first()
    if not c:
        raise HTTPException(status_code=404, detail="Category not found")
    name = payload.name.strip()
    _ensure_unique(db, name, ignore_id=c.id)
    try:
        c.name = name
        db.add(c)
        db.commit()
        db.refresh(c)
        return _read(c)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/{category_id}")
def delete_category(category_id: int, db: Session = Depends(get_db)):
    c = db.query(CategoryModel).filter(CategoryModel.id == category_id).first()
    if not c:
        raise HTTPException(status_code=404, detail="Category not found")
    if c.menus:
        raise HTTPException(status_code=409, detail="Cannot delete a category that still has menus")
    try:
        db.delete(c)
        db.commit()
        return {"detail": "Category deleted"}
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=str(e))
