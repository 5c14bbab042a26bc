from fastapi import APIRouter, Depends, HTTPException
import logging
from typing import List
from sqlalchemy.orm import Session

from restopos.db.session import get_db
from restopos.models.category import Category as CategoryModel
from restopos.models.menu import Menu as MenuModel
from restopos.schemas.menu import MenuCreate, MenuRead

router = APIRouter(prefix="/menus", tags=["Menus"])

logger = logging.getLogger(__name__)


def _ensure_category(db: Session, category_id: int):
    if not db.query(CategoryModel).filter(CategoryModel.id == category_id).first():
        raise HTTPException(status_code=422, detail="Category does not exist")


@router.post("", response_model=MenuRead, status_code=201)
@router.post("/", response_model=MenuRead, status_code=201)
def create_menu(payload: MenuCreate, db: Session = Depends(get_db)):
    _ensure_category(db, payload.category_id)
    try:
        m = MenuModel(
            name=payload.name,
            category_id=payload.category_id,
            price=payload.price,
            is_available=True if payload.is_available is None else payload.is_available,
        )
        db.add(m)
        db.commit()
        db.refresh(m)
        logger.info("created menu id=%s name=%r price=%s", m.id, m.name, m.price)
        return m
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=str(e))


@router.get("", response_model=List[MenuRead])
@router.get("/", response_model=List[MenuRead])
def list_menus(db: Session = Depends(get_db)):
    return db.query(MenuModel).order_by(MenuModel.created_at.desc(), MenuModel.id.desc()).all()


@router.get("/{menu_id}", response_model=MenuRead)
def get_menu(menu_id: int, db: Session = Depends(get_db)):
    m = db.query(MenuModel).filter(MenuModel.id == menu_id).first()
    if not m:
        raise HTTPException(status_code=404, detail="Menu not found")
    return m


@router.put("/{menu_id}", response_model=MenuRead)
def update_menu(menu_id: int, payload: MenuCreate, db: Session = Depends(get_db)):
    m = db.query(MenuModel).filter(MenuModel.id == menu_id).first()
    if not m:
        raise HTTPException(status_code=404, detail="Menu not found")
    _ensure_category(db, payload.category_id)
    try:
        old_price = m.price
        m.name = payload.name
        m.category_id = payload.category_id
        # order lines keep their own price snapshot; only new lines see this
        m.price = payload.price
        if payload.is_available is not None:
            m.is_available = payload.is_available
        db.add(m)
        db.commit()
        db.refresh(m)
        if old_price != m.price:
            logger.info("menu id=%s price changed %s -> %s", m.id, old_price, m.price)
        return m
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/{menu_id}")
def delete_menu(menu_id: int, db: Session = Depends(get_db)):
    m = db.query(MenuModel).filter(MenuModel.id == menu_id).first()
    if not m:
        raise HTTPException(status_code=404, detail="Menu not found")
    try:
        db.delete(m)
        db.commit()
        return {"detail": "Menu deleted"}
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=str(e))
