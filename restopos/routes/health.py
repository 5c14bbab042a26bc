from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from restopos.db import session as db_session
from restopos.db.session import get_db

router = APIRouter(tags=["Health"])


@router.get("/health")
def health(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"status": "ok"}


@router.get("/health/db")
def db_health(db: Session = Depends(get_db)):
    """Connection pool and query counters, for spotting connection leaks."""
    db.execute(text("SELECT 1"))
    return db_session.get_db_stats()
