import os
import tempfile

# Point the app at a throwaway SQLite file before anything imports restopos.
_tmpdir = tempfile.mkdtemp(prefix="restopos-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmpdir, 'test.db')}"
os.environ.setdefault("LOCAL_TIMEZONE", "Asia/Jakarta")
os.environ.setdefault("REQUEST_LOG_VERBOSE", "0")

import pytest
from fastapi.testclient import TestClient

from restopos.db.session import SessionLocal, create_db, drop_db
from restopos.models.category import Category
from restopos.models.menu import Menu


@pytest.fixture
def db():
    drop_db()
    create_db()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    from restopos.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def menus(db):
    """Menu A (16000), menu B (8000) and an unavailable menu C."""
    food = Category(name="Makanan")
    drinks = Category(name="Minuman")
    db.add_all([food, drinks])
    db.flush()
    a = Menu(name="Bakmi Jowo Godog", category_id=food.id, price=16000, is_available=True)
    b = Menu(name="Wedang Uwuh", category_id=drinks.id, price=8000, is_available=True)
    c = Menu(name="Rica-rica Ayam", category_id=food.id, price=25000, is_available=False)
    db.add_all([a, b, c])
    db.commit()
    return {"A": a, "B": b, "C": c, "food": food, "drinks": drinks}
