"""
Seed a fresh database with the house menu and the two default accounts.

Run from the project root:

    python -m scripts.seed

Existing rows (matched by name/email) are left untouched, so the script can be
re-run safely.
"""
import logging

from restopos.db.session import SessionLocal, create_db, unit_of_work
from restopos.models.category import Category
from restopos.models.menu import Menu
from restopos.models.user import User
from restopos.services import users as user_service

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("restopos.seed")

USERS = [
    {"name": "Administrator", "email": "admin@palur.com", "password": "password", "role": "admin"},
    {"name": "Kasir Palur", "email": "kasir@palur.com", "password": "password", "role": "cashier"},
]

MENU = {
    "Makanan": [
        ("Mie Lethek Godog", 16000),
        ("Mie Lethek Goreng", 16000),
        ("Bakmi Jowo Godog", 16000),
        ("Bakmi Jowo Goreng", 16000),
        ("Nasi Goreng Jowo", 16000),
        ("Nasi Goreng Mawut", 16000),
        ("Nasi Godog", 16000),
        ("Rica-rica Ayam", 25000),
        ("Nasi Putih", 4000),
    ],
    "Minuman": [
        ("Wedang Uwuh", 8000),
        ("Wedang Uwuh Susu", 10000),
        ("Teh Manis (Panas/Es)", 4000),
        ("Jeruk (Panas/Es)", 5000),
        ("Kopi Hitam", 4000),
        ("Lemon Tea", 5000),
    ],
    "Tambahan": [
        ("Kepala Ayam", 5000),
        ("Sayap Ayam", 5000),
        ("Telor Ceplok/Dadar", 4000),
    ],
}


def seed_users(db):
    for data in USERS:
        if db.query(User).filter(User.email == data["email"]).first():
            logger.info(f"user {data['email']} exists, skipping")
            continue
        user_service.create_user(db, **data)
        logger.info(f"created user {data['email']} ({data['role']})")


def seed_menu(db):
    created = 0
    with unit_of_work(db):
        for category_name, items in MENU.items():
            category = db.query(Category).filter(Category.name == category_name).first()
            if category is None:
                category = Category(name=category_name)
                db.add(category)
                db.flush()
            for name, price in items:
                if db.query(Menu).filter(Menu.name == name).first():
                    continue
                db.add(Menu(name=name, category_id=category.id, price=price, is_available=True))
                created += 1
    logger.info(f"created {created} menu item(s)")


def main():
    create_db()
    db = SessionLocal()
    try:
        seed_users(db)
        seed_menu(db)
    finally:
        db.close()


if __name__ == "__main__":
    main()
