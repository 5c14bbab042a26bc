from passlib.context import CryptContext
from sqlalchemy.orm import Session

from restopos.core.errors import ConflictError, NotFoundError
from restopos.db.session import unit_of_work
from restopos.models.user import RoleEnum, User

# Use a scheme without the 72-byte password limit as the preferred hashing algorithm.
# Keep bcrypt in the list so existing bcrypt hashes (if any) can still be verified.
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated="auto")


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    try:
        return pwd_context.hash(password)
    except ValueError as exc:
        # bcrypt backends raise ValueError for passwords over 72 bytes
        raise ValueError("password too long to hash; choose a shorter password") from exc


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def _ensure_email_free(db: Session, email: str, ignore_id: int | None = None):
    q = db.query(User).filter(User.email == email)
    if ignore_id is not None:
        q = q.filter(User.id != ignore_id)
    if q.first():
        raise ConflictError("Email already registered")


def create_user(db: Session, name: str, email: str, password: str, role: str = "cashier") -> User:
    with unit_of_work(db):
        _ensure_email_free(db, email)
        user = User(name=name, email=email, password_hash=get_password_hash(password), role=RoleEnum(role))
        db.add(user)
    return user


def update_user(db: Session, user_id: int, name: str, email: str, role: str, password: str | None = None) -> User:
    with unit_of_work(db):
        user = get_user(db, user_id)
        _ensure_email_free(db, email, ignore_id=user.id)
        user.name = name
        user.email = email
        user.role = RoleEnum(role)
        # Only update password if provided
        if password:
            user.password_hash = get_password_hash(password)
    return user


def delete_user(db: Session, user_id: int) -> None:
    with unit_of_work(db):
        user = get_user(db, user_id)
        db.delete(user)
