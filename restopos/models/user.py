from sqlalchemy import Column, Integer, String, DateTime, Enum
from restopos.core.timezone_utils import utc_now
from restopos.db.session import Base
import enum


class RoleEnum(str, enum.Enum):
    admin = "admin"
    cashier = "cashier"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(Enum(RoleEnum), nullable=False, default=RoleEnum.cashier)
    created_at = Column(DateTime, default=utc_now)
