from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from restopos.core.timezone_utils import utc_now
from restopos.db.session import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False)
    created_at = Column(DateTime, default=utc_now)

    menus = relationship('Menu', back_populates='category', lazy='selectin')
