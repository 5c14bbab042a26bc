from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Literal, Optional
import datetime

from restopos.models.user import RoleEnum


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: Literal["admin", "cashier"] = "cashier"


class UserUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    # left empty to keep the current password
    password: Optional[str] = Field(None, min_length=8)
    role: Literal["admin", "cashier"]


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: EmailStr
    role: RoleEnum
    created_at: Optional[datetime.datetime] = None
