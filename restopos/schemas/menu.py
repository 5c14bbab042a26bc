from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime


class MenuCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    category_id: int
    price: int = Field(..., ge=0)
    is_available: Optional[bool] = True


class MenuCategory(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class MenuRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    category_id: int
    category: Optional[MenuCategory] = None
    price: int
    is_available: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
