from pydantic import BaseModel, Field, model_validator
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime

from restopos.schemas.transaction import MAX_ID, OrderItemIn


class OfflineOrder(BaseModel):
    # the register stores the id as `uuid`; `client_uuid` is accepted too
    client_uuid: str = Field(..., min_length=1, max_length=36)
    customer_name: str = Field(..., min_length=1, max_length=255)
    items: List[OrderItemIn] = []
    created_at: Optional[datetime] = None
    cashier_id: Optional[int] = Field(None, ge=1, le=MAX_ID)

    @model_validator(mode='before')
    @classmethod
    def _accept_uuid_alias(cls, data):
        if isinstance(data, dict) and 'client_uuid' not in data and 'uuid' in data:
            data = dict(data)
            data['client_uuid'] = data.pop('uuid')
        return data


class SyncRequest(BaseModel):
    # each entry is validated on its own so one bad order cannot reject the batch
    orders: List[Dict[str, Any]]


class SyncResponse(BaseModel):
    status: Literal["success", "error"]
    synced_count: int
    errors: List[str] = []
    # uuids the server rejected; the client keeps exactly these queued
    failed: List[str] = []
    message: str
