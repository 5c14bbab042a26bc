from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime

from restopos.models.transaction import PaymentMethod, TransactionStatus
from restopos.models.transaction_item import ItemStatus
from restopos.schemas.receipt import PrintJob


# signed 32-bit INTEGER columns
MAX_ID = 2_147_483_647


class OrderItemIn(BaseModel):
    menu_id: int = Field(..., ge=1, le=MAX_ID)
    quantity: int = Field(..., ge=1, le=9_999)
    # the register sends its own price/subtotal; the server snapshots the
    # menu price instead and only keeps these for the offline wire format
    price: Optional[int] = Field(None, ge=0)
    subtotal: Optional[int] = Field(None, ge=0)


class OrderCreate(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=255)
    items: List[OrderItemIn]
    cashier_id: Optional[int] = Field(None, ge=1, le=MAX_ID)
    # set by registers that may retry the same order after a dropped response
    uuid: Optional[str] = Field(None, min_length=1, max_length=36)


class AddItemsRequest(BaseModel):
    items: List[OrderItemIn]


class PayRequest(BaseModel):
    payment_method: PaymentMethod


class CheckoutRequest(BaseModel):
    payment_method: PaymentMethod
    cash_received: Optional[int] = Field(None, ge=0)


class BatchVoidRequest(BaseModel):
    item_ids: List[int]


class TransactionItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    menu_id: Optional[int] = None
    menu_name: str
    quantity: int
    price: int
    subtotal: int
    status: ItemStatus
    is_printed: bool


class TransactionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    uuid: str
    order_number: str
    user_id: Optional[int] = None
    customer_name: str
    status: TransactionStatus
    total_amount: int
    payment_method: Optional[PaymentMethod] = None
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    items: List[TransactionItemRead] = []


class OrderResponse(BaseModel):
    message: str
    order: TransactionRead
    print_job: Optional[PrintJob] = None
    change: Optional[int] = None


class BatchVoidResponse(BaseModel):
    message: str
    orders: List[TransactionRead]
    print_jobs: List[PrintJob] = []
