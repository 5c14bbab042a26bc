from pydantic import BaseModel
from typing import List, Literal, Optional


class ReceiptLine(BaseModel):
    name: str
    qty: int
    price: Optional[int] = None
    subtotal: Optional[int] = None
    status: Optional[str] = None


class PrintJob(BaseModel):
    """Display structure handed to the printer/kitchen collaborator."""

    type: Literal["kitchen", "customer", "void"]
    title: str
    subtitle: Optional[str] = None
    store_name: str
    date: str
    cashier: str
    customer_name: str
    order_number: str
    items: List[ReceiptLine]
    total: Optional[int] = None
    payment_method: Optional[str] = None
    cash_received: Optional[int] = None
    change: Optional[int] = None
