from anyio import from_thread
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from restopos.core.errors import ConflictError
from restopos.db.session import get_db
from restopos.models.category import Category as CategoryModel
from restopos.models.menu import Menu as MenuModel
from restopos.models.transaction import TransactionStatus
from restopos.schemas.category import CategoryRead
from restopos.schemas.menu import MenuRead
from restopos.schemas.sync import SyncRequest, SyncResponse
from restopos.schemas.transaction import (
    AddItemsRequest,
    BatchVoidRequest,
    BatchVoidResponse,
    CheckoutRequest,
    OrderCreate,
    OrderResponse,
    PayRequest,
    TransactionRead,
)
from restopos.services import orders as order_service
from restopos.services import receipts
from restopos.services import reports as report_service
from restopos.services.exports import format_rupiah
from restopos.services.sync import ingest_offline_orders
from restopos.utils.pubsub import publish

router = APIRouter(prefix="/pos", tags=["POS"])


def dispatch(job) -> None:
    """Hand a print job to the kitchen/printer feed from a worker-thread handler."""
    from_thread.run(publish, job.model_dump(mode="json"))


@router.get("")
@router.get("/")
def pos_index(db: Session = Depends(get_db)):
    """Everything the register screen needs: menus, categories and today's open orders."""
    menus = db.query(MenuModel).order_by(MenuModel.name.asc()).all()
    categories = db.query(CategoryModel).order_by(CategoryModel.name.asc()).all()
    active = report_service.today_orders(db, TransactionStatus.unpaid)
    return {
        "menus": [MenuRead.model_validate(m) for m in menus],
        "categories": [CategoryRead(id=c.id, name=c.name, menus_count=len(c.menus), created_at=c.created_at) for c in categories],
        "activeOrders": [TransactionRead.model_validate(o) for o in active],
    }


def _already_recorded(order) -> OrderResponse:
    # a retried register order is answered without printing a second ticket
    return OrderResponse(
        message=f"Order for {order.customer_name} already recorded",
        order=TransactionRead.model_validate(order),
    )


@router.post("/orders", response_model=OrderResponse)
def create_order(payload: OrderCreate, db: Session = Depends(get_db)):
    existing = order_service.find_by_uuid(db, payload.uuid)
    if existing is not None:
        return _already_recorded(existing)
    ctx = order_service.PosContext.for_cashier(db, payload.cashier_id)
    try:
        result = order_service.create_order(db, payload.customer_name, payload.items, ctx=ctx, uuid=payload.uuid)
    except ConflictError:
        # a concurrent retry of the same register order won the insert
        existing = order_service.find_by_uuid(db, payload.uuid)
        if existing is None:
            raise
        return _already_recorded(existing)
    job = receipts.kitchen_ticket(result.order, result.added, ctx)
    dispatch(job)
    order_service.mark_printed(db, result.added)
    return OrderResponse(
        message=f"Order for {result.order.customer_name} created",
        order=TransactionRead.model_validate(result.order),
        print_job=job,
    )


@router.post("/sync", response_model=SyncResponse)
def sync_offline_orders(payload: SyncRequest, db: Session = Depends(get_db)):
    return ingest_offline_orders(db, payload.orders)


@router.get("/unpaid", response_model=list[TransactionRead])
def unpaid_orders(db: Session = Depends(get_db)):
    return report_service.today_orders(db, TransactionStatus.unpaid)


@router.get("/orders/{order_id}", response_model=TransactionRead)
def get_order(order_id: int, db: Session = Depends(get_db)):
    return order_service.get_order(db, order_id)


@router.post("/orders/{order_id}/add", response_model=OrderResponse)
def add_items(order_id: int, payload: AddItemsRequest, db: Session = Depends(get_db)):
    result = order_service.add_items(db, order_id, payload.items)
    ctx = order_service.PosContext.for_order(result.order)
    job = receipts.kitchen_ticket(result.order, result.added, ctx, add_on=True)
    dispatch(job)
    order_service.mark_printed(db, result.added)
    return OrderResponse(
        message=f"Add-on for {result.order.customer_name} recorded",
        order=TransactionRead.model_validate(result.order),
        print_job=job,
    )


@router.post("/orders/{order_id}/checkout", response_model=OrderResponse)
def checkout(order_id: int, payload: CheckoutRequest, db: Session = Depends(get_db)):
    payment = order_service.pay(db, order_id, payload.payment_method, payload.cash_received)
    job = receipts.customer_receipt(payment)
    dispatch(job)
    message = f"Payment for {payment.order.customer_name} received. Total: {format_rupiah(payment.order.total_amount)}"
    if payment.cash_received is not None:
        message += f" | Change: {format_rupiah(payment.change)}"
    return OrderResponse(
        message=message,
        order=TransactionRead.model_validate(payment.order),
        print_job=job,
        change=payment.change,
    )


@router.post("/orders/{order_id}/pay", response_model=OrderResponse)
def pay(order_id: int, payload: PayRequest, db: Session = Depends(get_db)):
    payment = order_service.pay(db, order_id, payload.payment_method)
    return OrderResponse(
        message=f"Payment for {payment.order.customer_name} received",
        order=TransactionRead.model_validate(payment.order),
        change=payment.change,
    )


@router.post("/orders/{order_id}/cancel", response_model=OrderResponse)
def cancel(order_id: int, db: Session = Depends(get_db)):
    order = order_service.cancel(db, order_id)
    return OrderResponse(
        message=f"Order for {order.customer_name} cancelled",
        order=TransactionRead.model_validate(order),
    )


@router.delete("/item/{item_id}", response_model=OrderResponse)
def void_item(item_id: int, db: Session = Depends(get_db)):
    result = order_service.void_item(db, item_id)
    job = receipts.void_ticket(result.order, result.item)
    dispatch(job)
    return OrderResponse(
        message=f"Item {result.item.menu_name} voided",
        order=TransactionRead.model_validate(result.order),
        print_job=job,
    )


@router.post("/items/batch-void", response_model=BatchVoidResponse)
def batch_void(payload: BatchVoidRequest, db: Session = Depends(get_db)):
    results = order_service.batch_void(db, payload.item_ids)
    jobs = []
    for r in results:
        job = receipts.void_ticket(r.order, r.item)
        dispatch(job)
        jobs.append(job)
    orders = list({r.order.id: r.order for r in results}.values())
    return BatchVoidResponse(
        message=f"{len(results)} item(s) voided",
        orders=[TransactionRead.model_validate(o) for o in orders],
        print_jobs=jobs,
    )
