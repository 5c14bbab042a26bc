"""Ingest of orders captured by a register while it was offline.

Each queued order goes through the same `create_order` used by the live
register, in its own unit of work, so one bad entry never blocks the rest.
"""
import logging
from typing import Any, Dict, List

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from restopos.core.errors import PosError
from restopos.schemas.sync import OfflineOrder, SyncResponse
from restopos.services import orders as order_service

logger = logging.getLogger(__name__)


def _entry_uuid(raw: Dict[str, Any]) -> str:
    if not isinstance(raw, dict):
        return ''
    return str(raw.get('client_uuid') or raw.get('uuid') or '')


def ingest_offline_orders(db: Session, raw_orders: List[Dict[str, Any]]) -> SyncResponse:
    synced = 0
    errors: List[str] = []
    failed: List[str] = []

    for index, raw in enumerate(raw_orders or []):
        client_uuid = _entry_uuid(raw)
        label = client_uuid[:8] or f"#{index + 1}"
        try:
            payload = OfflineOrder.model_validate(raw)
        except SchemaValidationError as exc:
            errors.append(f"Order {label}: invalid payload ({exc.error_count()} error(s))")
            if client_uuid:
                failed.append(client_uuid)
            continue

        try:
            # replaying an order the server already has must not duplicate it
            if order_service.find_by_uuid(db, payload.client_uuid) is not None:
                logger.info("offline order %s already synced; skipping", payload.client_uuid)
                synced += 1
                continue
            ctx = order_service.PosContext.for_cashier(db, payload.cashier_id)
            order_service.create_order(
                db,
                payload.customer_name,
                payload.items,
                ctx=ctx,
                uuid=payload.client_uuid,
                created_at=payload.created_at,
            )
            synced += 1
        except PosError as exc:
            logger.warning("offline order %s rejected: %s", payload.client_uuid, exc.message)
            errors.append(f"Order {label} ({payload.customer_name}): {exc.message}")
            failed.append(payload.client_uuid)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("offline order %s failed to store: %s", payload.client_uuid, exc)
            errors.append(f"Order {label} ({payload.customer_name}): could not be stored")
            failed.append(payload.client_uuid)

    message = f"{synced} offline order(s) synced"
    if failed:
        message += f", {len(failed)} failed"
    logger.info("offline sync: %s", message)
    return SyncResponse(status='success', synced_count=synced, errors=errors, failed=failed, message=message)
