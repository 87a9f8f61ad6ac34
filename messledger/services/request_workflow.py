"""
Fund and inventory requests: a forward-only status workflow with no ledger
side effects.

    pending  -> approved | rejected
    approved -> fulfilled | rejected
    rejected, fulfilled: terminal
"""
from __future__ import annotations

import logging
from typing import Any, Optional, Type, Union

from sqlalchemy.orm import Session

from messledger.core.authorization import Role, ensure_capability
from messledger.core.clock import utcnow
from messledger.core.errors import NotFoundError, StateError, ValidationError
from messledger.models.requests import REQUEST_STATUSES, FundRequest, InventoryRequest
from messledger.services.currency import positive
from messledger.services.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)

TRANSITIONS = {
    "pending": frozenset({"approved", "rejected"}),
    "approved": frozenset({"fulfilled", "rejected"}),
    "rejected": frozenset(),
    "fulfilled": frozenset(),
}

RequestModel = Union[FundRequest, InventoryRequest]


def _text(value: Any, field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required", field=field)
    return str(value).strip()


def create_fund_request(
    *,
    amount_rub: Any,
    purpose: str,
    requested_by: str,
    notes: Optional[str] = None,
    role: Role | str,
    db: Optional[Session] = None,
) -> FundRequest:
    ensure_capability(role, "request.create")

    row = FundRequest(
        amount_rub=positive(amount_rub, "amount_rub"),
        purpose=_text(purpose, "purpose"),
        requested_by=_text(requested_by, "requested_by"),
        notes=notes,
        status="pending",
        date_requested=utcnow(),
    )
    with unit_of_work(db) as session:
        session.add(row)
        session.flush()
        session.refresh(row)
        return row


def create_inventory_request(
    *,
    item_name: str,
    quantity_needed: Any,
    unit: str,
    requested_by: str,
    notes: Optional[str] = None,
    role: Role | str,
    db: Optional[Session] = None,
) -> InventoryRequest:
    ensure_capability(role, "request.create")

    row = InventoryRequest(
        item_name=_text(item_name, "item_name"),
        quantity_needed=positive(quantity_needed, "quantity_needed"),
        unit=_text(unit, "unit"),
        requested_by=_text(requested_by, "requested_by"),
        notes=notes,
        status="pending",
        date_requested=utcnow(),
    )
    with unit_of_work(db) as session:
        session.add(row)
        session.flush()
        session.refresh(row)
        return row


def advance_request(
    model: Type[RequestModel],
    request_id: int,
    new_status: str,
    *,
    notes: Optional[str] = None,
    role: Role | str,
    db: Optional[Session] = None,
) -> RequestModel:
    ensure_capability(role, "request.decide")
    if new_status not in REQUEST_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(REQUEST_STATUSES)}", field="status")

    with unit_of_work(db) as session:
        row = session.query(model).filter(model.id == int(request_id)).with_for_update().first()
        if row is None:
            raise NotFoundError(model.__name__, request_id)

        if new_status not in TRANSITIONS[row.status]:
            raise StateError(
                f"Cannot move request from '{row.status}' to '{new_status}'",
                request_id=row.id,
                current=row.status,
                requested=new_status,
            )

        previous = row.status
        row.status = new_status
        row.decided_at = utcnow()
        if notes is not None:
            row.notes = notes
        session.flush()
        session.refresh(row)

        logger.info(
            "request advanced",
            extra={"request_type": model.__tablename__, "request_id": row.id, "from": previous, "to": new_status},
        )
        return row


def delete_request(model: Type[RequestModel], request_id: int, *, role: Role | str, db: Optional[Session] = None) -> None:
    ensure_capability(role, "request.decide")

    with unit_of_work(db) as session:
        row = session.get(model, int(request_id))
        if row is None:
            raise NotFoundError(model.__name__, request_id)
        session.delete(row)
        session.flush()
