"""
Remittances: INR sent to Russia, converted to RUB at a rate fixed per record.

``amount_rub`` is derived at write time and stored with the rate that produced
it. Only ``confirmed`` remittances count toward budget sums, and the
``sent -> confirmed`` transition is one-way.

Edit policy: when an edit touches ``amount_inr`` or ``rubal_rate`` the stored
``amount_rub`` is recomputed from the resulting pair, so the frozen snapshot
always matches the rate stored beside it. Edits never change ``status``.

If db is provided, functions will NOT commit/close. Caller owns the transaction.
"""
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping, Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from messledger.core.authorization import Role, ensure_capability
from messledger.core.clock import as_naive_utc, utcnow
from messledger.core.errors import NotFoundError, StateError, ValidationError
from messledger.models.inventory import InventoryPurchase
from messledger.models.remittance import PURPOSES, Remittance
from messledger.services.currency import inr_to_rub, positive, to_decimal
from messledger.services.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset(
    {"amount_inr", "rubal_rate", "sent_to", "purpose", "proof_image_url", "notes", "date"}
)


def _purpose(value: Any) -> str:
    if value not in PURPOSES:
        raise ValidationError(
            f"purpose must be one of {', '.join(PURPOSES)}",
            field="purpose",
            value=value,
        )
    return str(value)


def _required_text(value: Any, field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required", field=field)
    return str(value).strip()


def _get(db: Session, remittance_id: int) -> Remittance:
    remittance = db.get(Remittance, int(remittance_id))
    if remittance is None:
        raise NotFoundError("Remittance", remittance_id)
    return remittance


def create_remittance(
    *,
    amount_inr: Any,
    rubal_rate: Any,
    sent_to: str,
    purpose: str,
    proof_image_url: Optional[str],
    notes: Optional[str] = None,
    date: Optional[datetime] = None,
    role: Role | str,
    db: Optional[Session] = None,
) -> Remittance:
    ensure_capability(role, "remittance.write")

    inr = positive(amount_inr, "amount_inr")
    rate = positive(rubal_rate, "rubal_rate")

    remittance = Remittance(
        amount_inr=inr,
        rubal_rate=rate,
        amount_rub=inr_to_rub(inr, rate),
        sent_to=_required_text(sent_to, "sent_to"),
        purpose=_purpose(purpose),
        status="sent",
        proof_image_url=_required_text(proof_image_url, "proof_image_url"),
        notes=notes,
        date=as_naive_utc(date) or utcnow(),
    )

    with unit_of_work(db) as session:
        session.add(remittance)
        session.flush()
        session.refresh(remittance)

        logger.info(
            "remittance recorded",
            extra={
                "remittance_id": remittance.id,
                "purpose": remittance.purpose,
                "amount_inr": str(inr),
                "rubal_rate": str(rate),
                "amount_rub": str(remittance.amount_rub),
            },
        )
        return remittance


def confirm_remittance(remittance_id: int, *, role: Role | str, db: Optional[Session] = None) -> Remittance:
    ensure_capability(role, "remittance.confirm")

    with unit_of_work(db) as session:
        _get(session, remittance_id)

        # Conditional update: two concurrent confirms cannot both succeed.
        result = session.execute(
            update(Remittance)
            .where(Remittance.id == int(remittance_id), Remittance.status == "sent")
            .values(status="confirmed", confirmed_at=utcnow(), updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise StateError("Remittance is already confirmed", remittance_id=int(remittance_id))

        remittance = (
            session.query(Remittance).filter(Remittance.id == int(remittance_id)).populate_existing().one()
        )
        logger.info(
            "remittance confirmed",
            extra={"remittance_id": remittance.id, "purpose": remittance.purpose, "amount_rub": str(remittance.amount_rub)},
        )
        return remittance


def update_remittance(
    remittance_id: int,
    changes: Mapping[str, Any],
    *,
    role: Role | str,
    db: Optional[Session] = None,
) -> Remittance:
    ensure_capability(role, "remittance.write")

    if "status" in changes:
        raise StateError("Status changes only through confirmation", field="status")
    if "amount_rub" in changes:
        raise ValidationError("amount_rub is derived from amount_inr and rubal_rate", field="amount_rub")
    unknown = sorted(set(changes) - EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unsupported fields: {', '.join(unknown)}", fields=unknown)

    with unit_of_work(db) as session:
        remittance = _get(session, remittance_id)

        if "amount_inr" in changes:
            remittance.amount_inr = positive(changes["amount_inr"], "amount_inr")
        if "rubal_rate" in changes:
            remittance.rubal_rate = positive(changes["rubal_rate"], "rubal_rate")
        if "amount_inr" in changes or "rubal_rate" in changes:
            previous = to_decimal(remittance.amount_rub, "amount_rub")
            remittance.amount_rub = inr_to_rub(remittance.amount_inr, remittance.rubal_rate)
            logger.info(
                "remittance amount recomputed",
                extra={
                    "remittance_id": remittance.id,
                    "previous_amount_rub": str(previous),
                    "amount_rub": str(remittance.amount_rub),
                    "status": remittance.status,
                },
            )
        if "sent_to" in changes:
            remittance.sent_to = _required_text(changes["sent_to"], "sent_to")
        if "purpose" in changes:
            remittance.purpose = _purpose(changes["purpose"])
        if "proof_image_url" in changes:
            remittance.proof_image_url = _required_text(changes["proof_image_url"], "proof_image_url")
        if "notes" in changes:
            remittance.notes = changes["notes"]
        if "date" in changes and changes["date"] is not None:
            remittance.date = as_naive_utc(changes["date"])

        session.flush()
        session.refresh(remittance)
        return remittance


def delete_remittance(remittance_id: int, *, role: Role | str, db: Optional[Session] = None) -> None:
    ensure_capability(role, "remittance.write")

    with unit_of_work(db) as session:
        remittance = _get(session, remittance_id)

        linked = (
            session.query(func.count(InventoryPurchase.id))
            .filter(InventoryPurchase.remittance_id == remittance.id)
            .scalar()
        )
        if linked:
            raise StateError(
                "Remittance is linked to purchases",
                remittance_id=remittance.id,
                linked_purchases=int(linked),
            )

        session.delete(remittance)
        session.flush()
        logger.info("remittance deleted", extra={"remittance_id": int(remittance_id)})


def sum_confirmed(db: Session, purpose: Optional[str] = None) -> Decimal:
    """SUM(amount_rub) over confirmed remittances, optionally for one purpose."""
    q = db.query(func.coalesce(func.sum(Remittance.amount_rub), 0)).filter(Remittance.status == "confirmed")
    if purpose is not None:
        q = q.filter(Remittance.purpose == _purpose(purpose))
    return to_decimal(q.scalar(), "amount_rub")


def confirmed_totals(db: Session) -> dict[str, Decimal]:
    """Lifetime confirmed INR sent and RUB received."""
    row = (
        db.query(
            func.coalesce(func.sum(Remittance.amount_inr), 0).label("total_inr"),
            func.coalesce(func.sum(Remittance.amount_rub), 0).label("total_rub"),
        )
        .filter(Remittance.status == "confirmed")
        .one()
    )
    return {
        "total_inr": to_decimal(row.total_inr, "total_inr"),
        "total_rub": to_decimal(row.total_rub, "total_rub"),
    }
