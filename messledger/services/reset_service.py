from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.orm import Session

from messledger.core.authorization import Role, ensure_capability
from messledger.core.errors import ValidationError
from messledger.models.inventory import InventoryConsumption, InventoryItem, InventoryPurchase
from messledger.models.meal_contract import Income, MealContract
from messledger.models.remittance import Remittance
from messledger.models.requests import FundRequest, InventoryRequest
from messledger.models.staff_ledger import StaffLedger, StaffLedgerEntry
from messledger.services.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)

# Children before parents.
_WIPE_ORDER = (
    InventoryPurchase,
    InventoryConsumption,
    InventoryItem,
    Remittance,
    StaffLedgerEntry,
    StaffLedger,
    Income,
    MealContract,
    FundRequest,
    InventoryRequest,
)


def reset_all_data(*, confirmed: bool, role: Role | str, db: Optional[Session] = None) -> dict[str, int]:
    """Delete every record of every entity. Returns row counts per table."""
    ensure_capability(role, "data.reset")
    if confirmed is not True:
        raise ValidationError("Reset must be explicitly confirmed", field="confirmed")

    deleted: dict[str, int] = {}
    with unit_of_work(db) as session:
        for model in _WIPE_ORDER:
            count = 0
            if model is StaffLedgerEntry:
                # Compensations reference the entries they correct.
                result = session.execute(
                    delete(StaffLedgerEntry)
                    .where(StaffLedgerEntry.compensates_entry_id.is_not(None))
                    .execution_options(synchronize_session=False)
                )
                count += int(result.rowcount or 0)
            result = session.execute(delete(model).execution_options(synchronize_session=False))
            deleted[model.__tablename__] = count + int(result.rowcount or 0)

        session.expunge_all()
        logger.warning("all data reset", extra={"deleted": deleted})
        return deleted
