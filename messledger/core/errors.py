"""
Typed errors raised by the ledger services.

Every error carries a machine-readable ``code`` so the HTTP layer (and tests)
can branch on type instead of message text:

    LedgerError
    +-- ValidationError
    |   +-- InvalidAmountError
    +-- NotFoundError
    +-- StateError
    +-- PermissionDeniedError
    +-- PersistenceError
    +-- ReconciliationError
"""
from __future__ import annotations

from typing import Any, Optional


class LedgerError(Exception):
    code = "LEDGER_ERROR"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"detail": self.message, "code": self.code}
        if self.details:
            payload["context"] = self.details
        return payload


class ValidationError(LedgerError):
    code = "VALIDATION_ERROR"


class InvalidAmountError(ValidationError):
    code = "INVALID_AMOUNT"

    def __init__(self, field: str, amount: Any):
        super().__init__(f"{field} must be greater than zero", field=field, amount=str(amount))
        self.field = field
        self.amount = amount


class NotFoundError(LedgerError):
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} not found", entity=entity, id=entity_id)
        self.entity = entity
        self.entity_id = entity_id


class StateError(LedgerError):
    code = "INVALID_STATE"


class PermissionDeniedError(LedgerError):
    code = "PERMISSION_DENIED"

    def __init__(self, role: str, capability: str):
        super().__init__(f"Role '{role}' may not perform '{capability}'", role=role, capability=capability)
        self.role = role
        self.capability = capability


class PersistenceError(LedgerError):
    code = "PERSISTENCE_UNAVAILABLE"


class ReconciliationError(LedgerError):
    """A composite mutation could not apply its cross-entity side effect.

    The session owner must roll back; ``step`` names the side effect that failed.
    """

    code = "RECONCILIATION_FAILED"

    def __init__(self, message: str, *, step: str, cause: Optional[BaseException] = None, **details: Any):
        super().__init__(message, step=step, **details)
        self.step = step
        self.cause = cause
