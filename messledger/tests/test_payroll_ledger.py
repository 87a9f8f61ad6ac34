from decimal import Decimal

import pytest

from messledger.core.errors import InvalidAmountError, NotFoundError, PermissionDeniedError, StateError
from messledger.database import SessionLocal
from messledger.models.staff_ledger import StaffLedger, StaffLedgerEntry
from messledger.services import payroll_ledger


def _staff(salary="5000", setup=None) -> int:
    return payroll_ledger.create_staff_ledger(
        staff_name="Olga",
        monthly_salary_rub=salary,
        setup_cost_owed_rub=setup,
        role="admin",
    ).id


def test_payments_reduce_pending_balance_and_append_history():
    staff_id = _staff("5000", setup="2000")

    payroll_ledger.record_salary_payment(staff_id, "1000", role="manager")
    payroll_ledger.record_advance(staff_id, "300", role="manager")
    ledger = payroll_ledger.record_setup_recovery(staff_id, "200", role="admin")

    assert Decimal(str(ledger.salary_paid_rub)) == Decimal("1000")
    assert Decimal(str(ledger.advances_rub)) == Decimal("300")
    assert Decimal(str(ledger.setup_cost_paid_rub)) == Decimal("200")
    assert payroll_ledger.pending_balance(ledger) == Decimal("3500")
    assert payroll_ledger.setup_owed_remaining(ledger) == Decimal("1800")

    db = SessionLocal()
    try:
        entries = payroll_ledger.history(db, staff_id)
    finally:
        db.close()
    assert [e.entry_type for e in entries] == ["salary_paid", "advance_issued", "setup_recovered"]
    assert len(entries) == 3


@pytest.mark.parametrize("amount", ["0", "-10"])
def test_non_positive_payment_is_rejected_without_side_effects(amount):
    staff_id = _staff()
    with pytest.raises(InvalidAmountError):
        payroll_ledger.record_salary_payment(staff_id, amount, role="admin")

    db = SessionLocal()
    try:
        assert db.query(StaffLedgerEntry).count() == 0
        assert Decimal(str(db.get(StaffLedger, staff_id).salary_paid_rub)) == Decimal("0")
    finally:
        db.close()


def test_unknown_staff_is_not_found():
    with pytest.raises(NotFoundError):
        payroll_ledger.record_advance(424242, "100", role="admin")


def test_cook_cannot_pay_staff():
    staff_id = _staff()
    with pytest.raises(PermissionDeniedError):
        payroll_ledger.record_salary_payment(staff_id, "100", role="cook")


def test_setup_cost_can_be_set_once():
    staff_id = _staff()
    ledger = payroll_ledger.set_setup_cost(staff_id, "1500", role="admin")
    assert Decimal(str(ledger.setup_cost_owed_rub)) == Decimal("1500")

    with pytest.raises(StateError):
        payroll_ledger.set_setup_cost(staff_id, "900", role="admin")


def test_compensation_reverses_a_payment_once():
    staff_id = _staff("5000")
    payroll_ledger.record_salary_payment(staff_id, "1200", role="manager")

    db = SessionLocal()
    try:
        original = payroll_ledger.history(db, staff_id)[0]
    finally:
        db.close()

    compensation = payroll_ledger.compensate_entry(original.id, "typo", role="admin")
    assert Decimal(str(compensation.amount)) == Decimal("-1200")
    assert compensation.compensates_entry_id == original.id
    assert compensation.entry_type == "salary_paid"

    db = SessionLocal()
    try:
        ledger = db.get(StaffLedger, staff_id)
        assert Decimal(str(ledger.salary_paid_rub)) == Decimal("0")
        assert payroll_ledger.pending_balance(ledger) == Decimal("5000")
        assert len(payroll_ledger.history(db, staff_id)) == 2
    finally:
        db.close()

    with pytest.raises(StateError):
        payroll_ledger.compensate_entry(original.id, role="admin")
    with pytest.raises(StateError):
        payroll_ledger.compensate_entry(compensation.id, role="admin")


def test_delete_staff_ledger_removes_history():
    staff_id = _staff()
    payroll_ledger.record_salary_payment(staff_id, "100", role="admin")
    db = SessionLocal()
    try:
        entry_id = payroll_ledger.history(db, staff_id)[0].id
    finally:
        db.close()
    payroll_ledger.compensate_entry(entry_id, role="admin")

    payroll_ledger.delete_staff_ledger(staff_id, role="admin")

    db = SessionLocal()
    try:
        assert db.get(StaffLedger, staff_id) is None
        assert db.query(StaffLedgerEntry).count() == 0
    finally:
        db.close()


def test_payroll_totals_flag_overpaid_staff():
    a = _staff("1000")
    _staff("2000")
    payroll_ledger.record_salary_payment(a, "900", role="admin")
    payroll_ledger.record_advance(a, "300", role="admin")

    db = SessionLocal()
    try:
        totals = payroll_ledger.payroll_totals(db)
    finally:
        db.close()

    assert totals.staff_count == 2
    assert totals.total_paid_rub == Decimal("900")
    assert totals.total_advances_rub == Decimal("300")
    # (1000 - 1200) + 2000
    assert totals.total_pending_rub == Decimal("1800")
    assert totals.overpaid_staff == 1
