from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from messledger.core.clock import utcnow
from messledger.database import Base

ENTRY_TYPES = ("salary_paid", "advance_issued", "setup_recovered")


class StaffLedger(Base):
    __tablename__ = "staff_ledgers"

    __table_args__ = (
        CheckConstraint("monthly_salary_rub > 0", name="ck_staff_ledgers_monthly_salary_positive"),
        CheckConstraint("setup_cost_owed_rub >= 0", name="ck_staff_ledgers_setup_cost_owed_nonnegative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    staff_name = Column(String, nullable=False, index=True)
    monthly_salary_rub = Column(Numeric(14, 2), nullable=False)

    # Cumulative; moved only by history entries.
    salary_paid_rub = Column(Numeric(14, 2), nullable=False, default=0)
    advances_rub = Column(Numeric(14, 2), nullable=False, default=0)
    setup_cost_owed_rub = Column(Numeric(14, 2), nullable=False, default=0)
    setup_cost_paid_rub = Column(Numeric(14, 2), nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    entries = relationship(
        "StaffLedgerEntry",
        back_populates="staff_ledger",
        order_by="StaffLedgerEntry.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class StaffLedgerEntry(Base):
    __tablename__ = "staff_ledger_entries"

    __table_args__ = (
        CheckConstraint("amount <> 0", name="ck_staff_ledger_entries_amount_nonzero"),
        CheckConstraint(
            "entry_type IN ('salary_paid', 'advance_issued', 'setup_recovered')",
            name="ck_staff_ledger_entries_type_allowed",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    staff_ledger_id = Column(
        Integer,
        ForeignKey("staff_ledgers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    entry_type = Column(String, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)  # negative only for compensations
    note = Column(Text, nullable=True)
    date = Column(DateTime, nullable=False, default=utcnow)

    compensates_entry_id = Column(
        Integer,
        ForeignKey("staff_ledger_entries.id", ondelete="CASCADE"),
        nullable=True,
        unique=True,
    )

    staff_ledger = relationship("StaffLedger", back_populates="entries")
