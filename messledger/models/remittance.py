from sqlalchemy import CheckConstraint, Column, DateTime, Integer, Numeric, String, Text

from messledger.core.clock import utcnow
from messledger.database import Base

PURPOSES = ("Groceries", "Salary", "Advance", "Emergency")
STATUSES = ("sent", "confirmed")


class Remittance(Base):
    __tablename__ = "remittances"

    __table_args__ = (
        CheckConstraint("amount_inr > 0", name="ck_remittances_amount_inr_positive"),
        CheckConstraint("rubal_rate > 0", name="ck_remittances_rubal_rate_positive"),
        CheckConstraint(
            "purpose IN ('Groceries', 'Salary', 'Advance', 'Emergency')",
            name="ck_remittances_purpose_allowed",
        ),
        CheckConstraint("status IN ('sent', 'confirmed')", name="ck_remittances_status_allowed"),
    )

    id = Column(Integer, primary_key=True, index=True)

    amount_inr = Column(Numeric(14, 2), nullable=False)
    # Rate and derived RUB amount are stored together; amount_rub is never
    # recomputed on read.
    rubal_rate = Column(Numeric(12, 6), nullable=False)
    amount_rub = Column(Numeric(14, 2), nullable=False)

    sent_to = Column(String, nullable=False)
    purpose = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False, default="sent", index=True)
    proof_image_url = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)

    date = Column(DateTime, nullable=False, default=utcnow, index=True)
    confirmed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
