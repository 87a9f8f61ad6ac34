from sqlalchemy import CheckConstraint, Column, DateTime, Integer, Numeric, String, Text

from messledger.core.clock import utcnow
from messledger.database import Base

REQUEST_STATUSES = ("pending", "approved", "rejected", "fulfilled")


class FundRequest(Base):
    __tablename__ = "fund_requests"

    __table_args__ = (
        CheckConstraint("amount_rub > 0", name="ck_fund_requests_amount_rub_positive"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'fulfilled')",
            name="ck_fund_requests_status_allowed",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    amount_rub = Column(Numeric(14, 2), nullable=False)
    purpose = Column(String, nullable=False)
    status = Column(String, nullable=False, default="pending", index=True)
    requested_by = Column(String, nullable=False)
    notes = Column(Text, nullable=True)
    date_requested = Column(DateTime, nullable=False, default=utcnow, index=True)
    decided_at = Column(DateTime, nullable=True)


class InventoryRequest(Base):
    __tablename__ = "inventory_requests"

    __table_args__ = (
        CheckConstraint("quantity_needed > 0", name="ck_inventory_requests_quantity_needed_positive"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'fulfilled')",
            name="ck_inventory_requests_status_allowed",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    item_name = Column(String, nullable=False)
    quantity_needed = Column(Numeric(12, 3), nullable=False)
    unit = Column(String, nullable=False)
    status = Column(String, nullable=False, default="pending", index=True)
    requested_by = Column(String, nullable=False)
    notes = Column(Text, nullable=True)
    date_requested = Column(DateTime, nullable=False, default=utcnow, index=True)
    decided_at = Column(DateTime, nullable=True)
