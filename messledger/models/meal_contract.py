from sqlalchemy import CheckConstraint, Column, Date, DateTime, Integer, Numeric, String, Text

from messledger.core.clock import utcnow
from messledger.database import Base


class MealContract(Base):
    __tablename__ = "meal_contracts"

    __table_args__ = (
        CheckConstraint("duration_months > 0", name="ck_meal_contracts_duration_positive"),
        CheckConstraint("meal_type IN ('lunch', 'dinner', 'both')", name="ck_meal_contracts_meal_type_allowed"),
        CheckConstraint("status IN ('active', 'expired')", name="ck_meal_contracts_status_allowed"),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_ref = Column(String, nullable=False, index=True)
    meal_type = Column(String, nullable=False)
    duration_months = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False, index=True)

    amount_inr = Column(Numeric(14, 2), nullable=False)
    rubal_rate = Column(Numeric(12, 6), nullable=False)
    amount_rub = Column(Numeric(14, 2), nullable=False)

    status = Column(String, nullable=False, default="active", index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Income(Base):
    __tablename__ = "income"

    id = Column(Integer, primary_key=True, index=True)
    amount_inr = Column(Numeric(14, 2), nullable=False)
    amount_rub = Column(Numeric(14, 2), nullable=True)
    rubal_rate = Column(Numeric(12, 6), nullable=True)
    source = Column(String, nullable=False, default="Student Fee")
    description = Column(Text, nullable=True)
    student_ref = Column(String, nullable=True, index=True)
    date = Column(DateTime, nullable=False, default=utcnow)
    created_at = Column(DateTime, nullable=False, default=utcnow)
