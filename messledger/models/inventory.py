from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from messledger.core.clock import utcnow
from messledger.database import Base


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    __table_args__ = (
        CheckConstraint("minimum_threshold >= 0", name="ck_inventory_items_minimum_threshold_nonnegative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    unit = Column(String, nullable=False)  # kg|liters|pieces|...

    # Signed: consumption may run ahead of logged purchases.
    current_stock = Column(Numeric(12, 3), nullable=False, default=0)
    minimum_threshold = Column(Numeric(12, 3), nullable=False, default=5)
    average_daily_usage = Column(Numeric(12, 3), nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class InventoryPurchase(Base):
    __tablename__ = "inventory_purchases"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_inventory_purchases_quantity_positive"),
        CheckConstraint("price_rub > 0", name="ck_inventory_purchases_price_rub_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(
        Integer,
        ForeignKey("inventory_items.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    remittance_id = Column(
        Integer,
        ForeignKey("remittances.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    quantity = Column(Numeric(12, 3), nullable=False)
    price_rub = Column(Numeric(14, 2), nullable=False)
    invoice_image = Column(Text, nullable=False)
    purchased_by = Column(String, nullable=False)
    date = Column(DateTime, nullable=False, default=utcnow, index=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    item = relationship("InventoryItem")
    remittance = relationship("Remittance")


class InventoryConsumption(Base):
    __tablename__ = "inventory_consumptions"

    __table_args__ = (
        CheckConstraint("quantity_used > 0", name="ck_inventory_consumptions_quantity_used_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(
        Integer,
        ForeignKey("inventory_items.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    quantity_used = Column(Numeric(12, 3), nullable=False)
    logged_by = Column(String, nullable=False)
    notes = Column(Text, nullable=True)
    date = Column(DateTime, nullable=False, default=utcnow, index=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    item = relationship("InventoryItem")
