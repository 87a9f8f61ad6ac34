from messledger.models.inventory import InventoryConsumption, InventoryItem, InventoryPurchase
from messledger.models.meal_contract import Income, MealContract
from messledger.models.remittance import Remittance
from messledger.models.requests import FundRequest, InventoryRequest
from messledger.models.staff_ledger import StaffLedger, StaffLedgerEntry

__all__ = [
    "FundRequest",
    "Income",
    "InventoryConsumption",
    "InventoryItem",
    "InventoryPurchase",
    "InventoryRequest",
    "MealContract",
    "Remittance",
    "StaffLedger",
    "StaffLedgerEntry",
]
