"""SQLAlchemy ORM models for the reference Data Store."""

from textile_kernel.models.inventory import InventoryItemModel, InventoryTransactionModel
from textile_kernel.models.ledger import (
    BillModel,
    LedgerEntryModel,
    LedgerPaymentModel,
    PartyModel,
)
from textile_kernel.models.production import (
    DyeingProcessModel,
    FabricProductionModel,
    ThreadPurchaseModel,
)

__all__ = [
    "BillModel",
    "DyeingProcessModel",
    "FabricProductionModel",
    "InventoryItemModel",
    "InventoryTransactionModel",
    "LedgerEntryModel",
    "LedgerPaymentModel",
    "PartyModel",
    "ThreadPurchaseModel",
]
