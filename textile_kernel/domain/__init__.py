"""
Pure domain layer.

Value objects, ledger and inventory records with NO dependencies on the
ORM, the database, the clock or any other I/O. All domain objects are
immutable.
"""

from textile_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from textile_kernel.domain.currency import CurrencyInfo, CurrencyRegistry
from textile_kernel.domain.inventory import (
    ColorStatus,
    DyeingProcessRecord,
    FabricProductionRecord,
    InventoryItem,
    InventoryStatus,
    InventoryTransaction,
    InventoryTransactionType,
    PendingItem,
    PendingKey,
    ProductKind,
    SourceKind,
    ThreadPurchaseRecord,
)
from textile_kernel.domain.ledger import (
    BALANCE_TRACKING_KINDS,
    TERMINAL_STATUSES,
    Category,
    EntryRef,
    EntryStatus,
    LedgerEntry,
    Payment,
    PaymentMode,
    TransactionDirection,
    UnderlyingKind,
    terminal_label,
)
from textile_kernel.domain.values import Currency, Money, Quantity, to_decimal

__all__ = [
    # Values
    "Currency",
    "CurrencyInfo",
    "CurrencyRegistry",
    "Money",
    "Quantity",
    "to_decimal",
    # Clock
    "Clock",
    "DeterministicClock",
    "SystemClock",
    # Ledger
    "BALANCE_TRACKING_KINDS",
    "TERMINAL_STATUSES",
    "Category",
    "EntryRef",
    "EntryStatus",
    "LedgerEntry",
    "Payment",
    "PaymentMode",
    "TransactionDirection",
    "UnderlyingKind",
    "terminal_label",
    # Inventory
    "ColorStatus",
    "DyeingProcessRecord",
    "FabricProductionRecord",
    "InventoryItem",
    "InventoryStatus",
    "InventoryTransaction",
    "InventoryTransactionType",
    "PendingItem",
    "PendingKey",
    "ProductKind",
    "SourceKind",
    "ThreadPurchaseRecord",
]
