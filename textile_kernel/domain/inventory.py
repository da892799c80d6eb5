"""
Inventory -- Upstream production records, pending items and stock movements.

Responsibility:
    Defines the plain records the three upstream production domains
    (thread purchasing, dyeing, fabric production) hand to the inventory
    reconciliation engines, the PendingItem they are reconciled into, and
    the InventoryTransaction / InventoryItem rows absorption produces.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - A PendingItem is identified by (source_kind, source_id).
    - An InventoryTransaction carries at most one source back-reference.

Failure modes:
    - ValueError from InventoryTransaction() when more than one
      back-reference is set.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from textile_kernel.domain.values import Money, Quantity


class SourceKind(str, Enum):
    """Upstream production domain an inventory item originates from."""

    THREAD_PURCHASE = "THREAD_PURCHASE"
    DYEING_PROCESS = "DYEING_PROCESS"
    FABRIC_PRODUCTION = "FABRIC_PRODUCTION"


class ProductKind(str, Enum):
    THREAD = "THREAD"
    FABRIC = "FABRIC"


class InventoryTransactionType(str, Enum):
    PURCHASE = "PURCHASE"
    PRODUCTION = "PRODUCTION"
    SALES = "SALES"
    ADJUSTMENT = "ADJUSTMENT"
    TRANSFER = "TRANSFER"


class InventoryStatus(str, Enum):
    """
    Denormalized "already in inventory" flag on upstream records.

    Only a hint. The InventoryTransaction back-reference is the
    authoritative signal because this flag may lag behind it.
    """

    PENDING = "PENDING"
    ADDED = "ADDED"


class ColorStatus(str, Enum):
    RAW = "RAW"
    COLORED = "COLORED"


PendingKey = tuple[SourceKind, int]


@dataclass(frozen=True)
class ThreadPurchaseRecord:
    purchase_id: int
    thread_type: str
    quantity: Decimal
    unit_of_measure: str = "kg"
    unit_price: Decimal = Decimal("0")
    color: str | None = None
    color_status: ColorStatus = ColorStatus.RAW
    received: bool = False
    inventory_status: InventoryStatus | None = None


@dataclass(frozen=True)
class DyeingProcessRecord:
    """A dyeing run over a purchased thread lot."""

    process_id: int
    thread_purchase_id: int | None
    output_quantity: Decimal
    result_status: str
    color_name: str | None = None
    color_code: str | None = None
    total_cost: Decimal = Decimal("0")
    thread_type: str | None = None
    unit_of_measure: str = "meters"
    inventory_status: InventoryStatus | None = None


@dataclass(frozen=True)
class FabricProductionRecord:
    production_id: int
    fabric_type: str
    quantity_produced: Decimal
    status: str
    dimensions: str = ""
    batch_number: str = ""
    unit_of_measure: str = "meters"
    total_cost: Decimal = Decimal("0")
    inventory_status: InventoryStatus | None = None


@dataclass(frozen=True)
class PendingItem:
    """
    An eligible upstream record that has no inventory transaction yet.

    Contract:
        Recomputed on every reconciliation pass; never persisted.

    Guarantees:
        - ``key`` is (source_kind, source_id), unique within one pass
    """

    source_kind: SourceKind
    source_id: int
    product_kind: ProductKind
    name: str
    quantity: Quantity

    @property
    def key(self) -> PendingKey:
        return (self.source_kind, self.source_id)

    @property
    def unit_of_measure(self) -> str:
        return self.quantity.unit


@dataclass(frozen=True)
class InventoryTransaction:
    """
    One stock movement; append-only once written.

    Guarantees:
        - at most one of the back-reference ids is set
    """

    inventory_item_id: int
    quantity_delta: Decimal
    remaining_quantity_after: Decimal
    transaction_type: InventoryTransactionType
    thread_purchase_id: int | None = None
    dyeing_process_id: int | None = None
    fabric_production_id: int | None = None
    sales_order_id: int | None = None
    transaction_id: int | None = None

    def __post_init__(self) -> None:
        refs = [
            name
            for name in (
                "thread_purchase_id",
                "dyeing_process_id",
                "fabric_production_id",
                "sales_order_id",
            )
            if getattr(self, name) is not None
        ]
        if len(refs) > 1:
            raise ValueError(
                f"InventoryTransaction may reference at most one source, got {refs}"
            )

    @property
    def source_key(self) -> PendingKey | None:
        """(source_kind, source_id) for production back-references, else None."""
        if self.thread_purchase_id is not None:
            return (SourceKind.THREAD_PURCHASE, self.thread_purchase_id)
        if self.dyeing_process_id is not None:
            return (SourceKind.DYEING_PROCESS, self.dyeing_process_id)
        if self.fabric_production_id is not None:
            return (SourceKind.FABRIC_PRODUCTION, self.fabric_production_id)
        return None


@dataclass(frozen=True)
class InventoryItem:
    """Stock row created by absorbing one pending item."""

    item_id: int
    item_code: str
    description: str
    product_kind: ProductKind
    quantity: Quantity
    cost_per_unit: Money
    sale_price: Money
    min_stock_level: int
    location: str
    source_kind: SourceKind
    source_id: int
