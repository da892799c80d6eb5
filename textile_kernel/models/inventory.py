"""
Module: textile_kernel.models.inventory
Responsibility: ORM persistence for stock items and the append-only
    inventory transaction ledger.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - At most one source back-reference per transaction
      (ck_inventory_txn_single_source).
    - Each upstream production id is absorbed at most once
      (uq_inventory_txn_thread_purchase, uq_inventory_txn_dyeing_process,
      uq_inventory_txn_fabric_production).  NULLs do not collide.

Failure modes:
    - IntegrityError on a second absorption of the same source id, even if
      the service-level AlreadyAbsorbedError check raced.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from textile_kernel.db.base import TrackedBase


class InventoryItemModel(TrackedBase):
    __tablename__ = "inventory_items"

    __table_args__ = (UniqueConstraint("item_code", name="uq_inventory_item_code"),)

    id: Mapped[int] = mapped_column(primary_key=True)

    item_code: Mapped[str] = mapped_column(String(50), nullable=False)

    description: Mapped[str] = mapped_column(String(255), nullable=False)

    # THREAD or FABRIC
    product_type: Mapped[str] = mapped_column(String(10), nullable=False)

    current_quantity: Mapped[Decimal] = mapped_column(nullable=False)

    unit_of_measure: Mapped[str] = mapped_column(String(20), nullable=False)

    min_stock_level: Mapped[int] = mapped_column(nullable=False, default=0)

    location: Mapped[str] = mapped_column(String(100), nullable=False)

    cost_per_unit: Mapped[Decimal] = mapped_column(nullable=False)

    sale_price: Mapped[Decimal] = mapped_column(nullable=False)

    last_restocked: Mapped[date | None] = mapped_column(nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    transactions: Mapped[list["InventoryTransactionModel"]] = relationship(
        back_populates="inventory_item",
        order_by="InventoryTransactionModel.id",
    )


class InventoryTransactionModel(TrackedBase):
    """One stock movement.  Rows are never updated after insert."""

    __tablename__ = "inventory_transactions"

    __table_args__ = (
        UniqueConstraint("thread_purchase_id", name="uq_inventory_txn_thread_purchase"),
        UniqueConstraint("dyeing_process_id", name="uq_inventory_txn_dyeing_process"),
        UniqueConstraint("fabric_production_id", name="uq_inventory_txn_fabric_production"),
        CheckConstraint(
            "(CASE WHEN thread_purchase_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN dyeing_process_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN fabric_production_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN sales_order_id IS NULL THEN 0 ELSE 1 END) <= 1",
            name="ck_inventory_txn_single_source",
        ),
        Index("idx_inventory_txn_item", "inventory_item_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    inventory_item_id: Mapped[int] = mapped_column(
        ForeignKey("inventory_items.id"),
        nullable=False,
    )

    # PURCHASE / PRODUCTION / SALES / ADJUSTMENT / TRANSFER
    transaction_type: Mapped[str] = mapped_column(String(20), nullable=False)

    transaction_date: Mapped[date] = mapped_column(nullable=False)

    quantity: Mapped[Decimal] = mapped_column(nullable=False)

    remaining_quantity: Mapped[Decimal] = mapped_column(nullable=False)

    unit_cost: Mapped[Decimal | None] = mapped_column(nullable=True)

    total_cost: Mapped[Decimal | None] = mapped_column(nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    thread_purchase_id: Mapped[int | None] = mapped_column(
        ForeignKey("thread_purchases.id"),
        nullable=True,
    )

    dyeing_process_id: Mapped[int | None] = mapped_column(
        ForeignKey("dyeing_processes.id"),
        nullable=True,
    )

    fabric_production_id: Mapped[int | None] = mapped_column(
        ForeignKey("fabric_productions.id"),
        nullable=True,
    )

    sales_order_id: Mapped[int | None] = mapped_column(nullable=True)

    inventory_item: Mapped["InventoryItemModel"] = relationship(back_populates="transactions")
