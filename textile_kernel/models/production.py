"""
Module: textile_kernel.models.production
Responsibility: ORM persistence for the three upstream production domains
    whose output is absorbed into inventory: thread purchases, dyeing
    processes and fabric production runs.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - ``inventory_status`` is a denormalized cache ("ADDED" once absorbed).
      Reconciliation never trusts it alone; the inventory transaction
      back-reference is authoritative.
"""

from decimal import Decimal

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from textile_kernel.db.base import TrackedBase


class ThreadPurchaseModel(TrackedBase):
    __tablename__ = "thread_purchases"

    id: Mapped[int] = mapped_column(primary_key=True)

    vendor_id: Mapped[int | None] = mapped_column(ForeignKey("parties.id"), nullable=True)

    thread_type: Mapped[str] = mapped_column(String(100), nullable=False)

    color: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # RAW or COLORED
    color_status: Mapped[str] = mapped_column(String(10), nullable=False, default="RAW")

    quantity: Mapped[Decimal] = mapped_column(nullable=False)

    unit_of_measure: Mapped[str] = mapped_column(String(20), nullable=False, default="kg")

    unit_price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    received: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    inventory_status: Mapped[str | None] = mapped_column(String(20), nullable=True)


class DyeingProcessModel(TrackedBase):
    __tablename__ = "dyeing_processes"

    id: Mapped[int] = mapped_column(primary_key=True)

    thread_purchase_id: Mapped[int | None] = mapped_column(
        ForeignKey("thread_purchases.id"),
        nullable=True,
    )

    color_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    color_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    output_quantity: Mapped[Decimal] = mapped_column(nullable=False)

    total_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    # SUCCESS / PARTIAL / FAILED / COMPLETED
    result_status: Mapped[str] = mapped_column(String(20), nullable=False)

    inventory_status: Mapped[str | None] = mapped_column(String(20), nullable=True)

    thread_purchase: Mapped["ThreadPurchaseModel | None"] = relationship(lazy="joined")


class FabricProductionModel(TrackedBase):
    __tablename__ = "fabric_productions"

    id: Mapped[int] = mapped_column(primary_key=True)

    fabric_type: Mapped[str] = mapped_column(String(100), nullable=False)

    dimensions: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    batch_number: Mapped[str] = mapped_column(String(50), nullable=False, default="")

    quantity_produced: Mapped[Decimal] = mapped_column(nullable=False)

    unit_of_measure: Mapped[str] = mapped_column(String(20), nullable=False, default="meters")

    total_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    # PENDING / IN_PROGRESS / COMPLETED / CANCELLED
    status: Mapped[str] = mapped_column(String(20), nullable=False)

    inventory_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
