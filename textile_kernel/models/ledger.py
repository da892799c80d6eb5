"""
Module: textile_kernel.models.ledger
Responsibility: ORM persistence for the financial records the unified ledger
    is built from: parties, bills, manual/cheque/bank/cash ledger entries and
    the payments recorded against them.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, engines, or outer layers.

Invariants enforced:
    - A payment row belongs to exactly one bill or one ledger entry
      (ck_ledger_payment_owner).
    - Amounts are Numeric(38, 9) via the Base type_annotation_map.

Failure modes:
    - IntegrityError when a payment names both or neither owner.

Audit relevance:
    Bills keep the cumulative paid_amount; manual entries keep
    remaining_amount.  The normalizer reads both shapes and the payment
    service writes the balance and the payment row in one transaction.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from textile_kernel.db.base import TrackedBase


class PartyModel(TrackedBase):
    """A vendor or customer the mills trade with."""

    __tablename__ = "parties"

    id: Mapped[int] = mapped_column(primary_key=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # VENDOR or CUSTOMER
    role: Mapped[str] = mapped_column(String(20), nullable=False)


class BillModel(TrackedBase):
    """
    Sale or purchase bill.

    Contract:
        ``amount`` is the billed total and ``paid_amount`` the cumulative sum
        of payments; the remaining balance is derived, never stored.
    """

    __tablename__ = "bills"

    __table_args__ = (
        Index("idx_bill_khata", "khata_id"),
        Index("idx_bill_status", "status"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    bill_number: Mapped[str] = mapped_column(String(50), nullable=False)

    # SALE / PURCHASE; anything else is passed through as-is
    bill_type: Mapped[str] = mapped_column(String(20), nullable=False)

    party_id: Mapped[int | None] = mapped_column(
        ForeignKey("parties.id"),
        nullable=True,
    )

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    paid_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")

    bill_date: Mapped[date] = mapped_column(nullable=False)

    due_date: Mapped[date | None] = mapped_column(nullable=True)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    khata_id: Mapped[int | None] = mapped_column(nullable=True)

    party: Mapped["PartyModel | None"] = relationship(lazy="joined")

    payments: Mapped[list["LedgerPaymentModel"]] = relationship(
        back_populates="bill",
        order_by="LedgerPaymentModel.id",
    )


class LedgerEntryModel(TrackedBase):
    """
    Manual payable/receivable, cheque, bank, cash or inventory valuation row.

    Contract:
        ``entry_type`` holds the UnderlyingKind value.  ``party_name`` is the
        structured home of a manually typed counter-party; older rows only
        carry it inside ``notes`` / ``reference``.
    """

    __tablename__ = "ledger_entries"

    __table_args__ = (
        Index("idx_ledger_entry_khata", "khata_id"),
        Index("idx_ledger_entry_type", "entry_type"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    entry_type: Mapped[str] = mapped_column(String(30), nullable=False)

    description: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    remaining_amount: Mapped[Decimal] = mapped_column(nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")

    entry_date: Mapped[date] = mapped_column(nullable=False)

    due_date: Mapped[date | None] = mapped_column(nullable=True)

    reference: Mapped[str | None] = mapped_column(String(255), nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    party_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    vendor_id: Mapped[int | None] = mapped_column(ForeignKey("parties.id"), nullable=True)

    customer_id: Mapped[int | None] = mapped_column(ForeignKey("parties.id"), nullable=True)

    # SALE / PURCHASE / CASH_RECEIPT / CASH_PAYMENT where meaningful
    transaction_type: Mapped[str | None] = mapped_column(String(20), nullable=True)

    khata_id: Mapped[int | None] = mapped_column(nullable=True)

    vendor: Mapped["PartyModel | None"] = relationship(
        foreign_keys=[vendor_id],
        lazy="joined",
    )

    customer: Mapped["PartyModel | None"] = relationship(
        foreign_keys=[customer_id],
        lazy="joined",
    )

    payments: Mapped[list["LedgerPaymentModel"]] = relationship(
        back_populates="ledger_entry",
        order_by="LedgerPaymentModel.id",
    )


class LedgerPaymentModel(TrackedBase):
    """One payment or receipt recorded against a bill or a ledger entry."""

    __tablename__ = "ledger_payments"

    __table_args__ = (
        CheckConstraint(
            "(bill_id IS NULL) <> (ledger_entry_id IS NULL)",
            name="ck_ledger_payment_owner",
        ),
        Index("idx_ledger_payment_bill", "bill_id"),
        Index("idx_ledger_payment_entry", "ledger_entry_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    bill_id: Mapped[int | None] = mapped_column(ForeignKey("bills.id"), nullable=True)

    ledger_entry_id: Mapped[int | None] = mapped_column(
        ForeignKey("ledger_entries.id"),
        nullable=True,
    )

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    payment_mode: Mapped[str] = mapped_column(String(10), nullable=False)

    transaction_date: Mapped[date] = mapped_column(nullable=False)

    cheque_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    bank_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    bill: Mapped["BillModel | None"] = relationship(back_populates="payments")

    ledger_entry: Mapped["LedgerEntryModel | None"] = relationship(
        back_populates="payments",
    )
