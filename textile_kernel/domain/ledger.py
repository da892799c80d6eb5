"""
Ledger -- Canonical ledger entry, payment and entry reference types.

Responsibility:
    Defines the one shape every financial record is surfaced in, whatever
    table it came from: bills, manual payables and receivables, cheques,
    bank transactions, cash transactions and inventory valuations.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Produced by textile_engines.normalizer, consumed by the repair, payment
    and aggregation engines and by textile_services.ledger_service.

Invariants enforced:
    - EntryRef is a tagged identifier (kind + positive integer id); its
      string form ``"bill:123"`` round-trips exactly through parse().
    - COMPLETED, PAID and CANCELLED are terminal statuses.
    - Only BILL, MANUAL_PAYABLE and MANUAL_RECEIVABLE entries track a
      remaining balance.

Failure modes:
    - InvalidEntryRefError from EntryRef.parse() on malformed input.
    - ValueError from EntryRef() when the row id is not a positive integer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from textile_kernel.domain.values import Money
from textile_kernel.exceptions import InvalidEntryRefError


class UnderlyingKind(str, Enum):
    """Record type a ledger entry was built from."""

    BILL = "BILL"
    MANUAL_PAYABLE = "MANUAL_PAYABLE"
    MANUAL_RECEIVABLE = "MANUAL_RECEIVABLE"
    CHEQUE = "CHEQUE"
    BANK_TXN = "BANK_TXN"
    INVENTORY_VALUATION = "INVENTORY_VALUATION"
    CASH_TXN = "CASH_TXN"

    @property
    def tracks_balance(self) -> bool:
        return self in BALANCE_TRACKING_KINDS

    @property
    def ref_tag(self) -> str:
        return _KIND_TO_TAG[self]


BALANCE_TRACKING_KINDS: frozenset[UnderlyingKind] = frozenset(
    {
        UnderlyingKind.BILL,
        UnderlyingKind.MANUAL_PAYABLE,
        UnderlyingKind.MANUAL_RECEIVABLE,
    }
)


class Category(str, Enum):
    """User-facing ledger category."""

    PAYABLE = "PAYABLE"
    RECEIVABLE = "RECEIVABLE"
    TRANSACTION = "TRANSACTION"
    CHEQUE = "CHEQUE"
    INVENTORY = "INVENTORY"
    BANK = "BANK"
    # Bills whose direction is neither SALE nor PURCHASE keep their raw kind
    BILL = "BILL"


class TransactionDirection(str, Enum):
    SALE = "SALE"
    PURCHASE = "PURCHASE"
    CASH_RECEIPT = "CASH_RECEIPT"
    CASH_PAYMENT = "CASH_PAYMENT"


class EntryStatus(str, Enum):
    """
    Ledger entry status.

    PENDING / PARTIAL / COMPLETED / CANCELLED apply to manual entries, PAID
    is the terminal label for bills, and CLEARED / BOUNCED / REPLACED are the
    closed set used by cheques.
    """

    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    PAID = "PAID"
    CLEARED = "CLEARED"
    BOUNCED = "BOUNCED"
    REPLACED = "REPLACED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: frozenset[EntryStatus] = frozenset(
    {EntryStatus.COMPLETED, EntryStatus.PAID, EntryStatus.CANCELLED}
)

SETTLED_STATUSES: frozenset[EntryStatus] = frozenset(
    {EntryStatus.COMPLETED, EntryStatus.PAID}
)


def terminal_label(kind: UnderlyingKind) -> EntryStatus:
    """Status a fully settled entry of this kind carries."""
    return EntryStatus.PAID if kind is UnderlyingKind.BILL else EntryStatus.COMPLETED


class PaymentMode(str, Enum):
    CASH = "CASH"
    CHEQUE = "CHEQUE"
    ONLINE = "ONLINE"


_KIND_TO_TAG: dict[UnderlyingKind, str] = {
    UnderlyingKind.BILL: "bill",
    UnderlyingKind.MANUAL_PAYABLE: "payable",
    UnderlyingKind.MANUAL_RECEIVABLE: "receivable",
    UnderlyingKind.CHEQUE: "cheque",
    UnderlyingKind.BANK_TXN: "bank",
    UnderlyingKind.INVENTORY_VALUATION: "inventory",
    UnderlyingKind.CASH_TXN: "cash",
}
_TAG_TO_KIND: dict[str, UnderlyingKind] = {v: k for k, v in _KIND_TO_TAG.items()}


@dataclass(frozen=True, slots=True, order=True)
class EntryRef:
    """
    Tagged identifier of the record behind a ledger entry.

    Contract:
        ``kind`` selects the originating table, ``row_id`` the row in it.
        ``str(ref)`` renders the legacy composite form (``"bill:123"``) and
        ``EntryRef.parse`` reads it back.

    Guarantees:
        - Immutable, hashable and orderable
        - row_id is always a positive int
    """

    kind: UnderlyingKind
    row_id: int

    def __post_init__(self) -> None:
        if not isinstance(self.kind, UnderlyingKind):
            object.__setattr__(self, "kind", UnderlyingKind(self.kind))
        if isinstance(self.row_id, bool) or not isinstance(self.row_id, int):
            raise ValueError(f"EntryRef row_id must be int, got {self.row_id!r}")
        if self.row_id <= 0:
            raise ValueError(f"EntryRef row_id must be positive, got {self.row_id}")

    @classmethod
    def parse(cls, raw: str) -> EntryRef:
        """
        Parse the composite form ``"<tag>:<id>"``.

        Raises:
            InvalidEntryRefError: unknown tag, missing separator or a row id
                that is not a positive integer.
        """
        if not isinstance(raw, str) or ":" not in raw:
            raise InvalidEntryRefError(str(raw), "expected '<kind>:<id>'")
        tag, _, id_part = raw.strip().partition(":")
        kind = _TAG_TO_KIND.get(tag.strip().lower())
        if kind is None:
            raise InvalidEntryRefError(raw, f"unknown kind {tag!r}")
        id_part = id_part.strip()
        if not (id_part.isascii() and id_part.isdigit()) or int(id_part) <= 0:
            raise InvalidEntryRefError(raw, f"row id {id_part!r} is not a positive integer")
        return cls(kind=kind, row_id=int(id_part))

    def __str__(self) -> str:
        return f"{self.kind.ref_tag}:{self.row_id}"


@dataclass(frozen=True)
class Payment:
    """
    One settlement recorded against a ledger entry.

    The amount is validated by PaymentRecorder, not here, so that an
    invalid payment can be reported as a value instead of failing at
    construction.
    """

    amount: Money
    payment_mode: PaymentMode
    transaction_date: date
    cheque_number: str | None = None
    bank_name: str | None = None
    reference_number: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class LedgerEntry:
    """
    Canonical ledger entry.

    Contract:
        One normalized view of a bill, manual entry, cheque, bank, cash or
        inventory valuation record. Engines return new instances via
        ``dataclasses.replace``; entries are never mutated.

    Guarantees:
        - After LedgerConsistencyRepair: 0 <= remaining_amount <= total_amount
        - ``transactions`` is in application order

    Non-goals:
        - Does NOT validate itself; repair and payment engines do
    """

    ref: EntryRef
    category: Category
    underlying_kind: UnderlyingKind
    total_amount: Money
    remaining_amount: Money
    status: EntryStatus
    party: str
    entry_date: date | None = None
    due_date: date | None = None
    transaction_direction: TransactionDirection | None = None
    description: str = ""
    reference: str | None = None
    notes: str | None = None
    khata_id: int | None = None
    transactions: tuple[Payment, ...] = field(default_factory=tuple)

    @property
    def tracks_balance(self) -> bool:
        return self.underlying_kind.tracks_balance

    @property
    def is_closed(self) -> bool:
        return self.status.is_terminal

    @property
    def paid_amount(self) -> Money:
        return self.total_amount - self.remaining_amount
