"""
textile_engines.aggregation -- Summary statistics over normalized ledger entries.

Responsibility:
    Fold a collection of normalized, repaired LedgerEntry values into the
    ledger dashboard figures: outstanding payables and receivables, overdue
    count and amount, trailing-window activity, and per-kind counters for
    bills, cheques, inventory valuations, bank and cash transactions.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  "Now" is an explicit
    parameter; the engine never reads the clock.

Invariants enforced:
    - Every reducer is a commutative sum or count: the result does not
      depend on iteration order.
    - Overdue: balance-tracking entry, due_date before today, status not
      terminal, remaining above tolerance.
    - Recent activity: entry_date within the trailing window (inclusive).
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal

from textile_engines.tracer import traced_engine
from textile_kernel.domain.ledger import (
    SETTLED_STATUSES,
    Category,
    EntryStatus,
    LedgerEntry,
    TransactionDirection,
    UnderlyingKind,
)
from textile_kernel.domain.values import Currency, Money
from textile_kernel.logging_config import get_logger

logger = get_logger("engines.aggregation")


@dataclass(frozen=True)
class LedgerSummary:
    """Dashboard figures for one khata (or the whole ledger)."""

    as_of: date
    total_payables: Money
    total_receivables: Money
    overdue_count: int
    overdue_amount: Money
    recent_activity_count: int
    bills_total: int
    bills_paid: int
    cheques_total: int
    cheques_pending: int
    inventory_value: Money
    bank_balance: Money
    cash_in_hand: Money
    recent_by_category: dict[Category, int] = field(default_factory=dict)
    entry_count_by_category: dict[Category, int] = field(default_factory=dict)

    @property
    def entry_count(self) -> int:
        return sum(self.entry_count_by_category.values())


class LedgerAggregator:
    """
    Computes LedgerSummary values.

    Contract:
        ``summarize(entries, now)`` is a pure fold over ``entries``.

    Guarantees:
        - Cancelled entries add nothing to payables, receivables or overdue.
        - Money results are in the aggregator's currency.

    Non-goals:
        - Does NOT repair entries; callers pass repaired entries.
    """

    def __init__(
        self,
        currency: str | Currency = "PKR",
        tolerance: Decimal = Decimal("0.005"),
        recent_days: int = 7,
    ) -> None:
        if recent_days <= 0:
            raise ValueError(f"recent_days must be positive, got {recent_days}")
        self._currency = currency if isinstance(currency, Currency) else Currency(currency)
        self._tolerance = tolerance
        self._recent_days = recent_days

    @traced_engine("ledger_aggregator", "1.0")
    def summarize(
        self,
        entries: Iterable[LedgerEntry],
        now: datetime | date,
    ) -> LedgerSummary:
        today = now.date() if isinstance(now, datetime) else now
        window_start = today - timedelta(days=self._recent_days)
        zero = Money.zero(self._currency)

        payables = receivables = overdue_amount = zero
        inventory_value = bank_balance = cash_in_hand = zero
        overdue_count = recent_count = 0
        bills_total = bills_paid = cheques_total = cheques_pending = 0
        by_category: Counter[Category] = Counter()
        recent_by_category: Counter[Category] = Counter()

        for entry in entries:
            by_category[entry.category] += 1
            remaining = entry.remaining_amount
            cancelled = entry.status is EntryStatus.CANCELLED

            if not cancelled:
                if entry.category is Category.PAYABLE:
                    payables += remaining
                elif entry.category is Category.RECEIVABLE:
                    receivables += remaining

            if self._is_overdue(entry, today):
                overdue_count += 1
                overdue_amount += remaining

            if entry.entry_date is not None and entry.entry_date >= window_start:
                recent_count += 1
                recent_by_category[entry.category] += 1

            kind = entry.underlying_kind
            if kind is UnderlyingKind.BILL:
                bills_total += 1
                if entry.status in SETTLED_STATUSES or entry.status is EntryStatus.CLEARED:
                    bills_paid += 1
            elif kind is UnderlyingKind.CHEQUE:
                cheques_total += 1
                if entry.status is EntryStatus.PENDING:
                    cheques_pending += 1
            elif kind is UnderlyingKind.INVENTORY_VALUATION:
                inventory_value += entry.total_amount
            elif kind is UnderlyingKind.BANK_TXN:
                bank_balance += entry.total_amount
            elif kind is UnderlyingKind.CASH_TXN:
                if entry.transaction_direction is TransactionDirection.CASH_RECEIPT:
                    cash_in_hand += entry.total_amount
                elif entry.transaction_direction is TransactionDirection.CASH_PAYMENT:
                    cash_in_hand -= entry.total_amount

        summary = LedgerSummary(
            as_of=today,
            total_payables=payables,
            total_receivables=receivables,
            overdue_count=overdue_count,
            overdue_amount=overdue_amount,
            recent_activity_count=recent_count,
            bills_total=bills_total,
            bills_paid=bills_paid,
            cheques_total=cheques_total,
            cheques_pending=cheques_pending,
            inventory_value=inventory_value,
            bank_balance=bank_balance,
            cash_in_hand=cash_in_hand,
            recent_by_category=dict(recent_by_category),
            entry_count_by_category=dict(by_category),
        )

        logger.info(
            "ledger_summary_computed",
            extra={
                "as_of": today,
                "entry_count": summary.entry_count,
                "overdue_count": overdue_count,
                "recent_activity_count": recent_count,
            },
        )
        return summary

    def _is_overdue(self, entry: LedgerEntry, today: date) -> bool:
        return (
            entry.tracks_balance
            and entry.due_date is not None
            and entry.due_date < today
            and not entry.status.is_terminal
            and entry.remaining_amount.amount > self._tolerance
        )
