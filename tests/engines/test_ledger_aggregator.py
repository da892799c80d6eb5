"""
Tests for LedgerAggregator.

Covers:
- Payable / receivable totals over remaining balances, excluding cancelled
- Overdue detection relative to an injected "now"
- Recent activity window
- Bill, cheque, inventory, bank and cash figures
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from textile_engines.aggregation import LedgerAggregator
from textile_engines.normalizer import derive_category
from textile_kernel.domain.ledger import (
    Category,
    EntryRef,
    EntryStatus,
    LedgerEntry,
    TransactionDirection,
    UnderlyingKind,
)
from textile_kernel.domain.values import Money

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
TODAY = NOW.date()

_ids = iter(range(1, 10_000))


def _entry(
    kind: UnderlyingKind,
    total: str,
    remaining: str | None = None,
    status: EntryStatus = EntryStatus.PENDING,
    direction: TransactionDirection | None = None,
    entry_date: date | None = None,
    due_date: date | None = None,
) -> LedgerEntry:
    return LedgerEntry(
        ref=EntryRef(kind, next(_ids)),
        category=derive_category(kind, direction),
        underlying_kind=kind,
        transaction_direction=direction,
        total_amount=Money.of(total, "PKR"),
        remaining_amount=Money.of(remaining if remaining is not None else total, "PKR"),
        status=status,
        party="Acme Textiles",
        entry_date=entry_date,
        due_date=due_date,
    )


@pytest.fixture
def aggregator() -> LedgerAggregator:
    return LedgerAggregator(currency="PKR", tolerance=Decimal("0.005"), recent_days=7)


class TestTotals:
    def test_payables_and_receivables_use_remaining(self, aggregator):
        entries = [
            _entry(UnderlyingKind.BILL, "1000", "400", EntryStatus.PARTIAL, TransactionDirection.PURCHASE),
            _entry(UnderlyingKind.MANUAL_PAYABLE, "250"),
            _entry(UnderlyingKind.BILL, "800", "800", direction=TransactionDirection.SALE),
            _entry(UnderlyingKind.MANUAL_RECEIVABLE, "120", "20", EntryStatus.PARTIAL),
        ]
        summary = aggregator.summarize(entries, NOW)
        assert summary.total_payables.amount == Decimal("650")
        assert summary.total_receivables.amount == Decimal("820")

    def test_cancelled_entries_excluded(self, aggregator):
        entries = [
            _entry(UnderlyingKind.MANUAL_PAYABLE, "250", status=EntryStatus.CANCELLED),
            _entry(UnderlyingKind.MANUAL_PAYABLE, "100"),
        ]
        assert aggregator.summarize(entries, NOW).total_payables.amount == Decimal("100")

    def test_empty_ledger(self, aggregator):
        summary = aggregator.summarize([], NOW)
        assert summary.total_payables.is_zero
        assert summary.entry_count == 0
        assert summary.as_of == TODAY


class TestOverdue:
    def test_overdue_open_entry(self, aggregator):
        entries = [
            _entry(UnderlyingKind.MANUAL_PAYABLE, "300", due_date=date(2024, 3, 14)),
            _entry(UnderlyingKind.MANUAL_PAYABLE, "100", due_date=TODAY),
            _entry(UnderlyingKind.MANUAL_PAYABLE, "50", "0", EntryStatus.COMPLETED, due_date=date(2024, 1, 1)),
            _entry(UnderlyingKind.MANUAL_PAYABLE, "75", status=EntryStatus.CANCELLED, due_date=date(2024, 1, 1)),
            _entry(UnderlyingKind.CHEQUE, "500", due_date=date(2024, 1, 1)),
        ]
        summary = aggregator.summarize(entries, NOW)
        assert summary.overdue_count == 1
        assert summary.overdue_amount.amount == Decimal("300")

    def test_accepts_plain_date_as_now(self, aggregator):
        entries = [_entry(UnderlyingKind.MANUAL_PAYABLE, "300", due_date=date(2024, 3, 14))]
        assert aggregator.summarize(entries, TODAY).overdue_count == 1


class TestRecentActivity:
    def test_window_is_inclusive_of_start(self, aggregator):
        entries = [
            _entry(UnderlyingKind.MANUAL_PAYABLE, "1", entry_date=date(2024, 3, 8)),
            _entry(UnderlyingKind.MANUAL_PAYABLE, "1", entry_date=date(2024, 3, 7)),
            _entry(UnderlyingKind.CHEQUE, "1", entry_date=TODAY),
            _entry(UnderlyingKind.CHEQUE, "1"),
        ]
        summary = aggregator.summarize(entries, NOW)
        assert summary.recent_activity_count == 2
        assert summary.recent_by_category == {Category.PAYABLE: 1, Category.CHEQUE: 1}


class TestKindFigures:
    def test_bills_and_cheques(self, aggregator):
        entries = [
            _entry(UnderlyingKind.BILL, "10", "0", EntryStatus.PAID, TransactionDirection.SALE),
            _entry(UnderlyingKind.BILL, "10", direction=TransactionDirection.SALE),
            _entry(UnderlyingKind.CHEQUE, "10"),
            _entry(UnderlyingKind.CHEQUE, "10", status=EntryStatus.CLEARED),
        ]
        summary = aggregator.summarize(entries, NOW)
        assert (summary.bills_total, summary.bills_paid) == (2, 1)
        assert (summary.cheques_total, summary.cheques_pending) == (2, 1)

    def test_inventory_bank_and_cash(self, aggregator):
        entries = [
            _entry(UnderlyingKind.INVENTORY_VALUATION, "5000"),
            _entry(UnderlyingKind.BANK_TXN, "1200"),
            _entry(UnderlyingKind.BANK_TXN, "300"),
            _entry(UnderlyingKind.CASH_TXN, "700", direction=TransactionDirection.CASH_RECEIPT),
            _entry(UnderlyingKind.CASH_TXN, "900", direction=TransactionDirection.CASH_PAYMENT),
        ]
        summary = aggregator.summarize(entries, NOW)
        assert summary.inventory_value.amount == Decimal("5000")
        assert summary.bank_balance.amount == Decimal("1500")
        # Cash in hand may go negative; it is reported, not clamped.
        assert summary.cash_in_hand.amount == Decimal("-200")

    def test_entry_count_by_category(self, aggregator):
        entries = [
            _entry(UnderlyingKind.MANUAL_PAYABLE, "1"),
            _entry(UnderlyingKind.BILL, "1", direction=TransactionDirection.PURCHASE),
            _entry(UnderlyingKind.BANK_TXN, "1"),
        ]
        summary = aggregator.summarize(entries, NOW)
        assert summary.entry_count_by_category == {Category.PAYABLE: 2, Category.BANK: 1}
        assert summary.entry_count == 3


def test_recent_days_must_be_positive():
    with pytest.raises(ValueError):
        LedgerAggregator(recent_days=0)
