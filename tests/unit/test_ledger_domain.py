"""
Unit tests for the ledger and inventory domain types.

Covers:
- EntryRef construction, parsing and the "<tag>:<id>" composite form
- Status terminality and per-kind terminal labels
- InventoryTransaction single back-reference rule
- DeterministicClock
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from textile_kernel.domain.clock import DeterministicClock
from textile_kernel.domain.inventory import (
    InventoryTransaction,
    InventoryTransactionType,
    PendingItem,
    ProductKind,
    SourceKind,
)
from textile_kernel.domain.ledger import (
    Category,
    EntryRef,
    EntryStatus,
    LedgerEntry,
    UnderlyingKind,
    terminal_label,
)
from textile_kernel.domain.values import Money, Quantity
from textile_kernel.exceptions import InvalidEntryRefError


class TestEntryRef:
    """Tests for the tagged entry identifier."""

    def test_str_renders_composite_form(self):
        assert str(EntryRef(UnderlyingKind.BILL, 123)) == "bill:123"
        assert str(EntryRef(UnderlyingKind.MANUAL_RECEIVABLE, 4)) == "receivable:4"

    @pytest.mark.parametrize("kind", list(UnderlyingKind))
    def test_parse_reads_back_every_kind(self, kind):
        ref = EntryRef(kind, 42)
        assert EntryRef.parse(str(ref)) == ref

    def test_parse_is_case_insensitive_on_tag(self):
        assert EntryRef.parse("Bill:9") == EntryRef(UnderlyingKind.BILL, 9)

    @pytest.mark.parametrize(
        "raw",
        ["bill", "bill:", "bill:abc", "bill:-1", "bill:0", "invoice:3", ":3", "bill:١٢"],
    )
    def test_parse_rejects_malformed(self, raw):
        with pytest.raises(InvalidEntryRefError) as exc_info:
            EntryRef.parse(raw)
        assert exc_info.value.code == "INVALID_ENTRY_REF"

    def test_parse_rejects_non_string(self):
        with pytest.raises(InvalidEntryRefError):
            EntryRef.parse(None)

    def test_row_id_must_be_positive_int(self):
        with pytest.raises(ValueError):
            EntryRef(UnderlyingKind.BILL, 0)
        with pytest.raises(ValueError):
            EntryRef(UnderlyingKind.BILL, True)

    def test_kind_coerced_from_value(self):
        assert EntryRef("CHEQUE", 1).kind is UnderlyingKind.CHEQUE

    def test_same_row_id_different_kinds_are_distinct(self):
        """Bills and ledger entries live in separate id spaces."""
        assert EntryRef(UnderlyingKind.BILL, 1) != EntryRef(UnderlyingKind.MANUAL_PAYABLE, 1)


class TestStatuses:
    """Tests for status terminality and labels."""

    @pytest.mark.parametrize(
        "status,terminal",
        [
            (EntryStatus.PENDING, False),
            (EntryStatus.PARTIAL, False),
            (EntryStatus.COMPLETED, True),
            (EntryStatus.PAID, True),
            (EntryStatus.CANCELLED, True),
            (EntryStatus.CLEARED, False),
            (EntryStatus.BOUNCED, False),
        ],
    )
    def test_is_terminal(self, status, terminal):
        assert status.is_terminal is terminal

    def test_terminal_label(self):
        assert terminal_label(UnderlyingKind.BILL) is EntryStatus.PAID
        assert terminal_label(UnderlyingKind.MANUAL_PAYABLE) is EntryStatus.COMPLETED

    def test_balance_tracking_kinds(self):
        tracking = {k for k in UnderlyingKind if k.tracks_balance}
        assert tracking == {
            UnderlyingKind.BILL,
            UnderlyingKind.MANUAL_PAYABLE,
            UnderlyingKind.MANUAL_RECEIVABLE,
        }


class TestLedgerEntry:
    def test_paid_amount_and_closed(self):
        entry = LedgerEntry(
            ref=EntryRef(UnderlyingKind.MANUAL_PAYABLE, 1),
            category=Category.PAYABLE,
            underlying_kind=UnderlyingKind.MANUAL_PAYABLE,
            total_amount=Money.of("300.00", "PKR"),
            remaining_amount=Money.of("120.00", "PKR"),
            status=EntryStatus.PARTIAL,
            party="Acme Textiles",
        )
        assert entry.paid_amount.amount == Decimal("180.00")
        assert not entry.is_closed
        assert entry.tracks_balance


class TestInventoryTransaction:
    """Tests for the single back-reference rule."""

    def test_single_backref_allowed(self):
        txn = InventoryTransaction(
            inventory_item_id=1,
            quantity_delta=Decimal("10"),
            remaining_quantity_after=Decimal("10"),
            transaction_type=InventoryTransactionType.PRODUCTION,
            dyeing_process_id=5,
        )
        assert txn.source_key == (SourceKind.DYEING_PROCESS, 5)

    def test_two_backrefs_rejected(self):
        with pytest.raises(ValueError, match="at most one source"):
            InventoryTransaction(
                inventory_item_id=1,
                quantity_delta=Decimal("10"),
                remaining_quantity_after=Decimal("10"),
                transaction_type=InventoryTransactionType.PRODUCTION,
                thread_purchase_id=2,
                dyeing_process_id=5,
            )

    def test_sales_transaction_has_no_source_key(self):
        txn = InventoryTransaction(
            inventory_item_id=1,
            quantity_delta=Decimal("-3"),
            remaining_quantity_after=Decimal("7"),
            transaction_type=InventoryTransactionType.SALES,
            sales_order_id=11,
        )
        assert txn.source_key is None


class TestPendingItem:
    def test_key_and_unit(self):
        item = PendingItem(
            source_kind=SourceKind.FABRIC_PRODUCTION,
            source_id=3,
            product_kind=ProductKind.FABRIC,
            name="Lawn 44x40",
            quantity=Quantity.of("250", "meters"),
        )
        assert item.key == (SourceKind.FABRIC_PRODUCTION, 3)
        assert item.unit_of_measure == "meters"


class TestDeterministicClock:
    def test_fixed_and_advanced(self):
        start = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
        clock = DeterministicClock(start)
        assert clock.now() == start
        assert clock.today() == date(2024, 3, 15)

        clock.advance_days(1)
        assert clock.today() == date(2024, 3, 16)

        clock.advance(60)
        assert clock.now() == start + timedelta(days=1, seconds=60)
