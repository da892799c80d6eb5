"""
textile_engines.normalizer -- Map heterogeneous ledger records onto LedgerEntry.

Responsibility:
    Turn one flattened Data Store record (a bill, a manual payable or
    receivable, a cheque, a bank or cash transaction, an inventory
    valuation) plus its UnderlyingKind into the canonical LedgerEntry:
    derive the user-facing category, resolve the counter-party, parse
    amounts, dates, status and the recorded payments.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import textile_kernel domain types and logging.

Invariants enforced:
    - Category is always recomputed from the record: manual kinds map
      directly, bills map through their transaction direction
      (SALE -> RECEIVABLE, PURCHASE -> PAYABLE, anything else -> BILL).
    - Party resolution never raises.  Order: linked party record, manual
      party_name field, labelled token in notes then reference, sentinel.
    - Bad amounts degrade to zero and unknown statuses to PENDING, each
      with a warning log.

Failure modes:
    - ValueError only when the record has no usable primary key ``id``;
      every other defect degrades to a default.

Audit relevance:
    Degraded fields are logged with the entry reference so data-quality
    problems in the store can be traced back to the offending row.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import date, datetime
from decimal import InvalidOperation
from typing import Any

from textile_engines.tracer import traced_engine
from textile_kernel.domain.ledger import (
    Category,
    EntryRef,
    EntryStatus,
    LedgerEntry,
    Payment,
    PaymentMode,
    TransactionDirection,
    UnderlyingKind,
)
from textile_kernel.domain.values import Currency, Money, to_decimal
from textile_kernel.logging_config import get_logger

logger = get_logger("engines.normalizer")

VENDOR_LABEL = "Vendor"
CUSTOMER_LABEL = "Customer"

_FIXED_CATEGORIES: dict[UnderlyingKind, Category] = {
    UnderlyingKind.MANUAL_PAYABLE: Category.PAYABLE,
    UnderlyingKind.MANUAL_RECEIVABLE: Category.RECEIVABLE,
    UnderlyingKind.CHEQUE: Category.CHEQUE,
    UnderlyingKind.BANK_TXN: Category.BANK,
    UnderlyingKind.INVENTORY_VALUATION: Category.INVENTORY,
    UnderlyingKind.CASH_TXN: Category.TRANSACTION,
}

_DIRECTION_CATEGORIES: dict[TransactionDirection, Category] = {
    TransactionDirection.SALE: Category.RECEIVABLE,
    TransactionDirection.PURCHASE: Category.PAYABLE,
}


def derive_category(
    kind: UnderlyingKind,
    direction: TransactionDirection | None,
) -> Category:
    """User-facing category of an entry; bills go through their direction."""
    if kind is UnderlyingKind.BILL:
        if direction is None:
            return Category.BILL
        return _DIRECTION_CATEGORIES.get(direction, Category.BILL)
    return _FIXED_CATEGORIES[kind]


def extract_labelled_party(text: Any, label: str) -> str | None:
    """
    Best-effort scrape of ``"<label>: <name>"`` out of free text.

    Workaround for older manual entries that stored the counter-party only
    inside notes or reference text instead of a structured column.  The
    name runs until a hyphen, a newline or the end of the string; it is
    never split on whitespace because names contain spaces.  The label must
    start a word, and anything that is not a string yields None.

    >>> extract_labelled_party("Vendor: Acme Textiles - khata:1", "Vendor")
    'Acme Textiles'
    """
    if not isinstance(text, str) or not text:
        return None
    match = re.search(rf"\b{re.escape(label)}:\s*([^\n-]+)", text)
    if match is None:
        return None
    name = match.group(1).strip()
    return name or None


def _party_name(value: Any) -> str | None:
    if isinstance(value, Mapping):
        value = value.get("name")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _to_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def _to_direction(value: Any) -> TransactionDirection | None:
    if isinstance(value, TransactionDirection):
        return value
    if isinstance(value, str):
        try:
            return TransactionDirection(value.strip().upper())
        except ValueError:
            return None
    return None


class LedgerEntryNormalizer:
    """
    Builds canonical LedgerEntry values from flattened store records.

    Contract:
        Pure; never performs I/O and never raises for missing or malformed
        fields.  The only required field is the integer ``id``.

    Guarantees:
        - Amounts are rounded to the currency's decimal places.
        - Bill remaining amount is ``amount - paid_amount``; other kinds
          read ``remaining_amount`` and default it to ``amount``.
        - ``transactions`` keeps the store order.

    Non-goals:
        - Does NOT repair invariant violations; that is
          LedgerConsistencyRepair's job.
    """

    def __init__(
        self,
        currency: str | Currency = "PKR",
        vendor_sentinel: str = "Manual Vendor",
        customer_sentinel: str = "Manual Customer",
        unknown_sentinel: str = "Unknown",
    ) -> None:
        self._currency = currency if isinstance(currency, Currency) else Currency(currency)
        self._vendor_sentinel = vendor_sentinel
        self._customer_sentinel = customer_sentinel
        self._unknown_sentinel = unknown_sentinel

    @traced_engine("ledger_normalizer", "1.0", fingerprint_fields=("kind",))
    def normalize(self, record: Mapping[str, Any], kind: UnderlyingKind) -> LedgerEntry:
        """
        Normalize one record.

        Args:
            record: Flattened store row.  Recognized keys: id, amount,
                paid_amount, remaining_amount, status, bill_type,
                transaction_type, bill_number, bill_date, entry_date,
                due_date, description, reference, notes, party_name, party,
                vendor, customer, khata_id, transactions.
            kind: The table the record came from.
        """
        ref = EntryRef(kind=kind, row_id=self._row_id(record))

        if kind is UnderlyingKind.BILL:
            direction = _to_direction(record.get("bill_type") or record.get("transaction_type"))
        else:
            direction = _to_direction(record.get("transaction_type"))
        category = derive_category(kind, direction)

        total = self._money(record.get("amount"), ref, "amount")
        if kind is UnderlyingKind.BILL:
            paid = self._money(record.get("paid_amount", 0), ref, "paid_amount")
            remaining = (total - paid).round()
        elif record.get("remaining_amount") is None:
            remaining = total
        else:
            remaining = self._money(record.get("remaining_amount"), ref, "remaining_amount")

        if kind is UnderlyingKind.BILL:
            bill_number = record.get("bill_number")
            description = record.get("description") or (
                f"Bill #{bill_number}" if bill_number else ""
            )
            reference = record.get("reference") or bill_number
            entry_date = _to_date(record.get("bill_date") or record.get("entry_date"))
        else:
            description = record.get("description") or ""
            reference = record.get("reference")
            entry_date = _to_date(record.get("entry_date"))

        return LedgerEntry(
            ref=ref,
            category=category,
            underlying_kind=kind,
            transaction_direction=direction,
            total_amount=total,
            remaining_amount=remaining,
            status=self._status(record.get("status"), ref),
            party=self.resolve_party(record, kind, category),
            entry_date=entry_date,
            due_date=_to_date(record.get("due_date")),
            description=description,
            reference=reference,
            notes=record.get("notes"),
            khata_id=record.get("khata_id"),
            transactions=self._payments(record.get("transactions") or (), ref),
        )

    def resolve_party(
        self,
        record: Mapping[str, Any],
        kind: UnderlyingKind,
        category: Category,
    ) -> str:
        """Counter-party name for a record; falls back to a sentinel."""
        if category is Category.PAYABLE:
            linked_keys, labels, sentinel = (
                ("party", "vendor"), (VENDOR_LABEL,), self._vendor_sentinel
            )
        elif category is Category.RECEIVABLE:
            linked_keys, labels, sentinel = (
                ("party", "customer"), (CUSTOMER_LABEL,), self._customer_sentinel
            )
        else:
            linked_keys, labels, sentinel = (
                ("party", "vendor", "customer"),
                (VENDOR_LABEL, CUSTOMER_LABEL),
                self._unknown_sentinel,
            )

        for key in linked_keys:
            name = _party_name(record.get(key))
            if name:
                return name

        name = _party_name(record.get("party_name"))
        if name:
            return name

        for field_name in ("notes", "reference"):
            for label in labels:
                name = extract_labelled_party(record.get(field_name), label)
                if name:
                    return name

        return sentinel

    def _row_id(self, record: Mapping[str, Any]) -> int:
        raw = record.get("id")
        if isinstance(raw, int) and not isinstance(raw, bool):
            return raw
        if isinstance(raw, str) and raw.strip().isdigit():
            return int(raw.strip())
        raise ValueError(f"Ledger record has no usable id: {raw!r}")

    def _money(self, value: Any, ref: EntryRef, field_name: str) -> Money:
        # quantize rejects finite values past the context precision (e.g. "1e999")
        try:
            return Money(amount=to_decimal(value), currency=self._currency).round()
        except (ValueError, InvalidOperation):
            logger.warning(
                "ledger_record_amount_unparseable",
                extra={"entry_ref": str(ref), "field": field_name, "raw_value": repr(value)},
            )
            return Money.zero(self._currency)

    def _status(self, value: Any, ref: EntryRef) -> EntryStatus:
        if isinstance(value, EntryStatus):
            return value
        if isinstance(value, str):
            try:
                return EntryStatus(value.strip().upper())
            except ValueError:
                pass
        logger.warning(
            "ledger_record_status_unknown",
            extra={"entry_ref": str(ref), "raw_value": repr(value)},
        )
        return EntryStatus.PENDING

    def _payments(self, rows: Any, ref: EntryRef) -> tuple[Payment, ...]:
        payments: list[Payment] = []
        for row in rows:
            if isinstance(row, Payment):
                payments.append(row)
                continue
            if not isinstance(row, Mapping):
                continue
            txn_date = _to_date(row.get("transaction_date"))
            try:
                amount = Money(amount=to_decimal(row.get("amount")), currency=self._currency).round()
            except (ValueError, InvalidOperation):
                amount = None
            if amount is None or txn_date is None:
                logger.warning(
                    "ledger_payment_row_skipped",
                    extra={"entry_ref": str(ref), "payment_id": row.get("id")},
                )
                continue
            try:
                mode = PaymentMode(str(row.get("payment_mode", "CASH")).upper())
            except ValueError:
                mode = PaymentMode.CASH
            payments.append(
                Payment(
                    amount=amount,
                    payment_mode=mode,
                    transaction_date=txn_date,
                    cheque_number=row.get("cheque_number"),
                    bank_name=row.get("bank_name"),
                    reference_number=row.get("reference_number"),
                    notes=row.get("notes"),
                )
            )
        return tuple(payments)
