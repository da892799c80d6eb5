"""
textile_services.ledger_service -- Unified ledger read and write paths over the Data Store.

Responsibility:
    Load bills and ledger entry rows, flatten them into plain records and
    run them through the normalizer and the consistency repair (read path);
    record payments atomically against a locked row (write path); create
    manual payables/receivables; cancel entries; summarize a khata.

Architecture position:
    Services -- imperative shell over a SQLAlchemy Session.
    Composes LedgerEntryNormalizer, LedgerConsistencyRepair, PaymentRecorder
    and LedgerAggregator (pure engines).

Invariants enforced:
    - Single writer per entry: record_payment() and cancel_entry() lock the
      row with SELECT ... FOR UPDATE before reading the balance, and write
      the payment row and the new balance in the same transaction.
    - Every entry surfaced by this service has been repaired.
    - Category is recomputed from the row on every load; nothing cached.

Failure modes:
    - InvalidEntryRefError for a malformed composite reference string.
    - EntryNotFoundError when no row exists for the reference.
    - Payment precondition errors are returned in PaymentOutcome.error and
      the transaction is rolled back; store errors roll back and re-raise.
    - EntryClosedError from cancel_entry() on a terminal entry.

Audit relevance:
    ``payment_recorded`` and ``ledger_entry_cancelled`` log records carry
    the entry reference; repairs surface as ``ledger_entry_repaired``
    warnings from the repair engine.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from textile_config import CoreConfig, get_active_config
from textile_engines.aggregation import LedgerAggregator, LedgerSummary
from textile_engines.normalizer import LedgerEntryNormalizer
from textile_engines.payments import PaymentOutcome, PaymentRecorder
from textile_engines.repair import LedgerConsistencyRepair
from textile_kernel.domain.clock import Clock, SystemClock
from textile_kernel.domain.ledger import (
    EntryRef,
    EntryStatus,
    LedgerEntry,
    Payment,
    UnderlyingKind,
)
from textile_kernel.domain.values import Money
from textile_kernel.exceptions import (
    EntryClosedError,
    EntryNotFoundError,
    InvalidAmountError,
)
from textile_kernel.logging_config import LogContext, get_logger
from textile_kernel.models.ledger import (
    BillModel,
    LedgerEntryModel,
    LedgerPaymentModel,
    PartyModel,
)

logger = get_logger("services.ledger")

MANUAL_KINDS = frozenset({UnderlyingKind.MANUAL_PAYABLE, UnderlyingKind.MANUAL_RECEIVABLE})


def _party_record(party: PartyModel | None) -> dict[str, Any] | None:
    if party is None:
        return None
    return {"id": party.id, "name": party.name, "role": party.role}


def _payment_records(payments: list[LedgerPaymentModel]) -> list[dict[str, Any]]:
    return [
        {
            "id": p.id,
            "amount": p.amount,
            "payment_mode": p.payment_mode,
            "transaction_date": p.transaction_date,
            "cheque_number": p.cheque_number,
            "bank_name": p.bank_name,
            "reference_number": p.reference_number,
            "notes": p.notes,
        }
        for p in payments
    ]


def bill_record(model: BillModel) -> dict[str, Any]:
    """Flatten a bill row into the record shape the normalizer reads."""
    return {
        "id": model.id,
        "bill_number": model.bill_number,
        "bill_type": model.bill_type,
        "amount": model.amount,
        "paid_amount": model.paid_amount,
        "status": model.status,
        "bill_date": model.bill_date,
        "due_date": model.due_date,
        "description": model.description,
        "khata_id": model.khata_id,
        "party": _party_record(model.party),
        "transactions": _payment_records(model.payments),
    }


def ledger_entry_record(model: LedgerEntryModel) -> dict[str, Any]:
    """Flatten a ledger entry row into the record shape the normalizer reads."""
    return {
        "id": model.id,
        "amount": model.amount,
        "remaining_amount": model.remaining_amount,
        "status": model.status,
        "transaction_type": model.transaction_type,
        "entry_date": model.entry_date,
        "due_date": model.due_date,
        "description": model.description,
        "reference": model.reference,
        "notes": model.notes,
        "party_name": model.party_name,
        "vendor": _party_record(model.vendor),
        "customer": _party_record(model.customer),
        "khata_id": model.khata_id,
        "transactions": _payment_records(model.payments),
    }


class LedgerService:
    """
    Unified ledger over bills and ledger entry rows.

    Contract:
        The service owns its transactions: write operations commit on
        success and roll back on failure.

    Guarantees:
        - Loaded entries are normalized and repaired.
        - A successful record_payment() leaves exactly one new payment row
          and the decremented balance, committed together.

    Non-goals:
        - Does NOT persist repairs found on the read path; the repaired
          view is served, the row is rewritten on the next write.
    """

    def __init__(
        self,
        session: Session,
        config: CoreConfig | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._session = session
        self._config = config or get_active_config()
        self._clock = clock or SystemClock()

        sentinels = self._config.party_sentinels
        tolerance = self._config.amount_tolerance
        self._normalizer = LedgerEntryNormalizer(
            currency=self._config.currency,
            vendor_sentinel=sentinels.vendor,
            customer_sentinel=sentinels.customer,
            unknown_sentinel=sentinels.unknown,
        )
        self._repair = LedgerConsistencyRepair(tolerance=tolerance)
        self._recorder = PaymentRecorder(tolerance=tolerance)
        self._aggregator = LedgerAggregator(
            currency=self._config.currency,
            tolerance=tolerance,
            recent_days=self._config.recent_activity_days,
        )

    # =========================================================================
    # Read path
    # =========================================================================

    def load_entries(self, khata_id: int | None = None) -> list[LedgerEntry]:
        """All bills and ledger entries, optionally scoped to one khata."""
        bill_stmt = select(BillModel).options(selectinload(BillModel.payments))
        entry_stmt = select(LedgerEntryModel).options(selectinload(LedgerEntryModel.payments))
        if khata_id is not None:
            bill_stmt = bill_stmt.where(BillModel.khata_id == khata_id)
            entry_stmt = entry_stmt.where(LedgerEntryModel.khata_id == khata_id)

        entries: list[LedgerEntry] = []
        for bill in self._session.execute(bill_stmt.order_by(BillModel.id)).unique().scalars():
            entries.append(self._to_entry(bill, UnderlyingKind.BILL))

        for row in self._session.execute(entry_stmt.order_by(LedgerEntryModel.id)).unique().scalars():
            kind = self._entry_kind(row)
            if kind is None:
                continue
            entries.append(self._to_entry(row, kind))

        logger.info(
            "ledger_entries_loaded",
            extra={"khata_id": khata_id, "entry_count": len(entries)},
        )
        return entries

    def get_entry(self, ref: EntryRef | str) -> LedgerEntry:
        """
        Load one entry by reference.

        Raises:
            InvalidEntryRefError: malformed reference string.
            EntryNotFoundError: no row for the reference.
        """
        ref = self._coerce_ref(ref)
        model = self._find(ref, lock=False)
        return self._to_entry(model, ref.kind)

    def summarize(self, khata_id: int | None = None) -> LedgerSummary:
        return self._aggregator.summarize(self.load_entries(khata_id), self._clock.now())

    # =========================================================================
    # Write path
    # =========================================================================

    def record_payment(self, ref: EntryRef | str, payment: Payment) -> PaymentOutcome:
        """
        Apply a payment inside one transaction holding the entry row lock.

        Precondition failures come back in ``outcome.error`` after a
        rollback; they are never retried.

        Raises:
            InvalidEntryRefError: malformed reference string.
            EntryNotFoundError: no row for the reference.
        """
        ref = self._coerce_ref(ref)
        with LogContext.bind(entry_ref=str(ref)):
            try:
                model = self._find(ref, lock=True)
                entry = self._to_entry(model, ref.kind)
                outcome = self._recorder.apply(entry, payment)
                if not outcome.ok:
                    self._session.rollback()
                    return outcome

                self._write_balance(model, outcome.entry)
                model.payments.append(self._payment_model(ref, outcome.payment))
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                "payment_recorded",
                extra={
                    "amount": str(outcome.payment.amount.amount),
                    "payment_mode": outcome.payment.payment_mode.value,
                    "remaining_amount": str(outcome.entry.remaining_amount.amount),
                    "status": outcome.entry.status.value,
                },
            )
            return outcome

    def create_manual_entry(
        self,
        kind: UnderlyingKind,
        amount: Money,
        party_name: str | None = None,
        *,
        entry_date: date | None = None,
        due_date: date | None = None,
        description: str = "",
        reference: str | None = None,
        notes: str | None = None,
        khata_id: int | None = None,
        party_id: int | None = None,
    ) -> LedgerEntry:
        """
        Create a manual payable or receivable.

        The counter-party goes into the ``party_name`` column (or the
        vendor/customer link when ``party_id`` is given), never into notes.

        Raises:
            ValueError: kind is not a manual kind.
            InvalidAmountError: amount is not positive after rounding.
        """
        if kind not in MANUAL_KINDS:
            raise ValueError(f"Manual entries must be MANUAL_PAYABLE or MANUAL_RECEIVABLE, got {kind}")
        rounded = amount.round()
        if rounded.amount <= 0:
            raise InvalidAmountError(str(rounded.amount))

        model = LedgerEntryModel(
            entry_type=kind.value,
            description=description,
            amount=rounded.amount,
            remaining_amount=rounded.amount,
            status=EntryStatus.PENDING.value,
            entry_date=entry_date or self._clock.today(),
            due_date=due_date,
            reference=reference,
            notes=notes,
            party_name=party_name.strip() if party_name else None,
            vendor_id=party_id if kind is UnderlyingKind.MANUAL_PAYABLE else None,
            customer_id=party_id if kind is UnderlyingKind.MANUAL_RECEIVABLE else None,
            khata_id=khata_id,
        )
        try:
            self._session.add(model)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        entry = self._to_entry(model, kind)
        logger.info(
            "manual_entry_created",
            extra={
                "entry_ref": str(entry.ref),
                "amount": str(rounded.amount),
                "party": entry.party,
                "khata_id": khata_id,
            },
        )
        return entry

    def cancel_entry(self, ref: EntryRef | str) -> LedgerEntry:
        """
        Move an open entry to CANCELLED.

        Raises:
            EntryNotFoundError: no row for the reference.
            EntryClosedError: the entry is already terminal.
        """
        ref = self._coerce_ref(ref)
        with LogContext.bind(entry_ref=str(ref)):
            try:
                model = self._find(ref, lock=True)
                entry = self._to_entry(model, ref.kind)
                if entry.status.is_terminal:
                    raise EntryClosedError(str(ref), entry.status.value)
                cancelled = replace(entry, status=EntryStatus.CANCELLED)
                self._write_balance(model, cancelled)
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                "ledger_entry_cancelled",
                extra={"status_before": entry.status.value},
            )
            return cancelled

    # =========================================================================
    # Internal Methods
    # =========================================================================

    @staticmethod
    def _coerce_ref(ref: EntryRef | str) -> EntryRef:
        return ref if isinstance(ref, EntryRef) else EntryRef.parse(ref)

    def _find(self, ref: EntryRef, lock: bool) -> BillModel | LedgerEntryModel:
        if ref.kind is UnderlyingKind.BILL:
            stmt = select(BillModel).where(BillModel.id == ref.row_id)
        else:
            stmt = select(LedgerEntryModel).where(
                LedgerEntryModel.id == ref.row_id,
                LedgerEntryModel.entry_type == ref.kind.value,
            )
        if lock:
            stmt = stmt.with_for_update()
        model = self._session.execute(stmt).unique().scalars().first()
        if model is None:
            raise EntryNotFoundError(str(ref))
        return model

    def _entry_kind(self, row: LedgerEntryModel) -> UnderlyingKind | None:
        try:
            kind = UnderlyingKind(row.entry_type)
        except ValueError:
            kind = None
        if kind is None or kind is UnderlyingKind.BILL:
            logger.warning(
                "ledger_entry_type_unknown",
                extra={"row_id": row.id, "entry_type": row.entry_type},
            )
            return None
        return kind

    def _to_entry(self, model: BillModel | LedgerEntryModel, kind: UnderlyingKind) -> LedgerEntry:
        if kind is UnderlyingKind.BILL:
            record = bill_record(model)
        else:
            record = ledger_entry_record(model)
        entry = self._normalizer.normalize(record=record, kind=kind)
        return self._repair.repair(entry).entry

    @staticmethod
    def _write_balance(model: BillModel | LedgerEntryModel, entry: LedgerEntry) -> None:
        if isinstance(model, BillModel):
            model.paid_amount = entry.paid_amount.amount
        else:
            model.remaining_amount = entry.remaining_amount.amount
        model.status = entry.status.value

    @staticmethod
    def _payment_model(ref: EntryRef, payment: Payment) -> LedgerPaymentModel:
        is_bill = ref.kind is UnderlyingKind.BILL
        return LedgerPaymentModel(
            bill_id=ref.row_id if is_bill else None,
            ledger_entry_id=None if is_bill else ref.row_id,
            amount=payment.amount.amount,
            payment_mode=payment.payment_mode.value,
            transaction_date=payment.transaction_date,
            cheque_number=payment.cheque_number,
            bank_name=payment.bank_name,
            reference_number=payment.reference_number,
            notes=payment.notes,
        )
