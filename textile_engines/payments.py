"""
textile_engines.payments -- Apply a payment or receipt to a ledger entry.

Responsibility:
    Validate a new Payment against a LedgerEntry and, if every precondition
    holds, return the entry with the payment appended, the remaining
    balance decremented and the status recomputed.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    The caller (textile_services.ledger_service) must run apply() inside a
    store transaction that has locked the entry row, so two concurrent
    payments cannot both pass the balance check against a stale remaining
    amount.

Invariants enforced:
    - Only balance-tracking entries (bills, manual payables/receivables)
      accept payments.
    - Closed entries (COMPLETED, PAID, CANCELLED) accept no payment.
    - Payment amounts are rounded to the currency's decimal places before
      comparison and storage, and must be strictly positive.
    - amount <= remaining + tolerance; the new remaining balance is clamped
      to zero when within tolerance, so 0 <= remaining <= total holds.
    - Cheque payments carry both a cheque number and a bank name.

Failure modes:
    - Returned, never raised: EntryNotPayableError, EntryClosedError,
      InvalidAmountError, ExceedsRemainingBalanceError,
      MissingChequeNumberError, MissingBankNameError.
      ``PaymentOutcome.raise_for_error()`` raises for callers that prefer
      exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from textile_engines.tracer import traced_engine
from textile_kernel.domain.ledger import (
    EntryStatus,
    LedgerEntry,
    Payment,
    PaymentMode,
    terminal_label,
)
from textile_kernel.domain.values import Money
from textile_kernel.exceptions import (
    EntryClosedError,
    EntryNotPayableError,
    ExceedsRemainingBalanceError,
    InvalidAmountError,
    MissingBankNameError,
    MissingChequeNumberError,
    PaymentError,
)
from textile_kernel.logging_config import get_logger

logger = get_logger("engines.payments")


@dataclass(frozen=True)
class PaymentOutcome:
    """
    Result of PaymentRecorder.apply().

    ``entry`` is the updated entry on success and the untouched input entry
    on failure.  ``payment`` is the payment as stored (rounded amount).
    """

    entry: LedgerEntry
    payment: Payment | None = None
    error: PaymentError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> LedgerEntry:
        if self.error is not None:
            raise self.error
        return self.entry


def recompute_status(
    kind_terminal: EntryStatus,
    remaining: Money,
    total: Money,
    tolerance: Decimal,
) -> EntryStatus:
    """Status implied by a balance: settled, partially paid or untouched."""
    if remaining.amount < tolerance:
        return kind_terminal
    if remaining.amount < total.amount:
        return EntryStatus.PARTIAL
    return EntryStatus.PENDING


class PaymentRecorder:
    """
    Applies payments to ledger entries.

    Contract:
        ``apply(entry, payment)`` returns a PaymentOutcome; precondition
        violations are reported in ``outcome.error``.

    Guarantees:
        - Checks run in a fixed order: payable kind, open status, positive
          amount, balance bound, cheque number, bank name.
        - On success ``payment`` is the last element of
          ``outcome.entry.transactions``.

    Non-goals:
        - Does NOT persist anything and does NOT lock; see
          LedgerService.record_payment.
    """

    def __init__(self, tolerance: Decimal = Decimal("0.005")) -> None:
        if tolerance <= 0:
            raise ValueError(f"tolerance must be positive, got {tolerance}")
        self._tolerance = tolerance

    @traced_engine("payment_recorder", "1.0")
    def apply(self, entry: LedgerEntry, payment: Payment) -> PaymentOutcome:
        ref = str(entry.ref)
        error = self._check(entry, payment)
        if error is not None:
            logger.info(
                "payment_rejected",
                extra={
                    "entry_ref": ref,
                    "error_code": error.code,
                    "amount": str(payment.amount.amount),
                    "remaining_amount": str(entry.remaining_amount.amount),
                },
            )
            return PaymentOutcome(entry=entry, error=error)

        amount = payment.amount.round()
        stored = replace(payment, amount=amount)

        remaining = (entry.remaining_amount - amount).round()
        if remaining.amount < self._tolerance:
            remaining = Money.zero(remaining.currency)

        status = recompute_status(
            terminal_label(entry.underlying_kind),
            remaining,
            entry.total_amount,
            self._tolerance,
        )

        updated = replace(
            entry,
            remaining_amount=remaining,
            status=status,
            transactions=entry.transactions + (stored,),
        )

        logger.info(
            "payment_applied",
            extra={
                "entry_ref": ref,
                "amount": str(amount.amount),
                "payment_mode": stored.payment_mode.value,
                "remaining_amount": str(remaining.amount),
                "status_before": entry.status.value,
                "status_after": status.value,
            },
        )
        return PaymentOutcome(entry=updated, payment=stored)

    def _check(self, entry: LedgerEntry, payment: Payment) -> PaymentError | None:
        ref = str(entry.ref)

        if not entry.tracks_balance:
            return EntryNotPayableError(ref, entry.underlying_kind.value)

        if entry.status.is_terminal:
            return EntryClosedError(ref, entry.status.value)

        if payment.amount.currency != entry.remaining_amount.currency:
            return InvalidAmountError(str(payment.amount))

        amount = payment.amount.round()
        if amount.amount <= 0:
            return InvalidAmountError(str(amount.amount))

        if amount.amount > entry.remaining_amount.amount + self._tolerance:
            return ExceedsRemainingBalanceError(
                ref,
                str(amount.amount),
                str(entry.remaining_amount.amount),
            )

        if payment.payment_mode is PaymentMode.CHEQUE:
            if not (payment.cheque_number or "").strip():
                return MissingChequeNumberError(ref)
            if not (payment.bank_name or "").strip():
                return MissingBankNameError(ref)

        return None
