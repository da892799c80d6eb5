"""
Tests for PaymentRecorder.

Covers:
- The overpayment bound (remaining + tolerance)
- Status recomputation after a payment
- Precondition order and the error reported for each violation
- Rounding of the stored payment amount
"""

from datetime import date
from decimal import Decimal

import pytest

from textile_engines.payments import PaymentRecorder, recompute_status
from textile_kernel.domain.ledger import (
    Category,
    EntryRef,
    EntryStatus,
    LedgerEntry,
    Payment,
    PaymentMode,
    UnderlyingKind,
)
from textile_kernel.domain.values import Money
from textile_kernel.exceptions import (
    EntryClosedError,
    EntryNotPayableError,
    ExceedsRemainingBalanceError,
    InvalidAmountError,
    MissingBankNameError,
    MissingChequeNumberError,
)

PAY_DATE = date(2024, 3, 15)


def _entry(
    total: str = "100.00",
    remaining: str = "100.00",
    status: EntryStatus = EntryStatus.PENDING,
    kind: UnderlyingKind = UnderlyingKind.MANUAL_PAYABLE,
) -> LedgerEntry:
    return LedgerEntry(
        ref=EntryRef(kind, 3),
        category=Category.PAYABLE,
        underlying_kind=kind,
        total_amount=Money.of(total, "PKR"),
        remaining_amount=Money.of(remaining, "PKR"),
        status=status,
        party="Acme Textiles",
    )


def _cash(amount: str, currency: str = "PKR") -> Payment:
    return Payment(
        amount=Money.of(amount, currency),
        payment_mode=PaymentMode.CASH,
        transaction_date=PAY_DATE,
    )


@pytest.fixture
def recorder() -> PaymentRecorder:
    return PaymentRecorder(tolerance=Decimal("0.005"))


class TestOverpaymentBound:
    """A payment may not exceed the remaining balance beyond tolerance."""

    def test_one_paisa_over_is_rejected(self, recorder):
        outcome = recorder.apply(_entry(), _cash("100.01"))
        assert not outcome.ok
        assert isinstance(outcome.error, ExceedsRemainingBalanceError)
        assert outcome.error.remaining_amount == "100.00"
        assert outcome.entry.remaining_amount.amount == Decimal("100.00")

    def test_exact_balance_completes_entry(self, recorder):
        outcome = recorder.apply(_entry(), _cash("100.00"))
        assert outcome.ok
        assert outcome.entry.remaining_amount.amount == Decimal("0")
        assert outcome.entry.status is EntryStatus.COMPLETED

    def test_bill_settles_as_paid(self, recorder):
        outcome = recorder.apply(_entry(kind=UnderlyingKind.BILL), _cash("100.00"))
        assert outcome.entry.status is EntryStatus.PAID

    def test_sub_tolerance_amount_rounds_to_zero_and_is_rejected(self, recorder):
        outcome = recorder.apply(_entry(), _cash("0.004"))
        assert isinstance(outcome.error, InvalidAmountError)


class TestStatusRecompute:
    def test_partial_payment(self, recorder):
        outcome = recorder.apply(_entry(), _cash("40.00"))
        assert outcome.entry.remaining_amount.amount == Decimal("60.00")
        assert outcome.entry.status is EntryStatus.PARTIAL

    def test_successive_payments_settle(self, recorder):
        entry = recorder.apply(_entry(), _cash("33.33")).raise_for_error()
        entry = recorder.apply(entry, _cash("33.33")).raise_for_error()
        entry = recorder.apply(entry, _cash("33.34")).raise_for_error()
        assert entry.remaining_amount.amount == Decimal("0")
        assert entry.status is EntryStatus.COMPLETED
        assert len(entry.transactions) == 3

    def test_recompute_status_helper(self):
        total = Money.of("100", "PKR")
        assert recompute_status(EntryStatus.PAID, Money.of("0.001", "PKR"), total, Decimal("0.005")) is EntryStatus.PAID
        assert recompute_status(EntryStatus.PAID, Money.of("50", "PKR"), total, Decimal("0.005")) is EntryStatus.PARTIAL
        assert recompute_status(EntryStatus.PAID, total, total, Decimal("0.005")) is EntryStatus.PENDING


class TestPreconditions:
    """Each violation is reported, never raised, and leaves the entry untouched."""

    @pytest.mark.parametrize("status", [EntryStatus.COMPLETED, EntryStatus.CANCELLED, EntryStatus.PAID])
    def test_closed_entry(self, recorder, status):
        outcome = recorder.apply(_entry(status=status), _cash("1"))
        assert isinstance(outcome.error, EntryClosedError)

    @pytest.mark.parametrize("amount", ["0", "-10"])
    def test_non_positive_amount(self, recorder, amount):
        assert isinstance(recorder.apply(_entry(), _cash(amount)).error, InvalidAmountError)

    def test_currency_mismatch(self, recorder):
        assert isinstance(recorder.apply(_entry(), _cash("10", "USD")).error, InvalidAmountError)

    @pytest.mark.parametrize("cheque_number", [None, "", "   "])
    def test_cheque_without_number(self, recorder, cheque_number):
        payment = Payment(
            amount=Money.of("10", "PKR"),
            payment_mode=PaymentMode.CHEQUE,
            transaction_date=PAY_DATE,
            cheque_number=cheque_number,
            bank_name="HBL",
        )
        assert isinstance(recorder.apply(_entry(), payment).error, MissingChequeNumberError)

    def test_cheque_without_bank(self, recorder):
        payment = Payment(
            amount=Money.of("10", "PKR"),
            payment_mode=PaymentMode.CHEQUE,
            transaction_date=PAY_DATE,
            cheque_number="000123",
        )
        assert isinstance(recorder.apply(_entry(), payment).error, MissingBankNameError)

    @pytest.mark.parametrize("kind", [UnderlyingKind.CHEQUE, UnderlyingKind.BANK_TXN, UnderlyingKind.CASH_TXN])
    def test_non_balance_kind(self, recorder, kind):
        assert isinstance(recorder.apply(_entry(kind=kind), _cash("1")).error, EntryNotPayableError)

    def test_closed_checked_before_amount(self, recorder):
        outcome = recorder.apply(_entry(status=EntryStatus.COMPLETED), _cash("-1"))
        assert isinstance(outcome.error, EntryClosedError)

    def test_raise_for_error(self, recorder):
        with pytest.raises(ExceedsRemainingBalanceError):
            recorder.apply(_entry(), _cash("500")).raise_for_error()


class TestStoredPayment:
    def test_amount_rounded_before_storage(self, recorder):
        outcome = recorder.apply(_entry(), _cash("10.005"))
        assert outcome.payment.amount.amount == Decimal("10.01")
        assert outcome.entry.transactions[-1] == outcome.payment
        assert outcome.entry.remaining_amount.amount == Decimal("89.99")

    def test_cheque_payment_keeps_details(self, recorder):
        payment = Payment(
            amount=Money.of("25", "PKR"),
            payment_mode=PaymentMode.CHEQUE,
            transaction_date=PAY_DATE,
            cheque_number="000123",
            bank_name="Meezan Bank",
        )
        outcome = recorder.apply(_entry(), payment)
        assert outcome.ok
        assert outcome.payment.cheque_number == "000123"
        assert outcome.payment.bank_name == "Meezan Bank"

    def test_rejection_logged(self, recorder, captured_logs):
        recorder.apply(_entry(), _cash("100.01"))
        rejected = [r for r in captured_logs() if r["message"] == "payment_rejected"]
        assert rejected[0]["error_code"] == "EXCEEDS_REMAINING_BALANCE"
