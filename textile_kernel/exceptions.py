"""
Typed Exception Hierarchy for the textile ledger core.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the ledger and inventory core must react to failures precisely:
an overpayment is surfaced to the user with the exact remaining balance, a
closed entry is shown as read-only, a failed absorption is listed next to
the pending item it belongs to. Parsing message strings for that is fragile,
so every failure has:

  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (not just a message string)

Example:
    outcome = recorder.apply(entry, payment)
    if isinstance(outcome.error, ExceedsRemainingBalanceError):
        api_response(code=outcome.error.code,
                     remaining=outcome.error.remaining_amount)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    TextileCoreError (base)
    |
    +-- LedgerError
    |   +-- InvalidEntryRefError
    |   +-- EntryNotFoundError
    |   +-- PaymentError
    |       +-- InvalidAmountError
    |       +-- ExceedsRemainingBalanceError
    |       +-- EntryClosedError
    |       +-- MissingChequeNumberError
    |       +-- MissingBankNameError
    |       +-- EntryNotPayableError
    |
    +-- InventoryError
        +-- UnknownSourceKindError
        +-- SourceRecordNotFoundError
        +-- AlreadyAbsorbedError
        +-- AbsorptionFailedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                       | When Raised / Returned
-----------|----------------------------|--------------------------------------
Ledger     | INVALID_ENTRY_REF          | Composite id like "bill:abc" is malformed
           | ENTRY_NOT_FOUND            | No bill / ledger entry row for the ref
-----------|----------------------------|--------------------------------------
Payment    | INVALID_AMOUNT             | Payment amount <= 0 after rounding
           | EXCEEDS_REMAINING_BALANCE  | Payment larger than remaining + tolerance
           | ENTRY_CLOSED               | Entry is COMPLETED / PAID / CANCELLED
           | MISSING_CHEQUE_NUMBER      | CHEQUE payment without cheque number
           | MISSING_BANK_NAME          | CHEQUE payment without bank name
           | ENTRY_NOT_PAYABLE          | Entry does not track a balance
-----------|----------------------------|--------------------------------------
Inventory  | UNKNOWN_SOURCE_KIND        | No absorber registered for a source
           | SOURCE_RECORD_NOT_FOUND    | Upstream row disappeared
           | ALREADY_ABSORBED           | Source id already has a stock movement
           | ABSORPTION_FAILED          | Per-item failure inside an import batch

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Payment preconditions are RETURNED by PaymentRecorder.apply() as the
   ``error`` of a PaymentOutcome; they are never retried automatically.
   ``PaymentOutcome.raise_for_error()`` re-raises for callers that prefer
   exceptions.

2. AbsorptionFailedError is COLLECTED by the import pipeline, one per failed
   item, and reported as a batch. ``cause`` keeps the original exception.

3. Consistency repairs are not errors at all; they are logged warnings.
"""

from __future__ import annotations


class TextileCoreError(Exception):
    """
    Base exception for all textile core errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "TEXTILE_CORE_ERROR"


# Ledger-related exceptions


class LedgerError(TextileCoreError):
    """Base exception for ledger errors."""

    code: str = "LEDGER_ERROR"


class InvalidEntryRefError(LedgerError):
    """A composite ledger identifier could not be parsed."""

    code: str = "INVALID_ENTRY_REF"

    def __init__(self, raw: str, reason: str):
        self.raw = raw
        self.reason = reason
        super().__init__(f"Invalid ledger entry reference {raw!r}: {reason}")


class EntryNotFoundError(LedgerError):
    """No underlying record exists for the given reference."""

    code: str = "ENTRY_NOT_FOUND"

    def __init__(self, entry_ref: str):
        self.entry_ref = entry_ref
        super().__init__(f"Ledger entry not found: {entry_ref}")


class PaymentError(LedgerError):
    """Base exception for payment precondition violations."""

    code: str = "PAYMENT_ERROR"


class InvalidAmountError(PaymentError):
    """Payment amount is zero or negative."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: str):
        self.amount = amount
        super().__init__(f"Payment amount must be positive, got {amount}")


class ExceedsRemainingBalanceError(PaymentError):
    """Payment would push the remaining balance below zero."""

    code: str = "EXCEEDS_REMAINING_BALANCE"

    def __init__(self, entry_ref: str, amount: str, remaining_amount: str):
        self.entry_ref = entry_ref
        self.amount = amount
        self.remaining_amount = remaining_amount
        super().__init__(
            f"Payment of {amount} exceeds the remaining balance "
            f"{remaining_amount} of {entry_ref}"
        )


class EntryClosedError(PaymentError):
    """Entry is in a terminal state and accepts no further changes."""

    code: str = "ENTRY_CLOSED"

    def __init__(self, entry_ref: str, status: str):
        self.entry_ref = entry_ref
        self.status = status
        super().__init__(f"Ledger entry {entry_ref} is closed ({status})")


class MissingChequeNumberError(PaymentError):
    """Cheque payment without a cheque number."""

    code: str = "MISSING_CHEQUE_NUMBER"

    def __init__(self, entry_ref: str):
        self.entry_ref = entry_ref
        super().__init__(f"Cheque payment against {entry_ref} requires a cheque number")


class MissingBankNameError(PaymentError):
    """Cheque payment without the issuing bank."""

    code: str = "MISSING_BANK_NAME"

    def __init__(self, entry_ref: str):
        self.entry_ref = entry_ref
        super().__init__(f"Cheque payment against {entry_ref} requires a bank name")


class EntryNotPayableError(PaymentError):
    """Entry kind has no balance to settle (cheque, bank, inventory, cash)."""

    code: str = "ENTRY_NOT_PAYABLE"

    def __init__(self, entry_ref: str, underlying_kind: str):
        self.entry_ref = entry_ref
        self.underlying_kind = underlying_kind
        super().__init__(
            f"Ledger entry {entry_ref} ({underlying_kind}) does not accept payments"
        )


# Inventory-related exceptions


class InventoryError(TextileCoreError):
    """Base exception for inventory reconciliation errors."""

    code: str = "INVENTORY_ERROR"


class UnknownSourceKindError(InventoryError):
    """No absorption routine is registered for the source kind."""

    code: str = "UNKNOWN_SOURCE_KIND"

    def __init__(self, source_kind: str):
        self.source_kind = source_kind
        super().__init__(f"No absorber registered for source kind {source_kind}")


class SourceRecordNotFoundError(InventoryError):
    """Upstream production record does not exist."""

    code: str = "SOURCE_RECORD_NOT_FOUND"

    def __init__(self, source_kind: str, source_id: int):
        self.source_kind = source_kind
        self.source_id = source_id
        super().__init__(f"{source_kind} #{source_id} not found")


class AlreadyAbsorbedError(InventoryError):
    """
    The source record already has an inventory transaction.

    Absorption is idempotent by failing loudly: a second call for the same
    (source_kind, source_id) never creates a duplicate inventory row.
    """

    code: str = "ALREADY_ABSORBED"

    def __init__(self, source_kind: str, source_id: int):
        self.source_kind = source_kind
        self.source_id = source_id
        super().__init__(f"{source_kind} #{source_id} is already in inventory")


class AbsorptionFailedError(InventoryError):
    """One item of an import batch could not be absorbed."""

    code: str = "ABSORPTION_FAILED"

    def __init__(self, source_kind: str, source_id: int, cause: BaseException):
        self.source_kind = source_kind
        self.source_id = source_id
        self.cause = cause
        super().__init__(
            f"Failed to absorb {source_kind} #{source_id}: "
            f"{type(cause).__name__}: {cause}"
        )
