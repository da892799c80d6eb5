"""
textile_engines.repair -- Consistency repair for ledger entries read from the store.

Responsibility:
    Detect and, where safe, correct invariant violations in a LedgerEntry
    before it is surfaced: a remaining balance outside [0, total], a
    settled balance whose status is still open, and a "paid" status over
    an outstanding balance.  Entries written before these rules were
    enforced, or touched concurrently, must still be served.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - After repair: 0 <= remaining_amount <= total_amount.
    - A balance-tracking entry with remaining < tolerance carries its
      terminal label (PAID for bills, COMPLETED otherwise) unless it was
      CANCELLED.
    - COMPLETED / PAID with remaining > tolerance is downgraded to PARTIAL
      (remaining < total) or PENDING.
    - Idempotent: repair(repair(e).entry).entry == repair(e).entry and the
      second pass reports no findings.

Failure modes:
    - None.  Repairs are warnings, never errors.

Audit relevance:
    Every correction is logged at WARNING as ``ledger_entry_repaired`` with
    the entry reference, the rule that fired and the before/after values.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum

from textile_engines.tracer import traced_engine
from textile_kernel.domain.ledger import (
    SETTLED_STATUSES,
    EntryStatus,
    LedgerEntry,
    terminal_label,
)
from textile_kernel.domain.values import Money
from textile_kernel.logging_config import get_logger

logger = get_logger("engines.repair")


class RepairRule(str, Enum):
    REMAINING_ABOVE_TOTAL = "remaining_above_total"
    REMAINING_NEGATIVE = "remaining_negative"
    SETTLED_BALANCE_OPEN_STATUS = "settled_balance_open_status"
    OUTSTANDING_BALANCE_SETTLED_STATUS = "outstanding_balance_settled_status"


@dataclass(frozen=True)
class RepairFinding:
    """One correction applied to an entry."""

    rule: RepairRule
    field: str
    before: str
    after: str


@dataclass(frozen=True)
class RepairResult:
    entry: LedgerEntry
    findings: tuple[RepairFinding, ...] = ()

    @property
    def repaired(self) -> bool:
        return bool(self.findings)


class LedgerConsistencyRepair:
    """
    Repairs loaded ledger entries.

    Contract:
        ``repair(entry)`` returns a RepairResult holding the corrected entry
        (the same instance when nothing changed) and the findings.

    Guarantees:
        - Steps run in a fixed order: clamp the remaining balance, close
          settled entries, reopen outstanding ones.
        - Status steps only touch balance-tracking entries; cheque, bank,
          cash and inventory statuses pass through.

    Non-goals:
        - Does NOT move PENDING to PARTIAL for partially paid entries; only
          the payment engine recomputes that on the write path.
    """

    def __init__(self, tolerance: Decimal = Decimal("0.005")) -> None:
        if tolerance <= 0:
            raise ValueError(f"tolerance must be positive, got {tolerance}")
        self._tolerance = tolerance

    @property
    def tolerance(self) -> Decimal:
        return self._tolerance

    @traced_engine("ledger_repair", "1.0")
    def repair(self, entry: LedgerEntry) -> RepairResult:
        findings: list[RepairFinding] = []
        eps = self._tolerance

        total = entry.total_amount
        remaining = entry.remaining_amount
        status = entry.status

        # Step 1: clamp remaining into [0, total]
        zero = Money.zero(total.currency)
        upper = total if total.amount >= 0 else zero
        if remaining.amount > upper.amount:
            findings.append(
                RepairFinding(
                    RepairRule.REMAINING_ABOVE_TOTAL,
                    "remaining_amount",
                    str(remaining.amount),
                    str(upper.amount),
                )
            )
            remaining = upper
        elif remaining.amount < 0:
            findings.append(
                RepairFinding(
                    RepairRule.REMAINING_NEGATIVE,
                    "remaining_amount",
                    str(remaining.amount),
                    "0",
                )
            )
            remaining = zero

        if entry.tracks_balance:
            # Step 2: settled balance must carry the terminal label
            if remaining.amount < eps and not status.is_terminal:
                closed = terminal_label(entry.underlying_kind)
                findings.append(
                    RepairFinding(
                        RepairRule.SETTLED_BALANCE_OPEN_STATUS,
                        "status",
                        status.value,
                        closed.value,
                    )
                )
                status = closed

            # Step 3: outstanding balance cannot be marked settled
            elif status in SETTLED_STATUSES and remaining.amount > eps:
                reopened = (
                    EntryStatus.PARTIAL
                    if remaining.amount < total.amount
                    else EntryStatus.PENDING
                )
                findings.append(
                    RepairFinding(
                        RepairRule.OUTSTANDING_BALANCE_SETTLED_STATUS,
                        "status",
                        status.value,
                        reopened.value,
                    )
                )
                status = reopened

        if not findings:
            return RepairResult(entry=entry)

        for finding in findings:
            logger.warning(
                "ledger_entry_repaired",
                extra={
                    "entry_ref": str(entry.ref),
                    "rule": finding.rule.value,
                    "field": finding.field,
                    "before": finding.before,
                    "after": finding.after,
                },
            )

        return RepairResult(
            entry=replace(entry, remaining_amount=remaining, status=status),
            findings=tuple(findings),
        )
