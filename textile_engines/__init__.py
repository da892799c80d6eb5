"""
Module: textile_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for
    textile_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import textile_kernel (domain, exceptions, logging).
    MUST NOT import textile_services or textile_config.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      "Now" is passed in by the caller.
    - Decimal-only arithmetic via Money / Quantity.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Engine invocations are traced via ``@traced_engine`` (see
    ``textile_engines.tracer``), emitting TEXTILE_ENGINE_TRACE records.
"""

from textile_engines.aggregation import LedgerAggregator, LedgerSummary
from textile_engines.normalizer import (
    LedgerEntryNormalizer,
    derive_category,
    extract_labelled_party,
)
from textile_engines.payments import PaymentOutcome, PaymentRecorder, recompute_status
from textile_engines.reconciler import (
    PendingItemReconciler,
    dedupe_pending,
    imported_source_ids,
)
from textile_engines.repair import (
    LedgerConsistencyRepair,
    RepairFinding,
    RepairResult,
    RepairRule,
)
from textile_engines.scanner import EligibleSources, InventorySourceScanner

__all__ = [
    "EligibleSources",
    "InventorySourceScanner",
    "LedgerAggregator",
    "LedgerConsistencyRepair",
    "LedgerEntryNormalizer",
    "LedgerSummary",
    "PaymentOutcome",
    "PaymentRecorder",
    "PendingItemReconciler",
    "RepairFinding",
    "RepairResult",
    "RepairRule",
    "dedupe_pending",
    "derive_category",
    "extract_labelled_party",
    "imported_source_ids",
    "recompute_status",
]
