"""
textile_engines.reconciler -- Compute the pending-absorption set.

Responsibility:
    Cross-reference eligible upstream production records against the
    inventory transactions already recorded and emit one PendingItem per
    record that has not been absorbed yet.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - The transaction back-references are the authoritative "already in
      inventory" signal.  The upstream inventory_status flag is a cache
      that may lag and is not consulted here.
    - Output is de-duplicated by (source_kind, source_id), first
      occurrence kept, even though the inputs are expected to be
      duplicate-free.
    - Deterministic: identical inputs give identical output, in input
      order (thread purchases, then dyeing, then fabric).

Audit relevance:
    Re-running reconciliation after an import must remove exactly the
    absorbed items; the UI relies on this to refresh safely on every focus.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from textile_engines.tracer import traced_engine
from textile_kernel.domain.inventory import (
    ColorStatus,
    DyeingProcessRecord,
    FabricProductionRecord,
    InventoryTransaction,
    PendingItem,
    PendingKey,
    ProductKind,
    SourceKind,
    ThreadPurchaseRecord,
)
from textile_kernel.domain.values import Quantity
from textile_kernel.logging_config import get_logger

logger = get_logger("engines.reconciler")


def thread_purchase_name(record: ThreadPurchaseRecord) -> str:
    if record.color_status == ColorStatus.COLORED:
        shade = record.color or ""
    else:
        shade = "Raw"
    return f"{record.thread_type} {shade}".strip()


def dyed_thread_name(record: DyeingProcessRecord) -> str:
    return f"Dyed Thread {record.color_name or record.color_code or ''}".strip()


def fabric_name(record: FabricProductionRecord) -> str:
    return f"{record.fabric_type} {record.dimensions or ''}".strip()


def _quantity(value, unit: str | None, fallback_unit: str) -> Quantity:
    return Quantity(value=value, unit=unit or fallback_unit)


def imported_source_ids(
    existing_transactions: Iterable[InventoryTransaction],
) -> dict[SourceKind, frozenset[int]]:
    """Source ids per kind that already have an inventory transaction."""
    thread: set[int] = set()
    dyed: set[int] = set()
    fabric: set[int] = set()
    for txn in existing_transactions:
        if txn.thread_purchase_id is not None:
            thread.add(txn.thread_purchase_id)
        if txn.dyeing_process_id is not None:
            dyed.add(txn.dyeing_process_id)
        if txn.fabric_production_id is not None:
            fabric.add(txn.fabric_production_id)
    return {
        SourceKind.THREAD_PURCHASE: frozenset(thread),
        SourceKind.DYEING_PROCESS: frozenset(dyed),
        SourceKind.FABRIC_PRODUCTION: frozenset(fabric),
    }


def dedupe_pending(items: Iterable[PendingItem]) -> tuple[PendingItem, ...]:
    """Keep the first item for each (source_kind, source_id)."""
    seen: set[PendingKey] = set()
    unique: list[PendingItem] = []
    for item in items:
        if item.key in seen:
            continue
        seen.add(item.key)
        unique.append(item)
    return tuple(unique)


class PendingItemReconciler:
    """
    Derives the pending set from upstream records and existing transactions.

    Contract:
        ``reconcile`` takes already-eligible upstream records (see
        InventorySourceScanner) and the inventory transaction ledger.

    Guarantees:
        - No two returned items share a key.
        - Calling twice with the same inputs yields equal tuples.
    """

    @traced_engine(
        "pending_reconciler",
        "1.0",
        fingerprint_fields=(
            "eligible_thread",
            "eligible_dyed",
            "eligible_fabric",
            "existing_transactions",
        ),
    )
    def reconcile(
        self,
        eligible_thread: Sequence[ThreadPurchaseRecord],
        eligible_dyed: Sequence[DyeingProcessRecord],
        eligible_fabric: Sequence[FabricProductionRecord],
        existing_transactions: Iterable[InventoryTransaction],
    ) -> tuple[PendingItem, ...]:
        imported = imported_source_ids(existing_transactions)
        candidates: list[PendingItem] = []

        for record in eligible_thread:
            if record.purchase_id in imported[SourceKind.THREAD_PURCHASE]:
                continue
            candidates.append(
                PendingItem(
                    source_kind=SourceKind.THREAD_PURCHASE,
                    source_id=record.purchase_id,
                    product_kind=ProductKind.THREAD,
                    name=thread_purchase_name(record),
                    quantity=_quantity(record.quantity, record.unit_of_measure, "kg"),
                )
            )

        for record in eligible_dyed:
            if record.process_id in imported[SourceKind.DYEING_PROCESS]:
                continue
            candidates.append(
                PendingItem(
                    source_kind=SourceKind.DYEING_PROCESS,
                    source_id=record.process_id,
                    product_kind=ProductKind.THREAD,
                    name=dyed_thread_name(record),
                    quantity=_quantity(record.output_quantity, record.unit_of_measure, "meters"),
                )
            )

        for record in eligible_fabric:
            if record.production_id in imported[SourceKind.FABRIC_PRODUCTION]:
                continue
            candidates.append(
                PendingItem(
                    source_kind=SourceKind.FABRIC_PRODUCTION,
                    source_id=record.production_id,
                    product_kind=ProductKind.FABRIC,
                    name=fabric_name(record),
                    quantity=_quantity(
                        record.quantity_produced, record.unit_of_measure, "meters"
                    ),
                )
            )

        pending = dedupe_pending(candidates)
        if len(pending) != len(candidates):
            logger.warning(
                "pending_items_deduplicated",
                extra={
                    "candidate_count": len(candidates),
                    "pending_count": len(pending),
                },
            )

        logger.info(
            "pending_items_reconciled",
            extra={
                "pending_count": len(pending),
                "thread_count": sum(
                    1 for p in pending if p.source_kind is SourceKind.THREAD_PURCHASE
                ),
                "dyed_count": sum(
                    1 for p in pending if p.source_kind is SourceKind.DYEING_PROCESS
                ),
                "fabric_count": sum(
                    1 for p in pending if p.source_kind is SourceKind.FABRIC_PRODUCTION
                ),
            },
        )
        return pending
