"""
textile_engines.scanner -- Eligibility rules for inventory absorption.

Responsibility:
    Decide which upstream production records are eligible to be absorbed
    into stock: received thread purchases, successful dyeing runs and
    completed fabric production, none of them already flagged ADDED.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The Data Store queries
    live in textile_services.inventory_service, which feeds their rows
    through these predicates.

Invariants enforced:
    - ``inventory_status == ADDED`` always disqualifies a record.  The
      reconciler separately checks inventory transactions, which remain
      the authoritative signal.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from textile_kernel.domain.inventory import (
    DyeingProcessRecord,
    FabricProductionRecord,
    InventoryStatus,
    ThreadPurchaseRecord,
)


@dataclass(frozen=True)
class EligibleSources:
    """Eligible records of the three upstream domains, in store order."""

    thread_purchases: tuple[ThreadPurchaseRecord, ...] = ()
    dyeing_processes: tuple[DyeingProcessRecord, ...] = ()
    fabric_productions: tuple[FabricProductionRecord, ...] = ()

    @property
    def count(self) -> int:
        return (
            len(self.thread_purchases)
            + len(self.dyeing_processes)
            + len(self.fabric_productions)
        )


def _not_added(status: InventoryStatus | str | None) -> bool:
    return status != InventoryStatus.ADDED


class InventorySourceScanner:
    """
    Filters upstream records down to the absorbable ones.

    Status names are compared case-insensitively; the accepted sets come
    from configuration.
    """

    def __init__(
        self,
        dyeing_result_statuses: Iterable[str] = ("SUCCESS",),
        fabric_statuses: Iterable[str] = ("COMPLETED",),
    ) -> None:
        self._dyeing_ok = frozenset(s.upper() for s in dyeing_result_statuses)
        self._fabric_ok = frozenset(s.upper() for s in fabric_statuses)

    def thread_purchase_eligible(self, record: ThreadPurchaseRecord) -> bool:
        return record.received and _not_added(record.inventory_status)

    def dyeing_process_eligible(self, record: DyeingProcessRecord) -> bool:
        return (
            (record.result_status or "").upper() in self._dyeing_ok
            and _not_added(record.inventory_status)
        )

    def fabric_production_eligible(self, record: FabricProductionRecord) -> bool:
        return (
            (record.status or "").upper() in self._fabric_ok
            and _not_added(record.inventory_status)
        )

    def scan(
        self,
        thread_purchases: Iterable[ThreadPurchaseRecord] = (),
        dyeing_processes: Iterable[DyeingProcessRecord] = (),
        fabric_productions: Iterable[FabricProductionRecord] = (),
    ) -> EligibleSources:
        return EligibleSources(
            thread_purchases=tuple(
                r for r in thread_purchases if self.thread_purchase_eligible(r)
            ),
            dyeing_processes=tuple(
                r for r in dyeing_processes if self.dyeing_process_eligible(r)
            ),
            fabric_productions=tuple(
                r for r in fabric_productions if self.fabric_production_eligible(r)
            ),
        )
