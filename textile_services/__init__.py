"""
textile_services -- Package init and public API.

Responsibility:
    Stateful services that compose the pure engines (textile_engines/) with
    SQLAlchemy sessions and wall-clock time.  This is the **only** layer that
    may hold database sessions.

Architecture position:
    Services -- stateful orchestration over engines + kernel.

    Dependency direction:
        textile_services/ -> textile_engines/  (allowed)
        textile_services/ -> textile_kernel/   (allowed)
        textile_engines/  -> textile_services/ (FORBIDDEN)
        textile_kernel/   -> textile_services/ (FORBIDDEN)

Invariants enforced:
    - Each write operation is one database transaction, committed on
      success and rolled back on any failure.

Audit relevance:
    - This package is the canonical import surface for the UI layer.
"""

from textile_services.import_pipeline import ImportResult, InventoryImportPipeline
from textile_services.inventory_service import InventoryReconciliationService
from textile_services.ledger_service import LedgerService

__all__ = [
    "ImportResult",
    "InventoryImportPipeline",
    "InventoryReconciliationService",
    "LedgerService",
]
