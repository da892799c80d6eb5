"""
textile_services.import_pipeline -- Batch absorption of selected pending items.

Responsibility:
    Drive one absorption call per selected PendingItem, sequentially,
    collecting per-item successes and failures into an ImportResult.

Architecture position:
    Services -- orchestration only.  The absorption routines themselves are
    injected as a mapping from SourceKind to callable, so the pipeline does
    not know about the Data Store.

Invariants enforced:
    - Partial success is allowed: a failing item never aborts the rest of
      the batch and never rolls back items already absorbed.
    - A key selected twice is absorbed at most once; the repeat is skipped.
    - Every non-empty run sets ``requires_reconciliation`` so the caller
      recomputes the pending set.

Failure modes:
    - Every per-item failure is wrapped in AbsorptionFailedError and
      reported in ``ImportResult.errors``; ``run`` itself does not raise
      for item failures.

Audit relevance:
    All log records of one run share a ``batch_id`` in the log context.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from uuid import uuid4

from textile_kernel.domain.inventory import InventoryItem, PendingItem, PendingKey, SourceKind
from textile_kernel.exceptions import AbsorptionFailedError, UnknownSourceKindError
from textile_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.import_pipeline")

Absorber = Callable[[PendingItem], InventoryItem]


@dataclass(frozen=True)
class ImportResult:
    """Outcome of one import run."""

    imported: tuple[InventoryItem, ...] = ()
    errors: tuple[AbsorptionFailedError, ...] = ()
    skipped: tuple[PendingItem, ...] = ()
    requires_reconciliation: bool = False

    @property
    def imported_count(self) -> int:
        return len(self.imported)

    @property
    def failed_keys(self) -> frozenset[PendingKey]:
        return frozenset((SourceKind(e.source_kind), e.source_id) for e in self.errors)

    @property
    def all_succeeded(self) -> bool:
        return not self.errors


class InventoryImportPipeline:
    """
    Sequential per-item absorption with failure isolation.

    Contract:
        ``absorbers`` maps each SourceKind to a callable that absorbs one
        pending item and returns the created InventoryItem, committing its
        own unit of work.

    Guarantees:
        - Items are attempted in selection order.
        - ``imported`` and ``errors`` partition the attempted items.

    Non-goals:
        - Does NOT retry failed items; the next reconciliation pass lists
          them as pending again.
    """

    def __init__(self, absorbers: Mapping[SourceKind, Absorber]) -> None:
        self._absorbers = dict(absorbers)

    def run(self, selected: Iterable[PendingItem]) -> ImportResult:
        batch_id = str(uuid4())
        imported: list[InventoryItem] = []
        errors: list[AbsorptionFailedError] = []
        skipped: list[PendingItem] = []
        seen: set[PendingKey] = set()

        with LogContext.bind(batch_id=batch_id):
            for item in selected:
                if item.key in seen:
                    logger.warning(
                        "import_item_duplicate_skipped",
                        extra={
                            "source_kind": item.source_kind.value,
                            "source_id": item.source_id,
                        },
                    )
                    skipped.append(item)
                    continue
                seen.add(item.key)

                try:
                    imported.append(self._absorb(item))
                except Exception as exc:
                    error = exc if isinstance(exc, AbsorptionFailedError) else AbsorptionFailedError(
                        item.source_kind.value, item.source_id, exc
                    )
                    errors.append(error)
                    logger.error(
                        "import_item_failed",
                        extra={
                            "source_kind": item.source_kind.value,
                            "source_id": item.source_id,
                            "error_code": getattr(exc, "code", type(exc).__name__),
                            "error": str(exc),
                        },
                    )

            attempted = len(imported) + len(errors)
            logger.info(
                "import_batch_completed",
                extra={
                    "attempted": attempted,
                    "imported_count": len(imported),
                    "failed_count": len(errors),
                    "skipped_count": len(skipped),
                },
            )

        return ImportResult(
            imported=tuple(imported),
            errors=tuple(errors),
            skipped=tuple(skipped),
            requires_reconciliation=attempted > 0,
        )

    def _absorb(self, item: PendingItem) -> InventoryItem:
        absorber = self._absorbers.get(item.source_kind)
        if absorber is None:
            raise UnknownSourceKindError(item.source_kind.value)
        result = absorber(item)
        logger.info(
            "import_item_absorbed",
            extra={
                "source_kind": item.source_kind.value,
                "source_id": item.source_id,
                "item_code": getattr(result, "item_code", None),
            },
        )
        return result
