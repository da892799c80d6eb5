"""
textile_services.inventory_service -- Inventory reconciliation over the Data Store.

Responsibility:
    Query upstream production rows and the inventory transaction ledger,
    compute the pending-absorption set, and absorb one upstream record at a
    time into an inventory item plus its opening transaction.

Architecture position:
    Services -- imperative shell over a SQLAlchemy Session.
    Composes InventorySourceScanner and PendingItemReconciler (pure engines)
    and InventoryImportPipeline (batch orchestration).

Invariants enforced:
    - One absorption is one transaction: the item row, its transaction
      row carrying the source back-reference, and the upstream
      ``inventory_status = ADDED`` flag commit together or not at all.
    - At most one absorption per (source_kind, source_id).  Checked before
      writing and backed by the unique constraints on the back-reference
      columns.
    - The transaction back-reference is authoritative for "already in
      inventory"; ``inventory_status`` is only a cache.

Failure modes:
    - SourceRecordNotFoundError: the upstream row does not exist.
    - AlreadyAbsorbedError: a transaction already references the row, or a
      concurrent absorber won the unique constraint race.
    - ValueError: the upstream quantity is not positive.

Audit relevance:
    ``inventory_item_absorbed`` records name the source and the created
    item code.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from decimal import ROUND_CEILING, Decimal
from typing import Any
from uuid import uuid4

from sqlalchemy import ColumnElement, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from textile_config import CoreConfig, get_active_config
from textile_engines.reconciler import PendingItemReconciler
from textile_engines.scanner import EligibleSources, InventorySourceScanner
from textile_kernel.domain.clock import Clock, SystemClock
from textile_kernel.domain.inventory import (
    ColorStatus,
    DyeingProcessRecord,
    FabricProductionRecord,
    InventoryItem,
    InventoryStatus,
    InventoryTransaction,
    InventoryTransactionType,
    PendingItem,
    ProductKind,
    SourceKind,
    ThreadPurchaseRecord,
)
from textile_kernel.domain.values import Money, Quantity
from textile_kernel.exceptions import AlreadyAbsorbedError, SourceRecordNotFoundError
from textile_kernel.logging_config import get_logger
from textile_kernel.models.inventory import InventoryItemModel, InventoryTransactionModel
from textile_kernel.models.production import (
    DyeingProcessModel,
    FabricProductionModel,
    ThreadPurchaseModel,
)
from textile_services.import_pipeline import Absorber, ImportResult, InventoryImportPipeline

logger = get_logger("services.inventory")

_BACKREF_COLUMNS = {
    SourceKind.THREAD_PURCHASE: "thread_purchase_id",
    SourceKind.DYEING_PROCESS: "dyeing_process_id",
    SourceKind.FABRIC_PRODUCTION: "fabric_production_id",
}


def _inventory_status(raw: str | None) -> InventoryStatus | None:
    if raw is None:
        return None
    try:
        return InventoryStatus(raw.upper())
    except ValueError:
        return None


def _not_added(column: Any) -> ColumnElement[bool]:
    return or_(column.is_(None), func.upper(column) != InventoryStatus.ADDED.value)


def default_code_suffix() -> str:
    return uuid4().hex[:4].upper()


class InventoryReconciliationService:
    """
    Pending-item discovery and absorption.

    Contract:
        The service owns its transactions; each absorb_* call commits on
        success and rolls back on failure.

    Guarantees:
        - pending_items() reflects committed absorptions immediately.
        - A failed absorption leaves no inventory rows behind, so the
          source stays pending.
    """

    def __init__(
        self,
        session: Session,
        config: CoreConfig | None = None,
        clock: Clock | None = None,
        code_suffix: Callable[[], str] = default_code_suffix,
    ) -> None:
        self._session = session
        self._config = config or get_active_config()
        self._clock = clock or SystemClock()
        self._code_suffix = code_suffix
        self._scanner = InventorySourceScanner(
            dyeing_result_statuses=self._config.eligibility.dyeing_result_statuses,
            fabric_statuses=self._config.eligibility.fabric_statuses,
        )
        self._reconciler = PendingItemReconciler()

    # =========================================================================
    # Reconciliation
    # =========================================================================

    def eligible_sources(self) -> EligibleSources:
        """
        Upstream rows that may be absorbed.

        The eligibility predicates run in the queries; the scanner re-checks
        the mapped records so the rule has a single pure definition.
        """
        eligibility = self._config.eligibility
        dyeing_ok = [s.upper() for s in eligibility.dyeing_result_statuses]
        fabric_ok = [s.upper() for s in eligibility.fabric_statuses]

        thread = self._session.execute(
            select(ThreadPurchaseModel)
            .where(
                ThreadPurchaseModel.received.is_(True),
                _not_added(ThreadPurchaseModel.inventory_status),
            )
            .order_by(ThreadPurchaseModel.id)
        ).scalars()
        dyed = self._session.execute(
            select(DyeingProcessModel)
            .where(
                func.upper(DyeingProcessModel.result_status).in_(dyeing_ok),
                _not_added(DyeingProcessModel.inventory_status),
            )
            .order_by(DyeingProcessModel.id)
        ).unique().scalars()
        fabric = self._session.execute(
            select(FabricProductionModel)
            .where(
                func.upper(FabricProductionModel.status).in_(fabric_ok),
                _not_added(FabricProductionModel.inventory_status),
            )
            .order_by(FabricProductionModel.id)
        ).scalars()
        return self._scanner.scan(
            thread_purchases=[self._thread_to_domain(m) for m in thread],
            dyeing_processes=[self._dyeing_to_domain(m) for m in dyed],
            fabric_productions=[self._fabric_to_domain(m) for m in fabric],
        )

    def existing_transactions(self) -> list[InventoryTransaction]:
        """Inventory transactions that reference an upstream production record."""
        stmt = (
            select(InventoryTransactionModel)
            .where(
                or_(
                    InventoryTransactionModel.thread_purchase_id.is_not(None),
                    InventoryTransactionModel.dyeing_process_id.is_not(None),
                    InventoryTransactionModel.fabric_production_id.is_not(None),
                )
            )
            .order_by(InventoryTransactionModel.id)
        )
        return [
            self._transaction_to_domain(m)
            for m in self._session.execute(stmt).scalars()
        ]

    def pending_items(self) -> tuple[PendingItem, ...]:
        eligible = self.eligible_sources()
        return self._reconciler.reconcile(
            eligible_thread=eligible.thread_purchases,
            eligible_dyed=eligible.dyeing_processes,
            eligible_fabric=eligible.fabric_productions,
            existing_transactions=self.existing_transactions(),
        )

    def import_pending(self, selected: Iterable[PendingItem]) -> ImportResult:
        """Absorb the selected items, isolating per-item failures."""
        return InventoryImportPipeline(self.absorbers()).run(selected)

    def absorbers(self) -> dict[SourceKind, Absorber]:
        return {
            SourceKind.THREAD_PURCHASE: lambda item: self.absorb_thread_purchase(item.source_id),
            SourceKind.DYEING_PROCESS: lambda item: self.absorb_dyeing_process(item.source_id),
            SourceKind.FABRIC_PRODUCTION: lambda item: self.absorb_fabric_production(
                item.source_id
            ),
        }

    # =========================================================================
    # Absorption
    # =========================================================================

    def absorb_thread_purchase(self, purchase_id: int) -> InventoryItem:
        try:
            model = self._load_source(ThreadPurchaseModel, SourceKind.THREAD_PURCHASE, purchase_id)
            if model.color_status == ColorStatus.COLORED.value and model.color:
                description = f"{model.thread_type} Thread - {model.color}"
            else:
                description = f"{model.thread_type} Thread"
            unit_cost = Money.of(model.unit_price, self._config.currency)
            return self._absorb(
                source=model,
                source_kind=SourceKind.THREAD_PURCHASE,
                product_kind=ProductKind.THREAD,
                quantity=Quantity.of(model.quantity, model.unit_of_measure or "kg"),
                unit_cost=unit_cost,
                total_cost=unit_cost * model.quantity,
                description=description,
                notes=f"Added from thread purchase #{purchase_id}",
            )
        except Exception:
            self._session.rollback()
            raise

    def absorb_dyeing_process(self, process_id: int) -> InventoryItem:
        try:
            model = self._load_source(DyeingProcessModel, SourceKind.DYEING_PROCESS, process_id)
            thread_type = model.thread_purchase.thread_type if model.thread_purchase else "Thread"
            if model.color_name:
                shade = f"{model.color_name} ({model.color_code or 'No code'})"
            else:
                shade = "Dyed Thread"
            total_cost = Money.of(model.total_cost, self._config.currency)
            return self._absorb(
                source=model,
                source_kind=SourceKind.DYEING_PROCESS,
                product_kind=ProductKind.THREAD,
                quantity=Quantity.of(model.output_quantity, "meters"),
                unit_cost=self._unit_cost(total_cost, model.output_quantity),
                total_cost=total_cost,
                description=f"{thread_type} - {shade}",
                notes=f"Added from dyeing process #{process_id}",
            )
        except Exception:
            self._session.rollback()
            raise

    def absorb_fabric_production(self, production_id: int) -> InventoryItem:
        try:
            model = self._load_source(
                FabricProductionModel, SourceKind.FABRIC_PRODUCTION, production_id
            )
            description = f"{model.fabric_type} {model.dimensions or ''}".strip()
            if model.batch_number:
                description = f"{description} (Batch {model.batch_number})"
            total_cost = Money.of(model.total_cost, self._config.currency)
            return self._absorb(
                source=model,
                source_kind=SourceKind.FABRIC_PRODUCTION,
                product_kind=ProductKind.FABRIC,
                quantity=Quantity.of(model.quantity_produced, model.unit_of_measure or "meters"),
                unit_cost=self._unit_cost(total_cost, model.quantity_produced),
                total_cost=total_cost,
                description=description,
                notes=f"Added from fabric production #{production_id}",
            )
        except Exception:
            self._session.rollback()
            raise

    # =========================================================================
    # Internal Methods
    # =========================================================================

    def _load_source(self, model_cls: type, source_kind: SourceKind, source_id: int) -> Any:
        model = self._session.execute(
            select(model_cls).where(model_cls.id == source_id).with_for_update()
        ).unique().scalars().first()
        if model is None:
            raise SourceRecordNotFoundError(source_kind.value, source_id)

        if self._has_transaction(source_kind, source_id):
            raise AlreadyAbsorbedError(source_kind.value, source_id)
        return model

    def _has_transaction(self, source_kind: SourceKind, source_id: int) -> bool:
        column = getattr(InventoryTransactionModel, _BACKREF_COLUMNS[source_kind])
        existing = self._session.execute(
            select(InventoryTransactionModel.id).where(column == source_id)
        ).first()
        return existing is not None

    @staticmethod
    def _unit_cost(total_cost: Money, quantity: Decimal) -> Money:
        if quantity <= 0:
            return Money.zero(total_cost.currency)
        return Money.of(total_cost.amount / quantity, total_cost.currency)

    def _absorb(
        self,
        *,
        source: Any,
        source_kind: SourceKind,
        product_kind: ProductKind,
        quantity: Quantity,
        unit_cost: Money,
        total_cost: Money,
        description: str,
        notes: str,
    ) -> InventoryItem:
        if not quantity.is_positive:
            raise ValueError(
                f"{source_kind.value} #{source.id} has non-positive quantity {quantity}"
            )

        rule = self._config.absorption.rule_for(source_kind)
        defaults = self._config.absorption
        cost = unit_cost.round()
        sale_price = (unit_cost * (Decimal("1") + rule.markup)).round()
        min_stock = int(
            (quantity.value * defaults.min_stock_ratio).to_integral_value(rounding=ROUND_CEILING)
        )
        today = self._clock.today()

        item_model = InventoryItemModel(
            item_code=f"{rule.item_code_prefix}-{source.id}-{self._code_suffix()}",
            description=description,
            product_type=product_kind.value,
            current_quantity=quantity.value,
            unit_of_measure=quantity.unit,
            min_stock_level=min_stock,
            location=defaults.location,
            cost_per_unit=cost.amount,
            sale_price=sale_price.amount,
            last_restocked=today,
            notes=notes,
        )
        self._session.add(item_model)
        try:
            self._session.flush()
            txn_model = InventoryTransactionModel(
                inventory_item_id=item_model.id,
                transaction_type=rule.transaction_type.value,
                transaction_date=today,
                quantity=quantity.value,
                remaining_quantity=quantity.value,
                unit_cost=cost.amount,
                total_cost=total_cost.round().amount,
                notes=notes,
                **{_BACKREF_COLUMNS[source_kind]: source.id},
            )
            self._session.add(txn_model)
            source.inventory_status = InventoryStatus.ADDED.value
            self._session.commit()
        except IntegrityError as exc:
            source_id = source.id
            self._session.rollback()
            if self._has_transaction(source_kind, source_id):
                raise AlreadyAbsorbedError(source_kind.value, source_id) from exc
            raise

        logger.info(
            "inventory_item_absorbed",
            extra={
                "source_kind": source_kind.value,
                "source_id": source.id,
                "item_code": item_model.item_code,
                "quantity": str(quantity.value),
                "unit_of_measure": quantity.unit,
            },
        )
        return InventoryItem(
            item_id=item_model.id,
            item_code=item_model.item_code,
            description=description,
            product_kind=product_kind,
            quantity=quantity,
            cost_per_unit=cost,
            sale_price=sale_price,
            min_stock_level=min_stock,
            location=defaults.location,
            source_kind=source_kind,
            source_id=source.id,
        )

    @staticmethod
    def _thread_to_domain(model: ThreadPurchaseModel) -> ThreadPurchaseRecord:
        try:
            color_status = ColorStatus((model.color_status or "RAW").upper())
        except ValueError:
            color_status = ColorStatus.RAW
        return ThreadPurchaseRecord(
            purchase_id=model.id,
            thread_type=model.thread_type,
            quantity=model.quantity,
            unit_of_measure=model.unit_of_measure or "kg",
            unit_price=model.unit_price,
            color=model.color,
            color_status=color_status,
            received=bool(model.received),
            inventory_status=_inventory_status(model.inventory_status),
        )

    @staticmethod
    def _dyeing_to_domain(model: DyeingProcessModel) -> DyeingProcessRecord:
        return DyeingProcessRecord(
            process_id=model.id,
            thread_purchase_id=model.thread_purchase_id,
            output_quantity=model.output_quantity,
            result_status=model.result_status,
            color_name=model.color_name,
            color_code=model.color_code,
            total_cost=model.total_cost,
            thread_type=model.thread_purchase.thread_type if model.thread_purchase else None,
            inventory_status=_inventory_status(model.inventory_status),
        )

    @staticmethod
    def _fabric_to_domain(model: FabricProductionModel) -> FabricProductionRecord:
        return FabricProductionRecord(
            production_id=model.id,
            fabric_type=model.fabric_type,
            quantity_produced=model.quantity_produced,
            status=model.status,
            dimensions=model.dimensions or "",
            batch_number=model.batch_number or "",
            unit_of_measure=model.unit_of_measure or "meters",
            total_cost=model.total_cost,
            inventory_status=_inventory_status(model.inventory_status),
        )

    @staticmethod
    def _transaction_to_domain(model: InventoryTransactionModel) -> InventoryTransaction:
        return InventoryTransaction(
            inventory_item_id=model.inventory_item_id,
            quantity_delta=model.quantity,
            remaining_quantity_after=model.remaining_quantity,
            transaction_type=InventoryTransactionType(model.transaction_type),
            thread_purchase_id=model.thread_purchase_id,
            dyeing_process_id=model.dyeing_process_id,
            fabric_production_id=model.fabric_production_id,
            sales_order_id=model.sales_order_id,
            transaction_id=model.id,
        )
