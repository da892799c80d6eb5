"""
CoreConfig schema.

Frozen dataclasses describing the tunable parameters of the ledger and
inventory reconciliation core. YAML files are parsed into these types by
the loader; runtime code only ever sees a CoreConfig.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from textile_kernel.domain.inventory import InventoryTransactionType, SourceKind


@dataclass(frozen=True)
class PartySentinels:
    """Names used when no counter-party can be resolved."""

    vendor: str = "Manual Vendor"
    customer: str = "Manual Customer"
    unknown: str = "Unknown"


@dataclass(frozen=True)
class AbsorptionRule:
    """How one upstream source kind is turned into stock."""

    item_code_prefix: str
    markup: Decimal
    transaction_type: InventoryTransactionType


@dataclass(frozen=True)
class AbsorptionDefaults:
    location: str = "Main Warehouse"
    min_stock_ratio: Decimal = Decimal("0.1")
    rules: dict[SourceKind, AbsorptionRule] = field(default_factory=dict)

    def rule_for(self, source_kind: SourceKind) -> AbsorptionRule:
        try:
            return self.rules[source_kind]
        except KeyError:
            raise ValueError(f"No absorption rule configured for {source_kind.value}") from None


@dataclass(frozen=True)
class EligibilityRules:
    """Upstream status values that make a record eligible for absorption."""

    dyeing_result_statuses: frozenset[str] = frozenset({"SUCCESS"})
    fabric_statuses: frozenset[str] = frozenset({"COMPLETED"})


@dataclass(frozen=True)
class CoreConfig:
    """
    Runtime configuration of the ledger core.

    Guarantees:
        - amount_tolerance is a positive Decimal
        - recent_activity_days is a positive int
        - checksum identifies the source YAML content
    """

    config_id: str
    version: int
    currency: str
    amount_tolerance: Decimal
    recent_activity_days: int
    party_sentinels: PartySentinels
    absorption: AbsorptionDefaults
    eligibility: EligibilityRules
    checksum: str = ""
