"""
Configuration Loader (``textile_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into a ``CoreConfig``.
Callers obtain configuration through ``textile_config.get_active_config()``,
never from this module directly.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Out-of-range values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from textile_config.schema import (
    AbsorptionDefaults,
    AbsorptionRule,
    CoreConfig,
    EligibilityRules,
    PartySentinels,
)
from textile_kernel.domain.currency import CurrencyRegistry
from textile_kernel.domain.inventory import InventoryTransactionType, SourceKind


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, name: str) -> Decimal:
    """Parse a Decimal from YAML; floats go through str() to avoid binary noise."""
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"{name} must be a decimal, got {value!r}") from e


def parse_absorption(data: dict[str, Any]) -> AbsorptionDefaults:
    rules: dict[SourceKind, AbsorptionRule] = {}
    for kind_name, rule in (data.get("rules") or {}).items():
        kind = SourceKind(kind_name)
        markup = parse_decimal(rule["markup"], f"absorption.rules.{kind_name}.markup")
        if markup < 0:
            raise ValueError(f"absorption markup for {kind_name} must not be negative")
        rules[kind] = AbsorptionRule(
            item_code_prefix=rule["item_code_prefix"],
            markup=markup,
            transaction_type=InventoryTransactionType(rule["transaction_type"]),
        )
    missing = set(SourceKind) - set(rules)
    if missing:
        raise ValueError(
            "absorption rules missing for: " + ", ".join(sorted(k.value for k in missing))
        )
    return AbsorptionDefaults(
        location=data.get("location", "Main Warehouse"),
        min_stock_ratio=parse_decimal(data.get("min_stock_ratio", "0.1"), "min_stock_ratio"),
        rules=rules,
    )


def parse_core_config(data: dict[str, Any]) -> CoreConfig:
    """
    Parse a ``CoreConfig`` from a dict.

    Raises:
        KeyError: if a required key is absent.
        ValueError: if a value is out of range.
    """
    currency = data["currency"]
    if not CurrencyRegistry.is_valid(currency):
        raise ValueError(f"Invalid ISO 4217 currency code: {currency}")

    tolerance = parse_decimal(data["amount_tolerance"], "amount_tolerance")
    if tolerance <= 0:
        raise ValueError(f"amount_tolerance must be positive, got {tolerance}")

    window = int(data.get("recent_activity_days", 7))
    if window <= 0:
        raise ValueError(f"recent_activity_days must be positive, got {window}")

    sentinels = data.get("party_sentinels") or {}
    eligibility = data.get("eligibility") or {}

    return CoreConfig(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        currency=currency.upper(),
        amount_tolerance=tolerance,
        recent_activity_days=window,
        party_sentinels=PartySentinels(**sentinels),
        absorption=parse_absorption(data["absorption"]),
        eligibility=EligibilityRules(
            dyeing_result_statuses=frozenset(
                eligibility.get("dyeing_result_statuses", ["SUCCESS"])
            ),
            fabric_statuses=frozenset(eligibility.get("fabric_statuses", ["COMPLETED"])),
        ),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
