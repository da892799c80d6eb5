"""
textile_config -- single public entrypoint for core configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Engines receive individual values (tolerance,
    window length, sentinels) from services; they never read files.

Architecture position:
    Configuration -- sits above ``textile_kernel`` and below
    ``textile_services``.  The kernel MUST NEVER import from
    ``textile_config``.

Failure modes:
    - ``FileNotFoundError`` -- the requested YAML file does not exist.
    - ``KeyError`` / ``ValueError`` -- missing or out-of-range values.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``TEXTILE_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying every reconciliation run to the exact configuration
    that governed it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from textile_config.loader import load_yaml_file, parse_core_config
from textile_config.schema import (
    AbsorptionDefaults,
    AbsorptionRule,
    CoreConfig,
    EligibilityRules,
    PartySentinels,
)

_logger = logging.getLogger("textile_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | None = None) -> CoreConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to a YAML file.  Defaults to the
            packaged ``defaults.yaml``.

    Returns:
        A frozen, validated CoreConfig.

    Raises:
        FileNotFoundError: If the file does not exist.
        KeyError: If a required key is missing.
        ValueError: If a value fails validation.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = parse_core_config(load_yaml_file(path))

    _logger.info(
        "TEXTILE_CONFIG_TRACE",
        extra={
            "trace_type": "TEXTILE_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "currency": config.currency,
            "source": str(path),
        },
    )
    return config


__all__ = [
    "AbsorptionDefaults",
    "AbsorptionRule",
    "CoreConfig",
    "DEFAULT_CONFIG_PATH",
    "EligibilityRules",
    "PartySentinels",
    "get_active_config",
]
