"""
costing_config -- single public entrypoint for costing configuration.

Responsibility:
    ``get_active_config()`` is the only way runtime code obtains a
    ``CostingConfig``.  YAML loading is internal to this package.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``COSTING_CONFIG_TRACE`` log entry with the config id, checksum and the
    policy values that shape every summary computed under it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from costing_config.loader import load_config_file
from costing_config.schema import CostingConfig

_logger = logging.getLogger("inventory_costing.config")

_DEFAULT_CONFIG_FILE = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | str | None = None) -> CostingConfig:
    """
    Load, validate and return the active costing configuration.

    Args:
        path: Override path to a YAML configuration file.  Defaults to
            ``costing_config/sets/default.yaml``.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        InvalidCostingConfigError: If a value fails validation.
    """
    config_path = Path(path) if path is not None else _DEFAULT_CONFIG_FILE
    config = load_config_file(config_path)

    _logger.info(
        "COSTING_CONFIG_TRACE",
        extra={
            "trace_type": "COSTING_CONFIG_TRACE",
            "config_id": config.config_id,
            "checksum": config.checksum,
            "holding_rate": str(config.holding_rate),
            "default_window_days": config.default_window_days,
            "include_write_offs_in_cogs": config.include_write_offs_in_cogs,
            "over_issue_policy": config.over_issue_policy.value,
            "reason_code_count": len(config.reason_codes or ()),
        },
    )
    return config


__all__ = ["CostingConfig", "get_active_config"]
