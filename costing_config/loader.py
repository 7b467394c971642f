"""
Configuration Loader (``costing_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into a validated
``CostingConfig``.  Runtime callers use
``costing_config.get_active_config()`` instead of calling this directly.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys, bad numbers, unknown policies or categories
  -> ``InvalidCostingConfigError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from costing_config.schema import CostingConfig
from costing_kernel.domain.stock import OverIssuePolicy, StockCategory
from costing_kernel.exceptions import InvalidCostingConfigError

_KNOWN_KEYS = frozenset({
    "config_id",
    "holding_rate",
    "default_window_days",
    "include_write_offs_in_cogs",
    "over_issue_policy",
    "ledger_epsilon",
    "cancellation_check_interval",
    "reason_codes",
})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(key: str, value: Any) -> Decimal:
    """Parse a Decimal from YAML; floats go through str() to keep their digits."""
    if isinstance(value, bool):
        raise InvalidCostingConfigError(key, f"expected a number, got {value!r}")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidCostingConfigError(key, f"expected a number, got {value!r}") from None


def parse_int(key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidCostingConfigError(key, f"expected an integer, got {value!r}")
    return value


def parse_bool(key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise InvalidCostingConfigError(key, f"expected true/false, got {value!r}")
    return value


def parse_over_issue_policy(value: Any) -> OverIssuePolicy:
    try:
        return OverIssuePolicy(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(p.value for p in OverIssuePolicy)
        raise InvalidCostingConfigError(
            "over_issue_policy", f"expected one of {allowed}, got {value!r}"
        ) from None


def parse_reason_codes(data: Any) -> tuple[tuple[str, StockCategory], ...]:
    """
    Parse a ``{category: [raw codes]}`` mapping into (code, category) pairs.

    Codes are normalised to upper case and the result is sorted by code so
    that identical tables always produce identical configs.
    """
    if not isinstance(data, dict):
        raise InvalidCostingConfigError("reason_codes", "expected a mapping of category to codes")

    pairs: dict[str, StockCategory] = {}
    for category_name, codes in data.items():
        try:
            category = StockCategory(str(category_name).strip().lower())
        except ValueError:
            raise InvalidCostingConfigError(
                "reason_codes", f"unknown category {category_name!r}"
            ) from None
        if not isinstance(codes, list):
            raise InvalidCostingConfigError(
                "reason_codes", f"codes for {category_name!r} must be a list"
            )
        for code in codes:
            normalized = str(code).strip().upper()
            if normalized in pairs:
                raise InvalidCostingConfigError(
                    "reason_codes", f"reason code {normalized!r} mapped twice"
                )
            pairs[normalized] = category

    return tuple(sorted(pairs.items()))


def parse_config(data: dict[str, Any]) -> CostingConfig:
    """
    Parse a ``CostingConfig`` from a dict.

    Missing keys take the schema defaults; unknown keys are rejected.
    """
    unknown = set(data) - _KNOWN_KEYS
    if unknown:
        raise InvalidCostingConfigError(
            ",".join(sorted(unknown)), "unknown configuration key"
        )

    kwargs: dict[str, Any] = {}
    if "config_id" in data:
        kwargs["config_id"] = str(data["config_id"])
    if "holding_rate" in data:
        kwargs["holding_rate"] = parse_decimal("holding_rate", data["holding_rate"])
    if "default_window_days" in data:
        kwargs["default_window_days"] = parse_int(
            "default_window_days", data["default_window_days"]
        )
    if "include_write_offs_in_cogs" in data:
        kwargs["include_write_offs_in_cogs"] = parse_bool(
            "include_write_offs_in_cogs", data["include_write_offs_in_cogs"]
        )
    if "over_issue_policy" in data:
        kwargs["over_issue_policy"] = parse_over_issue_policy(data["over_issue_policy"])
    if "ledger_epsilon" in data:
        kwargs["ledger_epsilon"] = parse_decimal("ledger_epsilon", data["ledger_epsilon"])
    if "cancellation_check_interval" in data:
        kwargs["cancellation_check_interval"] = parse_int(
            "cancellation_check_interval", data["cancellation_check_interval"]
        )
    if data.get("reason_codes") is not None:
        kwargs["reason_codes"] = parse_reason_codes(data["reason_codes"])

    kwargs["checksum"] = compute_checksum(data)
    return CostingConfig(**kwargs)


def load_config_file(path: Path) -> CostingConfig:
    """Load and parse a YAML configuration file."""
    return parse_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
