"""
CostingConfig schema.

The runtime configuration of the costing engine: holding-cost rate,
default reporting window, COGS and over-issue policies, ledger tolerance,
cancellation check cadence, and an optional replacement reason-code table.

YAML fragments are parsed into this type by the loader; callers obtain it
through ``costing_config.get_active_config()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from costing_kernel.domain.stock import OverIssuePolicy, StockCategory
from costing_kernel.exceptions import InvalidCostingConfigError


@dataclass(frozen=True)
class CostingConfig:
    """
    Validated costing configuration.

    Contract:
        Frozen; every instance has passed ``__post_init__`` validation.

    Guarantees:
        - holding_rate >= 0.
        - default_window_days >= 0.
        - ledger_epsilon >= 0.
        - cancellation_check_interval >= 1.
        - reason_codes, when set, maps upper-case raw codes to categories.
    """

    holding_rate: Decimal = Decimal("0.25")
    default_window_days: int = 30
    include_write_offs_in_cogs: bool = False
    over_issue_policy: OverIssuePolicy = OverIssuePolicy.CLAMP
    ledger_epsilon: Decimal = Decimal("0.000001")
    cancellation_check_interval: int = 1000
    reason_codes: tuple[tuple[str, StockCategory], ...] | None = None
    config_id: str = "default"
    checksum: str | None = None

    def __post_init__(self) -> None:
        if self.holding_rate < 0:
            raise InvalidCostingConfigError("holding_rate", "must not be negative")
        if self.default_window_days < 0:
            raise InvalidCostingConfigError("default_window_days", "must not be negative")
        if self.ledger_epsilon < 0:
            raise InvalidCostingConfigError("ledger_epsilon", "must not be negative")
        if self.cancellation_check_interval < 1:
            raise InvalidCostingConfigError(
                "cancellation_check_interval", "must be at least 1"
            )
        if self.reason_codes is not None:
            if not self.reason_codes:
                raise InvalidCostingConfigError("reason_codes", "must not be empty")
            codes = [code for code, _ in self.reason_codes]
            if len(codes) != len(set(codes)):
                raise InvalidCostingConfigError("reason_codes", "duplicate reason code")

    @classmethod
    def with_defaults(cls) -> CostingConfig:
        """Default configuration without touching disk."""
        return cls()

    @property
    def reason_table(self) -> dict[str, StockCategory] | None:
        """Configured reason table, or None to use the built-in table."""
        if self.reason_codes is None:
            return None
        return dict(self.reason_codes)
