"""
Ledger kernel configuration.

Tunables for the hierarchy, formula evaluation, statement rounding and
ledger pagination.  Values come from defaults, a dict, or a YAML file:

    path_separator: "~"
    max_hierarchy_depth: 64
    formula_decimal_places: 0
    percentage_decimal_places: 2
    default_page_size: 50
    max_page_size: 1000
    log_level: INFO
    database_url: postgresql://localhost/ledger

Failure modes:
    - Missing YAML file -> ``FileNotFoundError`` propagates.
    - Malformed YAML -> ``yaml.YAMLError`` propagates.
    - Unknown key or out-of-range value -> ``ValueError``.
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Self

import yaml

from ledger_kernel.logging_config import get_logger

logger = get_logger("config")

CONFIG_ENV_VAR = "LEDGER_KERNEL_CONFIG"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class LedgerConfig:
    """Configuration for the ledger kernel services."""

    # Separator joining codes in AccountStructure.account_path
    path_separator: str = "~"

    # Longest ancestor chain walked before a hierarchy is declared circular
    max_hierarchy_depth: int = 64

    # Rounding of auto-journal formula results (HALF_UP)
    formula_decimal_places: int = 0

    # Rounding of statement percentage changes and analysis ratios
    percentage_decimal_places: int = 2

    # Ledger pagination
    default_page_size: int = 50
    max_page_size: int = 1000

    log_level: str = "INFO"

    database_url: str | None = None

    def __post_init__(self):
        if not self.path_separator:
            raise ValueError("path_separator cannot be empty")
        if self.max_hierarchy_depth < 1:
            raise ValueError("max_hierarchy_depth must be at least 1")
        if self.formula_decimal_places < 0:
            raise ValueError("formula_decimal_places cannot be negative")
        if self.percentage_decimal_places < 0:
            raise ValueError("percentage_decimal_places cannot be negative")
        if self.default_page_size < 1:
            raise ValueError("default_page_size must be at least 1")
        if self.max_page_size < self.default_page_size:
            raise ValueError("max_page_size must be >= default_page_size")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        logger.info("ledger_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create config from dictionary; unknown keys are rejected."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")
        logger.info(
            "ledger_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def page_size(self, requested: int | None) -> int:
        """Clamp a requested page size into ``1..max_page_size``."""
        if requested is None:
            return self.default_page_size
        return max(1, min(requested, self.max_page_size))


def load_config(path: str | Path | None = None) -> LedgerConfig:
    """
    Load configuration from a YAML file.

    With no ``path`` the ``LEDGER_KERNEL_CONFIG`` environment variable is
    consulted; if that is unset too, defaults are returned.
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR)
        if not path:
            return LedgerConfig.with_defaults()

    path = Path(path)
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    logger.info("ledger_config_file_loaded", extra={"path": str(path)})
    return LedgerConfig.from_dict(data)
