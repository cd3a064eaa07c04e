"""
Process start-up for hosts embedding the ledger kernel.

Applies the operational half of LedgerConfig: the log level of the
``ledger_kernel`` logger tree and, when ``database_url`` is set, the
module-level engine used by ``session_scope()``.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.engine import Engine

from ledger_kernel.config import LedgerConfig, load_config
from ledger_kernel.db.engine import init_engine_from_url
from ledger_kernel.logging_config import configure_logging, get_logger

logger = get_logger("bootstrap")


def bootstrap(
    config: LedgerConfig | None = None,
    *,
    echo: bool = False,
    stream: Any = None,
) -> Engine | None:
    """
    Configure logging, then the engine.

    With no ``config`` the file named by ``LEDGER_KERNEL_CONFIG`` is loaded
    (defaults if unset).  Returns the engine, or None when the config has no
    ``database_url`` and the host manages its own sessions.
    """
    config = config or load_config()
    configure_logging(level=config.log_level, stream=stream)

    if config.database_url is None:
        logger.info("bootstrap_without_database", extra={"log_level": config.log_level})
        return None

    engine = init_engine_from_url(config.database_url, echo=echo)
    logger.info("bootstrap_complete", extra={"log_level": config.log_level})
    return engine
