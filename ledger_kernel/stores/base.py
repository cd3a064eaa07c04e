"""
Module: ledger_kernel.stores.base
Responsibility: Common base for the SQLAlchemy store adapters.
Architecture position: Kernel > Stores.  May import from db/, models/ and
    domain/.  MUST NOT import from services/.

Invariants enforced:
    - Session ownership: stores accept a Session from the caller and never
      create, commit or close it.  Writes are flushed so that ids and
      version bumps are visible inside the caller's transaction.
    - Every SQLAlchemyError is re-raised as StorageError naming the
      operation; business outcomes never surface as exceptions.
"""

from abc import ABC
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledger_kernel.exceptions import StorageError
from ledger_kernel.logging_config import get_logger

logger = get_logger("stores")


class SqlStore(ABC):
    """
    Abstract base class for all store adapters.

    Guarantees:
        - session is stored as a public attribute for subclass query use.
        - No commit is ever issued.
    """

    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def _storage(self, operation: str) -> Iterator[None]:
        """Translate driver/ORM failures into StorageError."""
        try:
            yield
        except SQLAlchemyError as exc:
            logger.error(
                "storage_operation_failed",
                extra={"operation": operation, "store": type(self).__name__},
                exc_info=True,
            )
            raise StorageError(operation, exc) from exc
