"""
Module: ledger_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.  Provides
    the integer primary key convention, type annotation map for consistent column
    types, and the TrackedBase mixin for row timestamps.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the persistence adapter.  ALL model files import from here.  This
    module MUST NOT import from models/, stores/, services/ or domain/.

Invariants enforced:
    - Integer surrogate keys: AccountId and JournalEntryId are positive ints,
      so every model gets an autoincrement integer primary key.
    - Decimal precision: type_annotation_map maps Python Decimal to
      Numeric(38, 9).  SQLite has no exact decimal, so there the value is
      stored as text and read back as Decimal.  NEVER float.
    - Timezone-aware timestamps on every backend (SQLite drops tzinfo; it is
      reattached as UTC on load).
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import ClassVar

from sqlalchemy import BigInteger, DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class DecimalString(TypeDecorator):
    """
    Exact Decimal stored as text, for backends without a decimal type.

    Guarantees:
        - process_bind_param: Decimal -> str on INSERT/UPDATE.
        - process_result_value: str -> Decimal on SELECT.
    """

    impl = String(64)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return Decimal(value)
        return None


class UTCDateTime(TypeDecorator):
    """Timezone-aware DateTime; naive values coming back are read as UTC."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


AMOUNT = Numeric(38, 9).with_variant(DecimalString(), "sqlite")

# SQLite only autoincrements an INTEGER PRIMARY KEY
IDENTIFIER = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - id is an autoincrement integer assigned on flush.
        - Decimal maps to Numeric(38, 9) -- financial-grade precision.
        - datetime maps to a timezone-aware column.
        - int maps to BigInteger.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: AMOUNT,
        datetime: UTCDateTime(),
        int: BigInteger,
    }

    id: Mapped[int] = mapped_column(
        IDENTIFIER,
        primary_key=True,
        autoincrement=True,
    )


class TrackedBase(Base):
    """
    Abstract base with row timestamps.

    Guarantees:
        - created_at is set to server NOW() on INSERT unless supplied.
        - updated_at is set on INSERT and refreshed on every UPDATE unless
          supplied (journal entries supply both from the injected Clock).
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
