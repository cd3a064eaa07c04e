"""
Module: ledger_kernel.models.journal
Responsibility: ORM persistence for journal entries and their lines.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from stores/, services/ or domain/.

Invariants enforced:
    - (journal_entry_id, line_number) is unique (uq_journal_line_number).
    - version is the optimistic-concurrency token.  It is changed only by
      SqlJournalEntryStore's compare-and-swap UPDATE.
    - Balance and line-numbering are enforced by the domain aggregate before
      a save; this model does not re-check them.

Failure modes:
    - IntegrityError on a duplicate line number or an unknown account_id.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import IDENTIFIER, Base, TrackedBase


class JournalEntryModel(TrackedBase):
    """
    Journal entry header.

    Contract:
        created_at/updated_at are written from the domain value (injected
        Clock), not from the database clock.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        Index("idx_journal_date", "journal_date"),
        Index("idx_journal_status", "status"),
    )

    journal_date: Mapped[date] = mapped_column(Date, nullable=False)

    description: Mapped[str] = mapped_column(String(500), nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_by: Mapped[str] = mapped_column(String(100), nullable=False)

    approved_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)

    rejected_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    confirmed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    confirmed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    lines: Mapped[list["JournalLineModel"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="JournalLineModel.line_number",
    )

    def __repr__(self) -> str:
        return f"<JournalEntry {self.id} status={self.status} v{self.version}>"


class JournalLineModel(Base):
    """A single debit or credit line; exactly one amount column is set."""

    __tablename__ = "journal_entry_lines"

    __table_args__ = (
        UniqueConstraint("journal_entry_id", "line_number", name="uq_journal_line_number"),
        Index("idx_line_account", "account_id"),
        Index("idx_line_account_sub", "account_id", "sub_account_code"),
    )

    journal_entry_id: Mapped[int] = mapped_column(
        IDENTIFIER,
        ForeignKey("journal_entries.id", ondelete="CASCADE"),
        nullable=False,
    )

    line_number: Mapped[int] = mapped_column(Integer, nullable=False)

    account_id: Mapped[int] = mapped_column(
        IDENTIFIER,
        ForeignKey("accounts.id"),
        nullable=False,
    )

    debit_amount: Mapped[Decimal | None] = mapped_column(nullable=True)

    credit_amount: Mapped[Decimal | None] = mapped_column(nullable=True)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    sub_account_code: Mapped[str | None] = mapped_column(String(50), nullable=True)

    entry: Mapped[JournalEntryModel] = relationship(back_populates="lines")

    def __repr__(self) -> str:
        side = "Dr" if self.debit_amount is not None else "Cr"
        amount = self.debit_amount if self.debit_amount is not None else self.credit_amount
        return f"<JournalLine {self.line_number} {side} {amount}>"
