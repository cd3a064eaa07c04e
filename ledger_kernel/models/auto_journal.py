"""
Module: ledger_kernel.models.auto_journal
Responsibility: ORM persistence for auto-journal patterns and their items.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - pattern_code is unique (uq_auto_journal_pattern_code).
    - (pattern_id, line_number) is unique.
"""

from sqlalchemy import Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import IDENTIFIER, Base, TrackedBase


class AutoJournalPatternModel(TrackedBase):
    __tablename__ = "auto_journal_patterns"

    __table_args__ = (
        UniqueConstraint("pattern_code", name="uq_auto_journal_pattern_code"),
    )

    pattern_code: Mapped[str] = mapped_column(String(50), nullable=False)

    pattern_name: Mapped[str] = mapped_column(String(200), nullable=False)

    source_table_name: Mapped[str] = mapped_column(String(100), nullable=False)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    items: Mapped[list["AutoJournalPatternItemModel"]] = relationship(
        back_populates="pattern",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="AutoJournalPatternItemModel.line_number",
    )

    def __repr__(self) -> str:
        return f"<AutoJournalPattern {self.pattern_code} active={self.is_active}>"


class AutoJournalPatternItemModel(Base):
    __tablename__ = "auto_journal_pattern_items"

    __table_args__ = (
        UniqueConstraint("pattern_id", "line_number", name="uq_auto_journal_item_line"),
    )

    pattern_id: Mapped[int] = mapped_column(
        IDENTIFIER,
        ForeignKey("auto_journal_patterns.id", ondelete="CASCADE"),
        nullable=False,
    )

    line_number: Mapped[int] = mapped_column(Integer, nullable=False)

    # "D" or "C"
    debit_credit: Mapped[str] = mapped_column(String(1), nullable=False)

    account_code: Mapped[str] = mapped_column(String(50), nullable=False)

    amount_formula: Mapped[str] = mapped_column(String(500), nullable=False)

    description_template: Mapped[str | None] = mapped_column(String(500), nullable=True)

    pattern: Mapped[AutoJournalPatternModel] = relationship(back_populates="items")
