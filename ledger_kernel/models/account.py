"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for chart-of-accounts metadata and the
    account hierarchy (materialized paths).
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from stores/, services/ or domain/.

Invariants enforced:
    - Account.code is unique (uq_account_code).
    - AccountStructure.account_code is unique; one node per account.
    - Path/level consistency is computed by ledger_kernel.domain.hierarchy,
      not by the database.
"""

from sqlalchemy import Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase


class AccountModel(TrackedBase):
    """
    Chart of Accounts entry -- the target of every journal line.

    Contract:
        account_type is one of asset/liability/equity/revenue/expense; the
        normal balance side is derived from it, never stored.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("code", name="uq_account_code"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    account_type: Mapped[str] = mapped_column(String(20), nullable=False)

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name}>"


class AccountStructureModel(TrackedBase):
    """One node of the chart-of-accounts tree."""

    __tablename__ = "account_structures"

    __table_args__ = (
        UniqueConstraint("account_code", name="uq_account_structure_code"),
        Index("idx_account_structure_parent", "parent_account_code"),
    )

    account_code: Mapped[str] = mapped_column(String(50), nullable=False)

    # Ancestor codes joined by the configured separator, root first
    account_path: Mapped[str] = mapped_column(String(1000), nullable=False)

    hierarchy_level: Mapped[int] = mapped_column(Integer, nullable=False)

    parent_account_code: Mapped[str | None] = mapped_column(String(50), nullable=True)

    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<AccountStructure {self.account_path}>"
