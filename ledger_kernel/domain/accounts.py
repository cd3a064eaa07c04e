"""
Account metadata -- the chart-of-accounts facts the kernel consumes.

Responsibility:
    Defines AccountType, NormalBalance and the immutable Account snapshot
    that the journal aggregate, the ledger aggregation engine and the
    auto-journal generator read.  AccountService maintains them; an account
    that journal lines reference keeps its type and cannot be deleted.

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ledger_kernel.domain.values import AccountId
from ledger_kernel.exceptions import ValidationError


class NormalBalance(str, Enum):
    """Side on which an account's balance increases."""

    DEBIT = "debit"
    CREDIT = "credit"


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"

    @property
    def normal_balance(self) -> NormalBalance:
        if self in (AccountType.ASSET, AccountType.EXPENSE):
            return NormalBalance.DEBIT
        return NormalBalance.CREDIT

    @property
    def is_balance_sheet(self) -> bool:
        return self in (AccountType.ASSET, AccountType.LIABILITY, AccountType.EQUITY)


# Presentation order shared by trial balance subtotals and statements
ACCOUNT_TYPE_ORDER: tuple[AccountType, ...] = (
    AccountType.ASSET,
    AccountType.LIABILITY,
    AccountType.EQUITY,
    AccountType.REVENUE,
    AccountType.EXPENSE,
)


@dataclass(frozen=True)
class Account:
    """
    Snapshot of one chart-of-accounts entry.

    ``id`` is None for an account that has not been stored yet.
    """

    code: str
    name: str
    account_type: AccountType
    id: AccountId | None = None

    def __post_init__(self) -> None:
        if not self.code or not self.code.strip():
            raise ValidationError("blank_account_code")
        if not self.name or not self.name.strip():
            raise ValidationError("blank_account_name", account_code=self.code)
        if not isinstance(self.account_type, AccountType):
            try:
                object.__setattr__(self, "account_type", AccountType(self.account_type))
            except ValueError as e:
                raise ValidationError(
                    "invalid_account_type",
                    f"Unknown account type {self.account_type!r}",
                    account_code=self.code,
                ) from e

    @property
    def normal_balance(self) -> NormalBalance:
        return self.account_type.normal_balance

    @property
    def is_debit_normal(self) -> bool:
        return self.normal_balance == NormalBalance.DEBIT
