"""
Ledger Report Models (``ledger_kernel.reporting.models``).

Responsibility
--------------
Frozen dataclass value objects for the engine's input (``PostedLine``) and
every derived view: general/subsidiary ledger, daily/monthly balances,
trial balance, balance sheet, profit-and-loss and financial analysis.

Architecture position
---------------------
**Reporting layer** -- pure data definitions with ZERO I/O.  Built by
``ledger_kernel.reporting.ledgers`` and ``ledger_kernel.reporting.statements``
and returned to callers by ``ReportService``.  Never persisted.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* Signed balances may be negative; they are plain ``Decimal``, not ``Money``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from ledger_kernel.domain.accounts import AccountType
from ledger_kernel.domain.values import ZERO


class BalanceGranularity(str, Enum):
    DAILY = "daily"
    MONTHLY = "monthly"


# =========================================================================
# Engine input
# =========================================================================


@dataclass(frozen=True)
class PostedLine:
    """
    One line of a CONFIRMED journal entry, flattened with its header.

    Exactly one of debit_amount/credit_amount is non-zero.
    """

    journal_entry_id: int
    journal_date: date
    line_number: int
    account_code: str
    debit_amount: Decimal = ZERO
    credit_amount: Decimal = ZERO
    sub_account_code: str | None = None
    line_description: str | None = None
    entry_description: str | None = None

    @property
    def sort_key(self) -> tuple[date, int, int]:
        return (self.journal_date, self.journal_entry_id, self.line_number)

    @property
    def description(self) -> str | None:
        """Line description, falling back to the entry header."""
        return self.line_description or self.entry_description


# =========================================================================
# General / Subsidiary Ledger
# =========================================================================


@dataclass(frozen=True)
class LedgerLine:
    """A single row of a general or subsidiary ledger."""

    journal_entry_id: int
    journal_date: date
    line_number: int
    description: str | None
    debit_amount: Decimal
    credit_amount: Decimal
    running_balance: Decimal
    sub_account_code: str | None = None


@dataclass(frozen=True)
class GeneralLedgerReport:
    """
    Chronological running-balance view of one account.

    ``lines`` holds one page; totals and the closing balance always cover
    the whole window.  ``sub_account_code`` is set for a subsidiary ledger.
    """

    account_code: str
    account_name: str
    account_type: AccountType
    date_from: date
    date_to: date
    opening_balance: Decimal
    lines: tuple[LedgerLine, ...]
    total_debits: Decimal
    total_credits: Decimal
    closing_balance: Decimal
    page: int
    size: int
    total_lines: int
    sub_account_code: str | None = None

    @property
    def total_pages(self) -> int:
        if self.total_lines == 0:
            return 0
        return (self.total_lines + self.size - 1) // self.size


# =========================================================================
# Daily / Monthly Balance
# =========================================================================


@dataclass(frozen=True)
class BalanceBucket:
    """Movement of one account over one calendar day or month."""

    period_start: date
    period_end: date
    opening_balance: Decimal
    debit_total: Decimal
    credit_total: Decimal
    closing_balance: Decimal
    transaction_count: int


@dataclass(frozen=True)
class BalanceSummaryReport:
    """Daily or monthly balance buckets covering a date window."""

    account_code: str
    account_name: str
    account_type: AccountType
    granularity: BalanceGranularity
    date_from: date
    date_to: date
    opening_balance: Decimal
    buckets: tuple[BalanceBucket, ...]
    closing_balance: Decimal
    sub_account_code: str | None = None


# =========================================================================
# Trial Balance
# =========================================================================


@dataclass(frozen=True)
class TrialBalanceLineItem:
    """A single account row in the trial balance."""

    account_code: str
    account_name: str
    account_type: AccountType
    debit_total: Decimal
    credit_total: Decimal
    net_balance: Decimal  # Natural-balance-adjusted


@dataclass(frozen=True)
class TrialBalanceCategory:
    """Subtotal of all accounts of one type."""

    account_type: AccountType
    debit_total: Decimal
    credit_total: Decimal
    net_balance: Decimal


@dataclass(frozen=True)
class TrialBalanceReport:
    """Complete trial balance report."""

    as_of: date
    lines: tuple[TrialBalanceLineItem, ...]
    categories: tuple[TrialBalanceCategory, ...]
    total_debits: Decimal
    total_credits: Decimal
    is_balanced: bool  # total_debits == total_credits
    difference: Decimal  # |total_debits - total_credits|


# =========================================================================
# Balance Sheet / Profit-and-Loss
# =========================================================================


@dataclass(frozen=True)
class StatementLine:
    """
    One account row with optional comparative figures.

    ``previous_amount``, ``difference`` and ``change_percent`` are None
    without a comparative period; ``change_percent`` is also None when the
    previous amount is zero.
    """

    account_code: str
    account_name: str
    amount: Decimal
    previous_amount: Decimal | None = None
    difference: Decimal | None = None
    change_percent: Decimal | None = None


@dataclass(frozen=True)
class StatementSection:
    """All rows of one account type with their total."""

    account_type: AccountType
    lines: tuple[StatementLine, ...]
    total: Decimal
    previous_total: Decimal | None = None
    difference: Decimal | None = None
    change_percent: Decimal | None = None


@dataclass(frozen=True)
class BalanceSheetReport:
    """
    Balance sheet as of a date.

    Net income to date is reported separately and included in
    ``total_equity``, so Assets = Liabilities + Equity holds without
    closing entries.
    """

    as_of: date
    assets: StatementSection
    liabilities: StatementSection
    equity: StatementSection
    net_income: Decimal
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    total_liabilities_and_equity: Decimal
    is_balanced: bool
    difference: Decimal
    comparative_as_of: date | None = None
    previous_net_income: Decimal | None = None


@dataclass(frozen=True)
class ProfitAndLossReport:
    """Revenue and expense sections for a period with net income."""

    date_from: date
    date_to: date
    revenue: StatementSection
    expenses: StatementSection
    total_revenue: Decimal
    total_expenses: Decimal
    net_income: Decimal
    comparative_date_from: date | None = None
    comparative_date_to: date | None = None
    previous_net_income: Decimal | None = None
    net_income_difference: Decimal | None = None
    net_income_change_percent: Decimal | None = None


# =========================================================================
# Financial Analysis
# =========================================================================


class IndicatorCategory(str, Enum):
    PROFITABILITY = "profitability"
    SAFETY = "safety"
    EFFICIENCY = "efficiency"


@dataclass(frozen=True)
class FinancialIndicator:
    """
    One ratio with optional comparative value.

    ``value`` is None when its denominator is zero.
    """

    code: str
    name: str
    category: IndicatorCategory
    unit: str  # "%" or "times"
    formula: str
    value: Decimal | None
    previous_value: Decimal | None = None
    difference: Decimal | None = None
    change_percent: Decimal | None = None


@dataclass(frozen=True)
class FinancialAnalysisReport:
    date_from: date
    date_to: date
    indicators: tuple[FinancialIndicator, ...]
    comparative_date_from: date | None = None
    comparative_date_to: date | None = None

    def by_category(self, category: IndicatorCategory) -> tuple[FinancialIndicator, ...]:
        return tuple(i for i in self.indicators if i.category == category)

    def indicator(self, code: str) -> FinancialIndicator | None:
        for item in self.indicators:
            if item.code == code:
                return item
        return None
