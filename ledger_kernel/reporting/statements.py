"""
Pure financial statement transformation functions.

These functions transform posted lines and account metadata into trial
balance, balance sheet, profit-and-loss and financial analysis views.
ZERO I/O. ZERO side effects.

All monetary values are Decimal. All inputs/outputs are frozen dataclasses.

Comparative figures: when a comparative period is supplied every row and
section carries ``previous``, ``difference = current − previous`` and
``change_percent = difference / |previous| × 100`` rounded HALF_UP.  A zero
previous amount has no meaningful percentage, so ``change_percent`` is None.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Iterable, Mapping

from ledger_kernel.domain.accounts import ACCOUNT_TYPE_ORDER, Account, AccountType
from ledger_kernel.domain.values import ZERO
from ledger_kernel.reporting.ledgers import compute_natural_balance
from ledger_kernel.reporting.models import (
    BalanceSheetReport,
    FinancialAnalysisReport,
    FinancialIndicator,
    IndicatorCategory,
    PostedLine,
    ProfitAndLossReport,
    StatementLine,
    StatementSection,
    TrialBalanceCategory,
    TrialBalanceLineItem,
    TrialBalanceReport,
)

HUNDRED = Decimal("100")

# Enough digits for any Numeric(38, 9) amount divided by the smallest
# non-zero one, with room for the percentage scale and rounding places
REPORT_PRECISION = 60


# =========================================================================
# Helpers
# =========================================================================


def _quantize(value: Decimal, decimal_places: int) -> Decimal:
    return value.quantize(Decimal(1).scaleb(-decimal_places), rounding=ROUND_HALF_UP)


def percentage_change(
    current: Decimal,
    previous: Decimal,
    decimal_places: int = 2,
) -> Decimal | None:
    """``(current − previous) / |previous| × 100``; None when previous is zero."""
    if previous == ZERO:
        return None
    with localcontext() as ctx:
        ctx.prec = REPORT_PRECISION
        return _quantize((current - previous) * HUNDRED / abs(previous), decimal_places)


def _ratio(
    numerator: Decimal,
    denominator: Decimal,
    decimal_places: int,
    scale: Decimal = HUNDRED,
) -> Decimal | None:
    if denominator == ZERO:
        return None
    with localcontext() as ctx:
        ctx.prec = REPORT_PRECISION
        return _quantize(numerator * scale / denominator, decimal_places)


@dataclass(frozen=True)
class _AccountTotals:
    debit_total: Decimal
    credit_total: Decimal


def aggregate_by_account(lines: Iterable[PostedLine]) -> dict[str, _AccountTotals]:
    """Σdebit and Σcredit per account code."""
    debits: dict[str, Decimal] = defaultdict(lambda: ZERO)
    credits: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for line in lines:
        debits[line.account_code] += line.debit_amount
        credits[line.account_code] += line.credit_amount
    return {
        code: _AccountTotals(debits[code], credits[code])
        for code in set(debits) | set(credits)
    }


def _natural_balances(
    lines: Iterable[PostedLine],
    accounts: Mapping[str, Account],
) -> dict[str, Decimal]:
    balances: dict[str, Decimal] = {}
    for code, totals in aggregate_by_account(lines).items():
        account = accounts.get(code)
        if account is None:
            continue
        balances[code] = compute_natural_balance(
            totals.debit_total, totals.credit_total, account.normal_balance,
        )
    return balances


def compute_net_income(
    lines: Iterable[PostedLine],
    accounts: Mapping[str, Account],
) -> Decimal:
    """
    Net income = Σ REVENUE natural balances − Σ EXPENSE natural balances.

    Only REVENUE and EXPENSE accounts are considered.
    """
    revenue = ZERO
    expense = ZERO
    for code, balance in _natural_balances(lines, accounts).items():
        account_type = accounts[code].account_type
        if account_type == AccountType.REVENUE:
            revenue += balance
        elif account_type == AccountType.EXPENSE:
            expense += balance
    return revenue - expense


def _build_section(
    account_type: AccountType,
    accounts: Mapping[str, Account],
    current: Mapping[str, Decimal],
    previous: Mapping[str, Decimal] | None,
    decimal_places: int,
) -> StatementSection:
    codes = {
        code for code in set(current) | set(previous or {})
        if accounts[code].account_type == account_type
    }
    rows: list[StatementLine] = []
    for code in sorted(codes):
        amount = current.get(code, ZERO)
        if previous is None:
            rows.append(StatementLine(code, accounts[code].name, amount))
            continue
        prior = previous.get(code, ZERO)
        rows.append(
            StatementLine(
                account_code=code,
                account_name=accounts[code].name,
                amount=amount,
                previous_amount=prior,
                difference=amount - prior,
                change_percent=percentage_change(amount, prior, decimal_places),
            )
        )

    total = sum((row.amount for row in rows), ZERO)
    if previous is None:
        return StatementSection(account_type, tuple(rows), total)
    previous_total = sum((row.previous_amount for row in rows), ZERO)
    return StatementSection(
        account_type=account_type,
        lines=tuple(rows),
        total=total,
        previous_total=previous_total,
        difference=total - previous_total,
        change_percent=percentage_change(total, previous_total, decimal_places),
    )


# =========================================================================
# 1. TRIAL BALANCE
# =========================================================================


def build_trial_balance(
    lines: Iterable[PostedLine],
    accounts: Mapping[str, Account],
    as_of: date,
) -> TrialBalanceReport:
    """
    Per-account Σdebit/Σcredit for everything posted up to ``as_of``.

    Rows are sorted by account code; category subtotals follow
    ``ACCOUNT_TYPE_ORDER``.  Lines on unknown accounts are ignored.
    """
    posted = [line for line in lines if line.journal_date <= as_of]
    items: list[TrialBalanceLineItem] = []
    for code, totals in aggregate_by_account(posted).items():
        account = accounts.get(code)
        if account is None:
            continue
        items.append(
            TrialBalanceLineItem(
                account_code=code,
                account_name=account.name,
                account_type=account.account_type,
                debit_total=totals.debit_total,
                credit_total=totals.credit_total,
                net_balance=compute_natural_balance(
                    totals.debit_total, totals.credit_total, account.normal_balance,
                ),
            )
        )
    items.sort(key=lambda item: item.account_code)

    categories: list[TrialBalanceCategory] = []
    for account_type in ACCOUNT_TYPE_ORDER:
        members = [item for item in items if item.account_type == account_type]
        if not members:
            continue
        categories.append(
            TrialBalanceCategory(
                account_type=account_type,
                debit_total=sum((m.debit_total for m in members), ZERO),
                credit_total=sum((m.credit_total for m in members), ZERO),
                net_balance=sum((m.net_balance for m in members), ZERO),
            )
        )

    total_debits = sum((item.debit_total for item in items), ZERO)
    total_credits = sum((item.credit_total for item in items), ZERO)
    return TrialBalanceReport(
        as_of=as_of,
        lines=tuple(items),
        categories=tuple(categories),
        total_debits=total_debits,
        total_credits=total_credits,
        is_balanced=(total_debits == total_credits),
        difference=abs(total_debits - total_credits),
    )


# =========================================================================
# 2. BALANCE SHEET
# =========================================================================


def build_balance_sheet(
    lines: Iterable[PostedLine],
    accounts: Mapping[str, Account],
    as_of: date,
    comparative_lines: Iterable[PostedLine] | None = None,
    comparative_as_of: date | None = None,
    decimal_places: int = 2,
) -> BalanceSheetReport:
    """
    Balance sheet from everything posted up to ``as_of``.

    1. ASSET/LIABILITY/EQUITY accounts form the three sections
    2. Net income to date (REVENUE − EXPENSE) is added to equity
    3. Verify A = L + E
    """
    current_lines = [line for line in lines if line.journal_date <= as_of]
    current = _natural_balances(current_lines, accounts)
    net_income = compute_net_income(current_lines, accounts)

    previous = None
    previous_net_income = None
    if comparative_lines is not None:
        prior_lines = [
            line for line in comparative_lines
            if comparative_as_of is None or line.journal_date <= comparative_as_of
        ]
        previous = _natural_balances(prior_lines, accounts)
        previous_net_income = compute_net_income(prior_lines, accounts)

    assets = _build_section(AccountType.ASSET, accounts, current, previous, decimal_places)
    liabilities = _build_section(AccountType.LIABILITY, accounts, current, previous, decimal_places)
    equity = _build_section(AccountType.EQUITY, accounts, current, previous, decimal_places)

    total_equity = equity.total + net_income
    total_liabilities_and_equity = liabilities.total + total_equity
    return BalanceSheetReport(
        as_of=as_of,
        assets=assets,
        liabilities=liabilities,
        equity=equity,
        net_income=net_income,
        total_assets=assets.total,
        total_liabilities=liabilities.total,
        total_equity=total_equity,
        total_liabilities_and_equity=total_liabilities_and_equity,
        is_balanced=(assets.total == total_liabilities_and_equity),
        difference=abs(assets.total - total_liabilities_and_equity),
        comparative_as_of=comparative_as_of,
        previous_net_income=previous_net_income,
    )


# =========================================================================
# 3. PROFIT AND LOSS
# =========================================================================


def build_profit_and_loss(
    lines: Iterable[PostedLine],
    accounts: Mapping[str, Account],
    date_from: date,
    date_to: date,
    comparative_lines: Iterable[PostedLine] | None = None,
    comparative_date_from: date | None = None,
    comparative_date_to: date | None = None,
    decimal_places: int = 2,
) -> ProfitAndLossReport:
    """Revenue − Expenses = Net Income over ``[date_from, date_to]``."""
    current = _natural_balances(
        [line for line in lines if date_from <= line.journal_date <= date_to],
        accounts,
    )

    previous = None
    if comparative_lines is not None:
        previous = _natural_balances(
            [
                line for line in comparative_lines
                if (comparative_date_from is None or line.journal_date >= comparative_date_from)
                and (comparative_date_to is None or line.journal_date <= comparative_date_to)
            ],
            accounts,
        )

    revenue = _build_section(AccountType.REVENUE, accounts, current, previous, decimal_places)
    expenses = _build_section(AccountType.EXPENSE, accounts, current, previous, decimal_places)
    net_income = revenue.total - expenses.total

    previous_net_income = None
    net_income_difference = None
    net_income_change = None
    if previous is not None:
        previous_net_income = revenue.previous_total - expenses.previous_total
        net_income_difference = net_income - previous_net_income
        net_income_change = percentage_change(net_income, previous_net_income, decimal_places)

    return ProfitAndLossReport(
        date_from=date_from,
        date_to=date_to,
        revenue=revenue,
        expenses=expenses,
        total_revenue=revenue.total,
        total_expenses=expenses.total,
        net_income=net_income,
        comparative_date_from=comparative_date_from,
        comparative_date_to=comparative_date_to,
        previous_net_income=previous_net_income,
        net_income_difference=net_income_difference,
        net_income_change_percent=net_income_change,
    )


# =========================================================================
# 4. FINANCIAL ANALYSIS
# =========================================================================

# code, name, category, unit, formula, numerator, denominator, scale
_INDICATORS = (
    ("roe", "Return on equity", IndicatorCategory.PROFITABILITY, "%",
     "net income / equity x 100", "net_income", "equity", HUNDRED),
    ("roa", "Return on assets", IndicatorCategory.PROFITABILITY, "%",
     "net income / total assets x 100", "net_income", "assets", HUNDRED),
    ("net_profit_margin", "Net profit margin", IndicatorCategory.PROFITABILITY, "%",
     "net income / revenue x 100", "net_income", "revenue", HUNDRED),
    ("current_ratio", "Current ratio", IndicatorCategory.SAFETY, "%",
     "assets / liabilities x 100", "assets", "liabilities", HUNDRED),
    ("equity_ratio", "Equity ratio", IndicatorCategory.SAFETY, "%",
     "equity / total assets x 100", "equity", "assets", HUNDRED),
    ("debt_ratio", "Debt ratio", IndicatorCategory.SAFETY, "%",
     "liabilities / equity x 100", "liabilities", "equity", HUNDRED),
    ("asset_turnover", "Total asset turnover", IndicatorCategory.EFFICIENCY, "times",
     "revenue / total assets", "revenue", "assets", Decimal("1")),
)


def _indicator_inputs(
    balance_sheet: BalanceSheetReport,
    profit_and_loss: ProfitAndLossReport,
) -> dict[str, Decimal]:
    return {
        "net_income": profit_and_loss.net_income,
        "revenue": profit_and_loss.total_revenue,
        "assets": balance_sheet.total_assets,
        "liabilities": balance_sheet.total_liabilities,
        "equity": balance_sheet.total_equity,
    }


def build_financial_analysis(
    balance_sheet: BalanceSheetReport,
    profit_and_loss: ProfitAndLossReport,
    comparative_balance_sheet: BalanceSheetReport | None = None,
    comparative_profit_and_loss: ProfitAndLossReport | None = None,
    decimal_places: int = 2,
) -> FinancialAnalysisReport:
    """
    Profitability, safety and efficiency ratios.

    A ratio whose denominator is zero is None rather than zero.
    """
    current = _indicator_inputs(balance_sheet, profit_and_loss)
    previous = None
    if comparative_balance_sheet is not None and comparative_profit_and_loss is not None:
        previous = _indicator_inputs(comparative_balance_sheet, comparative_profit_and_loss)

    indicators: list[FinancialIndicator] = []
    for code, name, category, unit, formula, num, den, scale in _INDICATORS:
        value = _ratio(current[num], current[den], decimal_places, scale)
        if previous is None:
            indicators.append(FinancialIndicator(code, name, category, unit, formula, value))
            continue
        prior = _ratio(previous[num], previous[den], decimal_places, scale)
        difference = None
        change = None
        if value is not None and prior is not None:
            difference = value - prior
            change = percentage_change(value, prior, decimal_places)
        indicators.append(
            FinancialIndicator(
                code, name, category, unit, formula, value,
                previous_value=prior,
                difference=difference,
                change_percent=change,
            )
        )

    return FinancialAnalysisReport(
        date_from=profit_and_loss.date_from,
        date_to=profit_and_loss.date_to,
        indicators=tuple(indicators),
        comparative_date_from=(
            comparative_profit_and_loss.date_from if comparative_profit_and_loss else None
        ),
        comparative_date_to=(
            comparative_profit_and_loss.date_to if comparative_profit_and_loss else None
        ),
    )
