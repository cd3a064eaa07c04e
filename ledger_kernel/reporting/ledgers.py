"""
Ledger aggregation -- running balances, ledgers and balance buckets.

These functions turn a window of posted lines for one account into
general ledger, subsidiary ledger and daily/monthly balance views.
ZERO I/O. ZERO side effects.

Functions in this module follow the kernel domain purity convention:
- No database access
- No clock access
- Inputs are never mutated (sorting always works on a copy)
- Deterministic: same inputs always produce same outputs

Sign convention: a raw balance is ``Σdebit − Σcredit``.  A natural balance
is the raw balance seen from the account's normal side, positive when the
account carries its expected balance.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Sequence

from ledger_kernel.domain.accounts import Account, NormalBalance
from ledger_kernel.domain.values import ZERO
from ledger_kernel.reporting.models import (
    BalanceBucket,
    BalanceGranularity,
    BalanceSummaryReport,
    GeneralLedgerReport,
    LedgerLine,
    PostedLine,
)

# =========================================================================
# Sign helpers
# =========================================================================


def signed_amount(line: PostedLine, normal_balance: NormalBalance) -> Decimal:
    """
    Effect of one line on the account's natural balance.

    DEBIT-normal (ASSET, EXPENSE): debit adds, credit subtracts
    CREDIT-normal (LIABILITY, EQUITY, REVENUE): credit adds, debit subtracts
    """
    if normal_balance == NormalBalance.DEBIT:
        return line.debit_amount - line.credit_amount
    return line.credit_amount - line.debit_amount


def normalize_balance(raw: Decimal, normal_balance: NormalBalance) -> Decimal:
    """Turn a raw ``Σdebit − Σcredit`` into a natural balance."""
    if normal_balance == NormalBalance.DEBIT:
        return raw
    return -raw


def compute_natural_balance(
    debit_total: Decimal,
    credit_total: Decimal,
    normal_balance: NormalBalance,
) -> Decimal:
    return normalize_balance(debit_total - credit_total, normal_balance)


# =========================================================================
# Running balance
# =========================================================================


def sort_posted_lines(lines: Iterable[PostedLine]) -> list[PostedLine]:
    """New list ordered by (journal_date, journal_entry_id, line_number)."""
    return sorted(lines, key=lambda line: line.sort_key)


def compute_running_balances(
    lines: Iterable[PostedLine],
    opening_balance: Decimal,
    normal_balance: NormalBalance,
) -> tuple[LedgerLine, ...]:
    """
    Ledger rows with ``balance_i = balance_{i-1} + signed(amount_i)``.

    The first row builds on ``opening_balance``.
    """
    balance = opening_balance
    rows: list[LedgerLine] = []
    for line in sort_posted_lines(lines):
        balance += signed_amount(line, normal_balance)
        rows.append(
            LedgerLine(
                journal_entry_id=line.journal_entry_id,
                journal_date=line.journal_date,
                line_number=line.line_number,
                description=line.description,
                debit_amount=line.debit_amount,
                credit_amount=line.credit_amount,
                running_balance=balance,
                sub_account_code=line.sub_account_code,
            )
        )
    return tuple(rows)


def _check_window(date_from: date, date_to: date) -> None:
    if date_from > date_to:
        raise ValueError(f"date_from {date_from} is after date_to {date_to}")


def _in_window(
    lines: Iterable[PostedLine],
    account_code: str,
    date_from: date,
    date_to: date,
    sub_account_code: str | None = None,
) -> list[PostedLine]:
    return [
        line for line in lines
        if line.account_code == account_code
        and date_from <= line.journal_date <= date_to
        and (sub_account_code is None or line.sub_account_code == sub_account_code)
    ]


def paginate(rows: Sequence, page: int, size: int) -> tuple:
    """1-based page slice; a page past the end is empty."""
    if page < 1 or size < 1:
        raise ValueError(f"page and size must be >= 1, got page={page} size={size}")
    start = (page - 1) * size
    return tuple(rows[start:start + size])


# =========================================================================
# General / Subsidiary Ledger
# =========================================================================


def build_general_ledger(
    account: Account,
    lines: Iterable[PostedLine],
    opening_balance: Decimal,
    date_from: date,
    date_to: date,
    page: int = 1,
    size: int = 50,
    sub_account_code: str | None = None,
) -> GeneralLedgerReport:
    """
    Running-balance ledger of one account over ``[date_from, date_to]``.

    ``opening_balance`` is the natural balance of everything posted strictly
    before ``date_from``.  Running balances are computed over the whole
    window first and only then paginated, so every page carries correct
    balances.  ``closing == opening + signed(Δ)`` and equals the running
    balance of the final row.
    """
    _check_window(date_from, date_to)
    window = _in_window(lines, account.code, date_from, date_to, sub_account_code)
    rows = compute_running_balances(window, opening_balance, account.normal_balance)

    total_debits = sum((row.debit_amount for row in rows), ZERO)
    total_credits = sum((row.credit_amount for row in rows), ZERO)
    closing = opening_balance + compute_natural_balance(
        total_debits, total_credits, account.normal_balance,
    )

    return GeneralLedgerReport(
        account_code=account.code,
        account_name=account.name,
        account_type=account.account_type,
        date_from=date_from,
        date_to=date_to,
        opening_balance=opening_balance,
        lines=paginate(rows, page, size),
        total_debits=total_debits,
        total_credits=total_credits,
        closing_balance=closing,
        page=page,
        size=size,
        total_lines=len(rows),
        sub_account_code=sub_account_code,
    )


def build_subsidiary_ledger(
    account: Account,
    sub_account_code: str,
    lines: Iterable[PostedLine],
    opening_balance: Decimal,
    date_from: date,
    date_to: date,
    page: int = 1,
    size: int = 50,
) -> GeneralLedgerReport:
    """General ledger restricted to one sub-account."""
    return build_general_ledger(
        account, lines, opening_balance, date_from, date_to,
        page=page, size=size, sub_account_code=sub_account_code,
    )


# =========================================================================
# Daily / Monthly Balance
# =========================================================================


def _daily_periods(date_from: date, date_to: date) -> list[tuple[date, date]]:
    days = (date_to - date_from).days
    return [
        (date_from + timedelta(days=i), date_from + timedelta(days=i))
        for i in range(days + 1)
    ]


def _monthly_periods(date_from: date, date_to: date) -> list[tuple[date, date]]:
    periods: list[tuple[date, date]] = []
    year, month = date_from.year, date_from.month
    while (year, month) <= (date_to.year, date_to.month):
        first = date(year, month, 1)
        last = date(year, month, calendar.monthrange(year, month)[1])
        periods.append((max(first, date_from), min(last, date_to)))
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return periods


def _build_balances(
    granularity: BalanceGranularity,
    account: Account,
    lines: Iterable[PostedLine],
    opening_balance: Decimal,
    date_from: date,
    date_to: date,
    sub_account_code: str | None,
) -> BalanceSummaryReport:
    _check_window(date_from, date_to)
    window = sort_posted_lines(
        _in_window(lines, account.code, date_from, date_to, sub_account_code)
    )
    periods = (
        _daily_periods(date_from, date_to)
        if granularity == BalanceGranularity.DAILY
        else _monthly_periods(date_from, date_to)
    )

    buckets: list[BalanceBucket] = []
    balance = opening_balance
    index = 0
    for start, end in periods:
        debit_total = ZERO
        credit_total = ZERO
        count = 0
        while index < len(window) and window[index].journal_date <= end:
            debit_total += window[index].debit_amount
            credit_total += window[index].credit_amount
            count += 1
            index += 1
        closing = balance + compute_natural_balance(
            debit_total, credit_total, account.normal_balance,
        )
        buckets.append(
            BalanceBucket(
                period_start=start,
                period_end=end,
                opening_balance=balance,
                debit_total=debit_total,
                credit_total=credit_total,
                closing_balance=closing,
                transaction_count=count,
            )
        )
        balance = closing

    return BalanceSummaryReport(
        account_code=account.code,
        account_name=account.name,
        account_type=account.account_type,
        granularity=granularity,
        date_from=date_from,
        date_to=date_to,
        opening_balance=opening_balance,
        buckets=tuple(buckets),
        closing_balance=balance,
        sub_account_code=sub_account_code,
    )


def build_daily_balances(
    account: Account,
    lines: Iterable[PostedLine],
    opening_balance: Decimal,
    date_from: date,
    date_to: date,
    sub_account_code: str | None = None,
) -> BalanceSummaryReport:
    """One bucket per calendar day in the window, empty days included."""
    return _build_balances(
        BalanceGranularity.DAILY, account, lines, opening_balance,
        date_from, date_to, sub_account_code,
    )


def build_monthly_balances(
    account: Account,
    lines: Iterable[PostedLine],
    opening_balance: Decimal,
    date_from: date,
    date_to: date,
    sub_account_code: str | None = None,
) -> BalanceSummaryReport:
    """One bucket per calendar month; the first and last may be partial."""
    return _build_balances(
        BalanceGranularity.MONTHLY, account, lines, opening_balance,
        date_from, date_to, sub_account_code,
    )
