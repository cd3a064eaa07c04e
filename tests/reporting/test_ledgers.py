"""
Tests for the ledger side of the aggregation engine: running balances,
general/subsidiary ledgers and daily/monthly balance buckets.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.domain.accounts import Account, AccountType, NormalBalance
from ledger_kernel.domain.values import AccountId
from ledger_kernel.reporting.ledgers import (
    build_daily_balances,
    build_general_ledger,
    build_monthly_balances,
    build_subsidiary_ledger,
    compute_running_balances,
    normalize_balance,
    paginate,
    signed_amount,
)
from ledger_kernel.reporting.models import BalanceGranularity, PostedLine

CASH = Account("1000", "Cash", AccountType.ASSET, AccountId(1))
SALES = Account("4000", "Sales", AccountType.REVENUE, AccountId(2))


def _line(entry_id, day, number, code, debit="0", credit="0", sub=None, desc=None):
    return PostedLine(
        journal_entry_id=entry_id,
        journal_date=day,
        line_number=number,
        account_code=code,
        debit_amount=Decimal(debit),
        credit_amount=Decimal(credit),
        sub_account_code=sub,
        line_description=desc,
        entry_description=f"Entry {entry_id}",
    )


@pytest.fixture
def cash_lines() -> list[PostedLine]:
    # deliberately out of order
    return [
        _line(3, date(2024, 3, 20), 1, "1000", credit="300", desc="Rent"),
        _line(1, date(2024, 3, 1), 1, "1000", debit="1000", sub="BANK-A"),
        _line(2, date(2024, 3, 5), 1, "1000", debit="500", sub="BANK-B"),
        _line(4, date(2024, 4, 2), 1, "1000", debit="50", sub="BANK-A"),
        _line(2, date(2024, 3, 5), 2, "4000", credit="500"),
    ]


class TestSigns:
    def test_debit_normal(self):
        line = _line(1, date(2024, 1, 1), 1, "1000", credit="10")
        assert signed_amount(line, NormalBalance.DEBIT) == Decimal("-10")

    def test_credit_normal(self):
        line = _line(1, date(2024, 1, 1), 1, "4000", credit="10")
        assert signed_amount(line, NormalBalance.CREDIT) == Decimal("10")

    def test_normalize(self):
        assert normalize_balance(Decimal("-40"), NormalBalance.CREDIT) == Decimal("40")
        assert normalize_balance(Decimal("-40"), NormalBalance.DEBIT) == Decimal("-40")


class TestRunningBalances:
    def test_sorted_and_accumulated(self, cash_lines):
        cash = [line for line in cash_lines if line.account_code == "1000"]
        rows = compute_running_balances(cash, Decimal("100"), NormalBalance.DEBIT)
        assert [row.journal_entry_id for row in rows] == [1, 2, 3, 4]
        assert [row.running_balance for row in rows] == [
            Decimal("1100"), Decimal("1600"), Decimal("1300"), Decimal("1350"),
        ]

    def test_input_not_mutated(self, cash_lines):
        before = list(cash_lines)
        compute_running_balances(cash_lines, Decimal("0"), NormalBalance.DEBIT)
        assert cash_lines == before


class TestGeneralLedger:
    def test_window_totals_and_closing(self, cash_lines):
        report = build_general_ledger(
            CASH, cash_lines, Decimal("100"), date(2024, 3, 1), date(2024, 3, 31),
        )
        assert report.total_lines == 3
        assert report.total_debits == Decimal("1500")
        assert report.total_credits == Decimal("300")
        assert report.closing_balance == Decimal("1300")
        assert report.lines[-1].running_balance == report.closing_balance

    def test_description_falls_back_to_header(self, cash_lines):
        report = build_general_ledger(
            CASH, cash_lines, Decimal("0"), date(2024, 3, 1), date(2024, 3, 31),
        )
        assert report.lines[0].description == "Entry 1"
        assert report.lines[2].description == "Rent"

    def test_pagination_keeps_running_balances(self, cash_lines):
        page_two = build_general_ledger(
            CASH, cash_lines, Decimal("0"), date(2024, 3, 1), date(2024, 4, 30),
            page=2, size=2,
        )
        assert page_two.total_pages == 2
        assert [row.running_balance for row in page_two.lines] == [
            Decimal("1200"), Decimal("1250"),
        ]
        assert page_two.closing_balance == Decimal("1250")

    def test_page_past_end_is_empty(self, cash_lines):
        report = build_general_ledger(
            CASH, cash_lines, Decimal("0"), date(2024, 3, 1), date(2024, 3, 31), page=9, size=10,
        )
        assert report.lines == ()
        assert report.total_lines == 3

    def test_credit_normal_account(self, cash_lines):
        report = build_general_ledger(
            SALES, cash_lines, Decimal("0"), date(2024, 3, 1), date(2024, 3, 31),
        )
        assert report.closing_balance == Decimal("500")

    def test_inverted_window(self, cash_lines):
        with pytest.raises(ValueError):
            build_general_ledger(CASH, cash_lines, Decimal("0"), date(2024, 3, 2), date(2024, 3, 1))

    def test_subsidiary_ledger(self, cash_lines):
        report = build_subsidiary_ledger(
            CASH, "BANK-A", cash_lines, Decimal("0"), date(2024, 3, 1), date(2024, 4, 30),
        )
        assert report.sub_account_code == "BANK-A"
        assert [row.journal_entry_id for row in report.lines] == [1, 4]
        assert report.closing_balance == Decimal("1050")


class TestPaginate:
    def test_slices(self):
        assert paginate([1, 2, 3, 4, 5], 2, 2) == (3, 4)

    @pytest.mark.parametrize("page, size", [(0, 10), (1, 0)])
    def test_invalid(self, page, size):
        with pytest.raises(ValueError):
            paginate([1], page, size)


class TestBalanceBuckets:
    def test_daily_includes_empty_days(self, cash_lines):
        report = build_daily_balances(
            CASH, cash_lines, Decimal("0"), date(2024, 3, 4), date(2024, 3, 6),
        )
        assert report.granularity == BalanceGranularity.DAILY
        assert [bucket.period_start for bucket in report.buckets] == [
            date(2024, 3, 4), date(2024, 3, 5), date(2024, 3, 6),
        ]
        assert [bucket.transaction_count for bucket in report.buckets] == [0, 1, 0]
        assert report.buckets[1].debit_total == Decimal("500")
        assert report.buckets[2].opening_balance == Decimal("500")

    def test_monthly_chains_balances(self, cash_lines):
        report = build_monthly_balances(
            CASH, cash_lines, Decimal("10"), date(2024, 2, 15), date(2024, 4, 10),
        )
        assert [(b.period_start, b.period_end) for b in report.buckets] == [
            (date(2024, 2, 15), date(2024, 2, 29)),
            (date(2024, 3, 1), date(2024, 3, 31)),
            (date(2024, 4, 1), date(2024, 4, 10)),
        ]
        feb, mar, apr = report.buckets
        assert feb.closing_balance == Decimal("10")
        assert mar.opening_balance == Decimal("10")
        assert mar.closing_balance == Decimal("1210")
        assert apr.closing_balance == report.closing_balance == Decimal("1260")
        assert mar.transaction_count == 3
