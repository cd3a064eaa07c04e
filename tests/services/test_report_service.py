"""
Tests for ReportService reading posted entries from the database.

Only CONFIRMED entries count; DRAFT, PENDING_APPROVAL and APPROVED entries
are invisible to every report.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.exceptions import NotFoundError
from tests.conftest import TEST_ACTOR_ID


@pytest.fixture
def ledger(post_entry, journal_service, make_lines):
    """
    Posted history:

        2024-02-20  capital        Dr 1000 5000   / Cr 3000 5000
        2024-03-01  cash sale      Dr 1000 1200 (BANK-A) / Cr 4000 1200
        2024-03-10  rent           Dr 5000  400   / Cr 1000  400 (BANK-B)
        2024-04-05  cash sale      Dr 1000  300 (BANK-A) / Cr 4000  300

    plus an APPROVED but unconfirmed entry on 2024-03-15 that must never
    show up.
    """
    post_entry(date(2024, 2, 20), "Capital", ("1000", 5000, None), ("3000", None, 5000))
    post_entry(date(2024, 3, 1), "Cash sale", ("1000", 1200, None, "BANK-A"), ("4000", None, 1200))
    post_entry(date(2024, 3, 10), "Rent", ("5000", 400, None), ("1000", None, 400, "BANK-B"))
    post_entry(date(2024, 4, 5), "Cash sale", ("1000", 300, None, "BANK-A"), ("4000", None, 300))

    pending = journal_service.create_entry(
        date(2024, 3, 15), "Salaries (awaiting confirmation)", TEST_ACTOR_ID,
        make_lines(("5100", 999, None), ("1000", None, 999)),
    ).unwrap()
    pending = journal_service.submit_for_approval(pending.id, 0, TEST_ACTOR_ID).unwrap()
    journal_service.approve(pending.id, pending.version, "approver").unwrap()


class TestGeneralLedger:
    def test_opening_balance_from_prior_entries(self, report_service, ledger):
        report = report_service.general_ledger(
            "1000", date(2024, 3, 1), date(2024, 3, 31),
        ).unwrap()
        assert report.opening_balance == Decimal("5000")
        assert [line.running_balance for line in report.lines] == [
            Decimal("6200"), Decimal("5800"),
        ]
        assert report.closing_balance == Decimal("5800")
        assert report.lines[0].description == "Cash sale"

    def test_unconfirmed_entries_excluded(self, report_service, ledger):
        report = report_service.general_ledger(
            "5100", date(2024, 1, 1), date(2024, 12, 31),
        ).unwrap()
        assert report.lines == ()
        assert report.closing_balance == Decimal("0")

    def test_credit_normal_account(self, report_service, ledger):
        report = report_service.general_ledger(
            "4000", date(2024, 1, 1), date(2024, 12, 31),
        ).unwrap()
        assert report.closing_balance == Decimal("1500")

    def test_pagination(self, report_service, ledger):
        report = report_service.general_ledger(
            "1000", date(2024, 1, 1), date(2024, 12, 31), page=2, size=3,
        ).unwrap()
        assert report.total_lines == 4
        assert report.total_pages == 2
        assert [line.running_balance for line in report.lines] == [Decimal("6100")]

    def test_unknown_account(self, report_service, ledger):
        result = report_service.general_ledger("9999", date(2024, 1, 1), date(2024, 1, 31))
        assert isinstance(result.error, NotFoundError)

    def test_invalid_arguments(self, report_service, ledger):
        inverted = report_service.general_ledger("1000", date(2024, 2, 1), date(2024, 1, 1))
        assert inverted.error.reason == "invalid_date_range"
        bad_page = report_service.general_ledger("1000", date(2024, 1, 1), date(2024, 2, 1), page=0)
        assert bad_page.error.reason == "invalid_page"

    def test_subsidiary_ledger(self, report_service, ledger):
        report = report_service.subsidiary_ledger(
            "1000", "BANK-A", date(2024, 4, 1), date(2024, 4, 30),
        ).unwrap()
        # only BANK-A history contributes to the opening balance
        assert report.opening_balance == Decimal("1200")
        assert report.closing_balance == Decimal("1500")


class TestBalanceSummaries:
    def test_monthly(self, report_service, ledger):
        report = report_service.monthly_balance("1000", date(2024, 2, 1), date(2024, 4, 30)).unwrap()
        assert [bucket.closing_balance for bucket in report.buckets] == [
            Decimal("5000"), Decimal("5800"), Decimal("6100"),
        ]

    def test_daily(self, report_service, ledger):
        report = report_service.daily_balance("1000", date(2024, 3, 9), date(2024, 3, 11)).unwrap()
        assert report.opening_balance == Decimal("6200")
        assert [bucket.credit_total for bucket in report.buckets] == [
            Decimal("0"), Decimal("400"), Decimal("0"),
        ]


class TestStatements:
    def test_trial_balance(self, report_service, ledger):
        report = report_service.trial_balance(date(2024, 3, 31)).unwrap()
        assert report.is_balanced
        assert report.total_debits == Decimal("6600")
        assert "5100" not in {line.account_code for line in report.lines}

    def test_balance_sheet_with_comparative(self, report_service, ledger):
        report = report_service.balance_sheet(
            date(2024, 3, 31), comparative_as_of=date(2024, 2, 29),
        ).unwrap()
        assert report.is_balanced
        assert report.total_assets == Decimal("5800")
        assert report.net_income == Decimal("800")
        cash = report.assets.lines[0]
        assert cash.previous_amount == Decimal("5000")
        assert cash.change_percent == Decimal("16.00")

    def test_balance_sheet_comparative_after_as_of(self, report_service, ledger):
        result = report_service.balance_sheet(date(2024, 3, 31), comparative_as_of=date(2024, 4, 1))
        assert result.error.reason == "invalid_date_range"

    def test_profit_and_loss(self, report_service, ledger):
        report = report_service.profit_and_loss(
            date(2024, 4, 1), date(2024, 4, 30),
            comparative_date_from=date(2024, 3, 1),
            comparative_date_to=date(2024, 3, 31),
        ).unwrap()
        assert report.net_income == Decimal("300")
        assert report.previous_net_income == Decimal("800")
        assert report.net_income_change_percent == Decimal("-62.50")

    def test_incomplete_comparative_period(self, report_service, ledger):
        result = report_service.profit_and_loss(
            date(2024, 4, 1), date(2024, 4, 30), comparative_date_from=date(2024, 3, 1),
        )
        assert result.error.reason == "incomplete_comparative_period"

    def test_financial_analysis(self, report_service, ledger):
        report = report_service.financial_analysis(date(2024, 3, 1), date(2024, 3, 31)).unwrap()
        # 800 / 5800
        assert report.indicator("roa").value == Decimal("13.79")
        # no liabilities posted
        assert report.indicator("current_ratio").value is None


class TestLogging:
    def test_report_events(self, report_service, ledger, captured_logs):
        report_service.general_ledger("1000", date(2024, 3, 1), date(2024, 3, 31))
        built = [r for r in captured_logs() if r["message"] == "general_ledger_built"]
        assert built[0]["account_code"] == "1000"
        assert built[0]["total_lines"] == 2
