"""
Module: ledger_kernel.services.report_service
Responsibility: Read side -- fetch CONFIRMED lines from the store and hand
    them to the pure aggregation engine.
Architecture position: Kernel > Services.  Imports reporting/ and ports only.

Invariants enforced:
    - Only CONFIRMED entries contribute (the store filters; the engine
      trusts its input).
    - The general-ledger opening balance is the natural balance of every
      posted line strictly before date_from.
    - Page size is clamped to the configured maximum.

Failure modes (Result.failure):
    - ValidationError("invalid_date_range") when date_from > date_to.
    - NotFoundError("Account", code) for an unknown account code.
"""

from __future__ import annotations

from datetime import date

from ledger_kernel.config import LedgerConfig
from ledger_kernel.domain.accounts import Account
from ledger_kernel.domain.result import Result
from ledger_kernel.exceptions import NotFoundError, ValidationError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.ports import AccountStore, JournalEntryStore
from ledger_kernel.reporting import ledgers, statements
from ledger_kernel.reporting.models import (
    BalanceSheetReport,
    BalanceSummaryReport,
    FinancialAnalysisReport,
    GeneralLedgerReport,
    ProfitAndLossReport,
    TrialBalanceReport,
)

logger = get_logger("services.report")


def _check_range(date_from: date, date_to: date) -> ValidationError | None:
    if date_from > date_to:
        return ValidationError(
            "invalid_date_range",
            f"date_from {date_from} is after date_to {date_to}",
            date_from=date_from,
            date_to=date_to,
        )
    return None


class ReportService:
    """
    Financial reports over posted entries.

    Usage:
        reports = ReportService(entries, accounts, config)
        reports.trial_balance(date(2024, 3, 31)).value.is_balanced
    """

    def __init__(
        self,
        entries: JournalEntryStore,
        accounts: AccountStore,
        config: LedgerConfig | None = None,
    ):
        self._entries = entries
        self._accounts = accounts
        self._config = config or LedgerConfig.with_defaults()

    def _chart(self) -> dict[str, Account]:
        return {account.code: account for account in self._accounts.find_all()}

    def _account(self, account_code: str) -> Result[Account]:
        account = self._accounts.find_by_code(account_code)
        if account is None:
            return Result.failure(NotFoundError("Account", account_code))
        return Result.success(account)

    def _opening_balance(
        self,
        account: Account,
        date_from: date,
        sub_account_code: str | None = None,
    ):
        raw = self._entries.sum_before_date(account.id, date_from, sub_account_code)
        return ledgers.normalize_balance(raw, account.normal_balance)

    # ------------------------------------------------------------------
    # Ledgers
    # ------------------------------------------------------------------

    def general_ledger(
        self,
        account_code: str,
        date_from: date,
        date_to: date,
        page: int = 1,
        size: int | None = None,
    ) -> Result[GeneralLedgerReport]:
        return self._ledger(account_code, date_from, date_to, page, size, None)

    def subsidiary_ledger(
        self,
        account_code: str,
        sub_account_code: str,
        date_from: date,
        date_to: date,
        page: int = 1,
        size: int | None = None,
    ) -> Result[GeneralLedgerReport]:
        return self._ledger(account_code, date_from, date_to, page, size, sub_account_code)

    def _ledger(
        self,
        account_code: str,
        date_from: date,
        date_to: date,
        page: int,
        size: int | None,
        sub_account_code: str | None,
    ) -> Result[GeneralLedgerReport]:
        with LogContext.bind(account_code=account_code):
            invalid = _check_range(date_from, date_to)
            if invalid is not None:
                return Result.failure(invalid)
            if page < 1:
                return Result.failure(ValidationError("invalid_page", page=page))
            found = self._account(account_code)
            if found.is_failure:
                return found
            account = found.value

            lines = self._entries.find_posted_lines_for_account(
                account.id, date_from, date_to, sub_account_code,
            )
            report = ledgers.build_general_ledger(
                account,
                lines,
                self._opening_balance(account, date_from, sub_account_code),
                date_from,
                date_to,
                page=page,
                size=self._config.page_size(size),
                sub_account_code=sub_account_code,
            )
            logger.info(
                "general_ledger_built",
                extra={
                    "sub_account_code": sub_account_code,
                    "total_lines": report.total_lines,
                    "page": report.page,
                },
            )
            return Result.success(report)

    def daily_balance(
        self,
        account_code: str,
        date_from: date,
        date_to: date,
        sub_account_code: str | None = None,
    ) -> Result[BalanceSummaryReport]:
        return self._balances(
            ledgers.build_daily_balances, account_code, date_from, date_to, sub_account_code,
        )

    def monthly_balance(
        self,
        account_code: str,
        date_from: date,
        date_to: date,
        sub_account_code: str | None = None,
    ) -> Result[BalanceSummaryReport]:
        return self._balances(
            ledgers.build_monthly_balances, account_code, date_from, date_to, sub_account_code,
        )

    def _balances(self, builder, account_code, date_from, date_to, sub_account_code):
        with LogContext.bind(account_code=account_code):
            invalid = _check_range(date_from, date_to)
            if invalid is not None:
                return Result.failure(invalid)
            found = self._account(account_code)
            if found.is_failure:
                return found
            account = found.value

            lines = self._entries.find_posted_lines_for_account(
                account.id, date_from, date_to, sub_account_code,
            )
            report = builder(
                account,
                lines,
                self._opening_balance(account, date_from, sub_account_code),
                date_from,
                date_to,
                sub_account_code=sub_account_code,
            )
            logger.info(
                "balance_summary_built",
                extra={"granularity": report.granularity, "buckets": len(report.buckets)},
            )
            return Result.success(report)

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def trial_balance(self, as_of: date) -> Result[TrialBalanceReport]:
        report = statements.build_trial_balance(
            self._entries.find_posted_lines(None, as_of), self._chart(), as_of,
        )
        if not report.is_balanced:
            # Posted entries are balanced one by one; a gap here means bad data
            logger.warning(
                "trial_balance_out_of_balance",
                extra={"as_of": as_of, "difference": report.difference},
            )
        else:
            logger.info("trial_balance_built", extra={"as_of": as_of, "accounts": len(report.lines)})
        return Result.success(report)

    def balance_sheet(
        self,
        as_of: date,
        comparative_as_of: date | None = None,
    ) -> Result[BalanceSheetReport]:
        if comparative_as_of is not None and comparative_as_of > as_of:
            return Result.failure(_check_range(comparative_as_of, as_of))
        report = self._balance_sheet(as_of, comparative_as_of)
        logger.info(
            "balance_sheet_built",
            extra={"as_of": as_of, "is_balanced": report.is_balanced},
        )
        return Result.success(report)

    def _balance_sheet(self, as_of: date, comparative_as_of: date | None) -> BalanceSheetReport:
        chart = self._chart()
        comparative = (
            self._entries.find_posted_lines(None, comparative_as_of)
            if comparative_as_of is not None else None
        )
        return statements.build_balance_sheet(
            self._entries.find_posted_lines(None, as_of),
            chart,
            as_of,
            comparative_lines=comparative,
            comparative_as_of=comparative_as_of,
            decimal_places=self._config.percentage_decimal_places,
        )

    def profit_and_loss(
        self,
        date_from: date,
        date_to: date,
        comparative_date_from: date | None = None,
        comparative_date_to: date | None = None,
    ) -> Result[ProfitAndLossReport]:
        invalid = self._check_periods(date_from, date_to, comparative_date_from, comparative_date_to)
        if invalid is not None:
            return Result.failure(invalid)
        report = self._profit_and_loss(
            date_from, date_to, comparative_date_from, comparative_date_to,
        )
        logger.info(
            "profit_and_loss_built",
            extra={"date_from": date_from, "date_to": date_to, "net_income": report.net_income},
        )
        return Result.success(report)

    @staticmethod
    def _check_periods(
        date_from: date,
        date_to: date,
        comparative_date_from: date | None,
        comparative_date_to: date | None,
    ) -> ValidationError | None:
        invalid = _check_range(date_from, date_to)
        if invalid is None and (comparative_date_from is None) != (comparative_date_to is None):
            invalid = ValidationError(
                "incomplete_comparative_period",
                "Both comparative dates are required",
            )
        if invalid is None and comparative_date_from is not None:
            invalid = _check_range(comparative_date_from, comparative_date_to)
        return invalid

    def _profit_and_loss(
        self,
        date_from: date,
        date_to: date,
        comparative_date_from: date | None,
        comparative_date_to: date | None,
    ) -> ProfitAndLossReport:
        comparative = None
        if comparative_date_from is not None:
            comparative = self._entries.find_posted_lines(comparative_date_from, comparative_date_to)
        return statements.build_profit_and_loss(
            self._entries.find_posted_lines(date_from, date_to),
            self._chart(),
            date_from,
            date_to,
            comparative_lines=comparative,
            comparative_date_from=comparative_date_from,
            comparative_date_to=comparative_date_to,
            decimal_places=self._config.percentage_decimal_places,
        )

    def financial_analysis(
        self,
        date_from: date,
        date_to: date,
        comparative_date_from: date | None = None,
        comparative_date_to: date | None = None,
    ) -> Result[FinancialAnalysisReport]:
        """
        Ratios for ``[date_from, date_to]``: the balance sheet is taken at
        ``date_to`` and the profit and loss over the period.
        """
        invalid = self._check_periods(date_from, date_to, comparative_date_from, comparative_date_to)
        if invalid is not None:
            return Result.failure(invalid)

        comparative_bs = comparative_pl = None
        if comparative_date_from is not None:
            comparative_bs = self._balance_sheet(comparative_date_to, None)
            comparative_pl = self._profit_and_loss(
                comparative_date_from, comparative_date_to, None, None,
            )
        report = statements.build_financial_analysis(
            self._balance_sheet(date_to, None),
            self._profit_and_loss(date_from, date_to, None, None),
            comparative_balance_sheet=comparative_bs,
            comparative_profit_and_loss=comparative_pl,
            decimal_places=self._config.percentage_decimal_places,
        )
        logger.info(
            "financial_analysis_built",
            extra={"date_from": date_from, "date_to": date_to, "indicators": len(report.indicators)},
        )
        return Result.success(report)
