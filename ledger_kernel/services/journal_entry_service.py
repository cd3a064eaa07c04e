"""
Module: ledger_kernel.services.journal_entry_service
Responsibility: Command/query surface for journal entries -- creation,
    DRAFT edits, deletion and the approval lifecycle.
Architecture position: Kernel > Services.  Depends on ports and domain only;
    the SQL stores are injected by the host.

Invariants enforced:
    - Every command names the version it was based on.  A mismatch with the
      stored version fails with ConcurrencyError before anything is written,
      and the store's compare-and-swap catches a race after the read.
    - Lifecycle rules live in the JournalEntry aggregate; this service only
      loads, delegates, saves and notifies.
    - Every line must reference an account the AccountStore knows.

Failure modes (all returned as Result.failure):
    - NotFoundError, ConcurrencyError, InvalidStateError, ValidationError.
    - StorageError is raised by the store and propagates unchanged.

Audit relevance:
    created/updated/deleted/submitted/approved/rejected/confirmed are sent to
    the AuditRecorder on a best-effort basis.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Callable, Iterable

from ledger_kernel.config import LedgerConfig
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.journal import (
    JournalAction,
    JournalEntry,
    JournalEntryLine,
    JournalEntryStatus,
)
from ledger_kernel.domain.journal_search import JournalEntryPage, JournalEntrySearch
from ledger_kernel.domain.result import Result, attempt
from ledger_kernel.domain.values import AccountId, JournalEntryId
from ledger_kernel.exceptions import (
    BusinessRuleError,
    ConcurrencyError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.ports import AccountStore, AuditRecorder, JournalEntryStore
from ledger_kernel.services.audit import BestEffortAudit

logger = get_logger("services.journal_entry")

_ENTITY = "JournalEntry"


def _entry_payload(entry: JournalEntry) -> dict:
    return {
        "status": entry.status.value,
        "version": entry.version,
        "journal_date": entry.journal_date,
        "description": entry.description,
        "total_debits": entry.total_debits.amount,
        "total_credits": entry.total_credits.amount,
        "line_count": len(entry.lines),
    }


class JournalEntryService:
    """
    Journal entry commands and queries.

    Usage:
        service = JournalEntryService(entries, accounts, audit, clock)
        created = service.create_entry(date(2024, 4, 1), "Cash sale", "u1", lines)
        service.submit_for_approval(created.value.id, created.value.version, "u1")
    """

    def __init__(
        self,
        entries: JournalEntryStore,
        accounts: AccountStore,
        audit: AuditRecorder | None = None,
        clock: Clock | None = None,
        config: LedgerConfig | None = None,
    ):
        self._entries = entries
        self._accounts = accounts
        self._audit = BestEffortAudit(audit)
        self._clock = clock or SystemClock()
        self._config = config or LedgerConfig.with_defaults()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_accounts(self, lines: Iterable[JournalEntryLine]) -> ValidationError | None:
        for line in lines:
            if self._accounts.find_by_id(line.account_id) is None:
                return ValidationError(
                    "unknown_account",
                    f"Account {line.account_id} on line {line.line_number} does not exist",
                    account_id=int(line.account_id),
                    line_number=line.line_number,
                )
        return None

    def _find(self, entry_id: JournalEntryId | int) -> Result[JournalEntry]:
        def lookup(key: JournalEntryId) -> Result[JournalEntry]:
            entry = self._entries.find_by_id(key)
            if entry is None:
                return Result.failure(NotFoundError(_ENTITY, int(key)))
            return Result.success(entry)

        return attempt(lambda: JournalEntryId(int(entry_id))).then(lookup)

    def _load(self, entry_id: JournalEntryId | int, expected_version: int) -> Result[JournalEntry]:
        return self._find(entry_id).then(
            lambda entry: self._check_version(entry, expected_version)
        )

    @staticmethod
    def _check_version(entry: JournalEntry, expected_version: int) -> Result[JournalEntry]:
        if entry.version != expected_version:
            return Result.failure(
                ConcurrencyError(int(entry.id), expected_version, entry.version)
            )
        return Result.success(entry)

    def _log_failure(self, event: str, error: BusinessRuleError) -> None:
        name = "journal_entry_conflict" if isinstance(error, ConcurrencyError) else event
        logger.warning(name, extra={"error_code": error.code, "error": error.details})

    def _mutate(
        self,
        event: str,
        entry_id: JournalEntryId | int,
        expected_version: int,
        actor_id: str,
        operation: Callable[[JournalEntry], Result[JournalEntry]],
    ) -> Result[JournalEntry]:
        """Load at ``expected_version``, apply ``operation``, save, notify."""
        with LogContext.bind(entry_id=entry_id, actor_id=actor_id):
            result = (
                self._load(entry_id, expected_version)
                .then(operation)
                .then(self._entries.save)
            )
            if result.is_failure:
                self._log_failure(f"journal_entry_{event}_failed", result.error)
                return result

            saved = result.value
            logger.info(
                f"journal_entry_{event}",
                extra={"status": saved.status.value, "version": saved.version},
            )
            self._audit.notify(
                f"journal_entry_{event}", _ENTITY, saved.id, actor_id, _entry_payload(saved),
            )
            return result

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_entry(
        self,
        journal_date: date,
        description: str,
        created_by: str,
        lines: Iterable[JournalEntryLine] = (),
    ) -> Result[JournalEntry]:
        lines = tuple(lines)
        with LogContext.bind(actor_id=created_by):
            unknown = self._check_accounts(lines)
            if unknown is not None:
                self._log_failure("journal_entry_create_failed", unknown)
                return Result.failure(unknown)

            result = JournalEntry.create(
                journal_date, description, created_by, self._clock.now(), lines,
            ).then(self._entries.save)
            if result.is_failure:
                self._log_failure("journal_entry_create_failed", result.error)
                return result

            entry = result.value
            logger.info(
                "journal_entry_created",
                extra={"entry_id": int(entry.id), "line_count": len(entry.lines)},
            )
            self._audit.notify(
                "journal_entry_created", _ENTITY, entry.id, created_by, _entry_payload(entry),
            )
            return result

    def update_entry(
        self,
        entry_id: JournalEntryId | int,
        expected_version: int,
        actor_id: str,
        *,
        description: str | None = None,
        journal_date: date | None = None,
        lines: Iterable[JournalEntryLine] | None = None,
    ) -> Result[JournalEntry]:
        """
        Edit a DRAFT entry.  Omitted fields keep their stored value; ``lines``
        replaces the whole line set when given.
        """
        new_lines = tuple(lines) if lines is not None else None
        now = self._clock.now()

        def edit(entry: JournalEntry) -> Result[JournalEntry]:
            if not entry.is_editable:
                return Result.failure(
                    InvalidStateError(entry.id, entry.status.value, JournalAction.EDIT.value)
                )
            result = Result.success(entry)
            if description is not None:
                result = result.then(lambda e: e.with_description(description, now))
            if journal_date is not None:
                result = result.then(lambda e: e.with_journal_date(journal_date, now))
            if new_lines is not None:
                unknown = self._check_accounts(new_lines)
                if unknown is not None:
                    return Result.failure(unknown)
                result = result.then(lambda e: e.with_lines(new_lines, now))
            return result

        return self._mutate("updated", entry_id, expected_version, actor_id, edit)

    def delete_entry(
        self,
        entry_id: JournalEntryId | int,
        expected_version: int,
        actor_id: str,
    ) -> Result[None]:
        with LogContext.bind(entry_id=entry_id, actor_id=actor_id):
            result = (
                self._load(entry_id, expected_version)
                .then(lambda entry: entry.check_deletable())
                .then(lambda entry: self._entries.delete(entry.id, expected_version))
            )
            if result.is_failure:
                self._log_failure("journal_entry_delete_failed", result.error)
                return result

            logger.info("journal_entry_deleted")
            self._audit.notify(
                "journal_entry_deleted", _ENTITY, int(entry_id), actor_id,
                {"version": expected_version},
            )
            return result

    def submit_for_approval(
        self,
        entry_id: JournalEntryId | int,
        expected_version: int,
        actor_id: str,
    ) -> Result[JournalEntry]:
        now = self._clock.now()
        return self._mutate(
            "submitted", entry_id, expected_version, actor_id,
            lambda entry: entry.submit_for_approval(now),
        )

    def approve(
        self,
        entry_id: JournalEntryId | int,
        expected_version: int,
        approver_id: str,
    ) -> Result[JournalEntry]:
        now = self._clock.now()
        return self._mutate(
            "approved", entry_id, expected_version, approver_id,
            lambda entry: entry.approve(approver_id, now),
        )

    def reject(
        self,
        entry_id: JournalEntryId | int,
        expected_version: int,
        rejector_id: str,
        reason: str,
    ) -> Result[JournalEntry]:
        now = self._clock.now()
        return self._mutate(
            "rejected", entry_id, expected_version, rejector_id,
            lambda entry: entry.reject(rejector_id, reason, now),
        )

    def confirm(
        self,
        entry_id: JournalEntryId | int,
        expected_version: int,
        confirmer_id: str,
    ) -> Result[JournalEntry]:
        now = self._clock.now()
        return self._mutate(
            "confirmed", entry_id, expected_version, confirmer_id,
            lambda entry: entry.confirm(confirmer_id, now),
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_entry(self, entry_id: JournalEntryId | int) -> Result[JournalEntry]:
        return self._find(entry_id)

    def search_entries(
        self,
        *,
        statuses: Iterable[JournalEntryStatus | str] = (),
        date_from: date | None = None,
        date_to: date | None = None,
        account_id: AccountId | int | None = None,
        amount_from: Decimal | int | str | None = None,
        amount_to: Decimal | int | str | None = None,
        description: str | None = None,
        page: int = 1,
        size: int | None = None,
    ) -> Result[JournalEntryPage]:
        """
        One page of entries matching every given filter, ordered by
        (journal_date, id).  ``size`` is clamped to the configured bounds.
        """
        if page < 1:
            error = ValidationError("invalid_page", f"Page must be >= 1, got {page}", page=page)
            self._log_failure("journal_entry_search_failed", error)
            return Result.failure(error)

        criteria = attempt(lambda: JournalEntrySearch(
            statuses=tuple(statuses),
            date_from=date_from,
            date_to=date_to,
            account_id=account_id,
            amount_from=amount_from,
            amount_to=amount_to,
            description=description,
        ))
        if criteria.is_failure:
            self._log_failure("journal_entry_search_failed", criteria.error)
            return criteria

        result = self._entries.search(criteria.value, page, self._config.page_size(size))
        logger.debug(
            "journal_entry_search",
            extra={"page": result.page, "size": result.size, "total_entries": result.total_entries},
        )
        return Result.success(result)
