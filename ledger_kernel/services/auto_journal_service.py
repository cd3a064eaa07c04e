"""
Module: ledger_kernel.services.auto_journal_service
Responsibility: Manage auto-journal patterns and generate DRAFT journal
    entries from them.
Architecture position: Kernel > Services.

Invariants enforced:
    - pattern_code is unique across patterns.
    - Every item's account code must exist when the pattern is saved.
    - A generated entry is saved through the JournalEntryStore exactly like
      a manual one (version 0, DRAFT).

Audit relevance:
    Pattern create/update/delete and every generation attempt, successful
    or not, are sent to the AuditRecorder.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Any, Iterable, Mapping

from ledger_kernel.config import LedgerConfig
from ledger_kernel.domain import auto_journal
from ledger_kernel.domain.auto_journal import AutoJournalPattern, AutoJournalPatternItem
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.journal import JournalEntry
from ledger_kernel.domain.result import Result, attempt
from ledger_kernel.exceptions import BusinessRuleError, NotFoundError, ValidationError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.ports import (
    AccountStore,
    AuditRecorder,
    AutoJournalPatternStore,
    JournalEntryStore,
)
from ledger_kernel.services.audit import BestEffortAudit

logger = get_logger("services.auto_journal")

_ENTITY = "AutoJournalPattern"

_UNSET: Any = object()


def _pattern_payload(pattern: AutoJournalPattern) -> dict:
    return {
        "pattern_code": pattern.pattern_code,
        "pattern_name": pattern.pattern_name,
        "source_table_name": pattern.source_table_name,
        "is_active": pattern.is_active,
        "items": [
            {
                "line_number": item.line_number,
                "debit_credit": item.debit_credit.value,
                "account_code": item.account_code,
                "amount_formula": item.amount_formula,
            }
            for item in pattern.items
        ],
    }


class AutoJournalService:
    """
    Pattern maintenance and journal generation.

    Usage:
        service.create_pattern("SALES", "Cash sales", "sales", items=[
            AutoJournalPatternItem(1, "D", "1000", "amount"),
            AutoJournalPatternItem(2, "C", "4000", "amount"),
        ])
        service.generate(pattern_id, {"amount": 500}, date(2024, 4, 1), "batch")
    """

    def __init__(
        self,
        patterns: AutoJournalPatternStore,
        entries: JournalEntryStore,
        accounts: AccountStore,
        audit: AuditRecorder | None = None,
        clock: Clock | None = None,
        config: LedgerConfig | None = None,
    ):
        self._patterns = patterns
        self._entries = entries
        self._accounts = accounts
        self._audit = BestEffortAudit(audit)
        self._clock = clock or SystemClock()
        self._config = config or LedgerConfig.with_defaults()

    def _fail(self, event: str, error: BusinessRuleError) -> Result:
        logger.warning(event, extra={"error_code": error.code, "error": error.details})
        return Result.failure(error)

    def _check_item_accounts(self, pattern: AutoJournalPattern) -> ValidationError | None:
        for item in pattern.items:
            if self._accounts.find_by_code(item.account_code) is None:
                return ValidationError(
                    "unknown_account",
                    f"Account code {item.account_code!r} not found",
                    account_code=item.account_code,
                    line_number=item.line_number,
                )
        return None

    def _find(self, pattern_id: int) -> Result[AutoJournalPattern]:
        pattern = self._patterns.find_by_id(pattern_id)
        if pattern is None:
            return Result.failure(NotFoundError(_ENTITY, pattern_id))
        return Result.success(pattern)

    # ------------------------------------------------------------------
    # Pattern maintenance
    # ------------------------------------------------------------------

    def create_pattern(
        self,
        pattern_code: str,
        pattern_name: str,
        source_table_name: str,
        description: str | None = None,
        items: Iterable[AutoJournalPatternItem] = (),
        actor_id: str | None = None,
    ) -> Result[AutoJournalPattern]:
        with LogContext.bind(pattern_code=pattern_code, actor_id=actor_id):
            built = AutoJournalPattern.create(
                pattern_code, pattern_name, source_table_name, description, items,
            )
            if built.is_failure:
                return self._fail("auto_journal_pattern_create_failed", built.error)
            pattern = built.value

            if self._patterns.find_by_code(pattern.pattern_code) is not None:
                return self._fail(
                    "auto_journal_pattern_create_failed",
                    ValidationError(
                        "duplicate_pattern_code",
                        f"Pattern {pattern.pattern_code} already exists",
                        pattern_code=pattern.pattern_code,
                    ),
                )
            unknown = self._check_item_accounts(pattern)
            if unknown is not None:
                return self._fail("auto_journal_pattern_create_failed", unknown)

            saved = self._patterns.save(pattern)
            logger.info(
                "auto_journal_pattern_created",
                extra={"pattern_id": saved.id, "item_count": len(saved.items)},
            )
            self._audit.notify(
                "auto_journal_pattern_created", _ENTITY, saved.id, actor_id,
                _pattern_payload(saved),
            )
            return Result.success(saved)

    def update_pattern(
        self,
        pattern_id: int,
        *,
        pattern_name: str = _UNSET,
        source_table_name: str = _UNSET,
        description: str | None = _UNSET,
        is_active: bool = _UNSET,
        items: Iterable[AutoJournalPatternItem] = _UNSET,
        actor_id: str | None = None,
    ) -> Result[AutoJournalPattern]:
        """Change the given fields; ``items`` replaces the whole item list."""
        changes = {
            name: value
            for name, value in (
                ("pattern_name", pattern_name),
                ("source_table_name", source_table_name),
                ("description", description),
                ("is_active", is_active),
            )
            if value is not _UNSET
        }
        if items is not _UNSET:
            changes["items"] = tuple(items)

        with LogContext.bind(actor_id=actor_id):
            result = self._find(pattern_id).then(
                lambda pattern: attempt(lambda: replace(pattern, **changes))
            )
            if result.is_failure:
                return self._fail("auto_journal_pattern_update_failed", result.error)
            pattern = result.value

            unknown = self._check_item_accounts(pattern)
            if unknown is not None:
                return self._fail("auto_journal_pattern_update_failed", unknown)

            saved = self._patterns.save(pattern)
            logger.info(
                "auto_journal_pattern_updated",
                extra={"pattern_id": saved.id, "fields": sorted(changes)},
            )
            self._audit.notify(
                "auto_journal_pattern_updated", _ENTITY, saved.id, actor_id,
                _pattern_payload(saved),
            )
            return Result.success(saved)

    def delete_pattern(self, pattern_id: int, actor_id: str | None = None) -> Result[None]:
        with LogContext.bind(actor_id=actor_id):
            found = self._find(pattern_id)
            if found.is_failure:
                return self._fail("auto_journal_pattern_delete_failed", found.error)

            self._patterns.delete(pattern_id)
            logger.info(
                "auto_journal_pattern_deleted",
                extra={"pattern_id": pattern_id, "pattern_code": found.value.pattern_code},
            )
            self._audit.notify(
                "auto_journal_pattern_deleted", _ENTITY, pattern_id, actor_id,
                {"pattern_code": found.value.pattern_code},
            )
            return Result.success(None)

    def get_pattern(self, pattern_id: int) -> Result[AutoJournalPattern]:
        return self._find(pattern_id)

    def list_patterns(self, active_only: bool = False) -> Result[list[AutoJournalPattern]]:
        patterns = self._patterns.find_all()
        if active_only:
            patterns = [pattern for pattern in patterns if pattern.is_active]
        return Result.success(patterns)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate(
        self,
        pattern_id: int,
        parameters: Mapping[str, object],
        journal_date: date,
        created_by: str,
        description: str | None = None,
    ) -> Result[JournalEntry]:
        """
        Evaluate pattern ``pattern_id`` with ``parameters`` and save the
        resulting DRAFT entry.
        """
        with LogContext.bind(actor_id=created_by):
            found = self._find(pattern_id)
            if found.is_failure:
                return self._fail("auto_journal_generation_failed", found.error)
            pattern = found.value

            with LogContext.bind(pattern_code=pattern.pattern_code):
                result = auto_journal.generate(
                    pattern,
                    parameters,
                    journal_date,
                    created_by,
                    self._clock.now(),
                    self._accounts.find_by_code,
                    description=description,
                    decimal_places=self._config.formula_decimal_places,
                ).then(self._entries.save)

                audit_payload = {
                    "pattern_code": pattern.pattern_code,
                    "source_table_name": pattern.source_table_name,
                    "journal_date": journal_date,
                    "parameters": {key: str(value) for key, value in parameters.items()},
                }
                if result.is_failure:
                    self._audit.notify(
                        "auto_journal_generation_failed", _ENTITY, pattern_id, created_by,
                        {**audit_payload, "error_code": result.error.code, "error": str(result.error)},
                    )
                    return self._fail("auto_journal_generation_failed", result.error)

                entry = result.value
                logger.info(
                    "auto_journal_generated",
                    extra={
                        "entry_id": int(entry.id),
                        "total_debits": entry.total_debits.amount,
                    },
                )
                self._audit.notify(
                    "auto_journal_generated", _ENTITY, pattern_id, created_by,
                    {**audit_payload, "journal_entry_id": int(entry.id)},
                )
                return result
