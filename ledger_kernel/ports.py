"""
Collaborator interfaces consumed by the ledger kernel services.

The services depend only on these protocols.  ``ledger_kernel.stores``
ships SQLAlchemy implementations; hosts may supply their own.

Contract shared by every store:
    - Expected business outcomes (stale version, missing row, illegal
      status) come back as ``Result.failure``.
    - Infrastructure failures raise ``StorageError`` and are never caught
      by the kernel.
    - Stores flush inside the caller's transaction and never commit.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Protocol, runtime_checkable

from ledger_kernel.domain.accounts import Account
from ledger_kernel.domain.auto_journal import AutoJournalPattern
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.hierarchy import AccountStructure
from ledger_kernel.domain.journal import JournalEntry, JournalEntryStatus
from ledger_kernel.domain.journal_search import JournalEntryPage, JournalEntrySearch
from ledger_kernel.domain.result import Result
from ledger_kernel.domain.values import AccountId, JournalEntryId
from ledger_kernel.reporting.models import PostedLine

__all__ = [
    "JournalEntryStore",
    "AccountStore",
    "AccountStructureStore",
    "AutoJournalPatternStore",
    "AuditRecorder",
    "Clock",
]


@runtime_checkable
class JournalEntryStore(Protocol):
    """Persistence of journal entries and posted-line range reads."""

    def save(self, entry: JournalEntry) -> Result[JournalEntry]:
        """
        Insert (``entry.id is None``) at version 0, or compare-and-swap update.

        An update succeeds only if the stored version equals ``entry.version``
        and the stored status may legally precede ``entry.status``; the
        returned entry carries ``version + 1``.  Otherwise the stored row is
        untouched and the failure is ConcurrencyError, InvalidStateError or
        NotFoundError.
        """
        ...

    def delete(self, entry_id: JournalEntryId, expected_version: int) -> Result[None]:
        """Delete a DRAFT entry at ``expected_version``."""
        ...

    def find_by_id(self, entry_id: JournalEntryId) -> JournalEntry | None: ...

    def find_by_status_and_date_range(
        self,
        status: JournalEntryStatus | None,
        date_from: date | None,
        date_to: date | None,
    ) -> list[JournalEntry]: ...

    def search(self, criteria: JournalEntrySearch, page: int, size: int) -> JournalEntryPage:
        """
        Entries matching ``criteria`` ordered by (journal_date, id), sliced
        to the 1-based ``page``; ``total_entries`` counts every match.
        """
        ...

    def is_account_in_use(self, account_id: AccountId) -> bool:
        """True when any line of any entry, in any status, posts to the account."""
        ...

    def find_posted_lines_for_account(
        self,
        account_id: AccountId,
        date_from: date,
        date_to: date,
        sub_account_code: str | None = None,
    ) -> list[PostedLine]:
        """CONFIRMED lines of one account in ``[date_from, date_to]``."""
        ...

    def find_posted_lines(
        self,
        date_from: date | None,
        date_to: date,
    ) -> list[PostedLine]:
        """CONFIRMED lines of every account; ``date_from=None`` means from the start."""
        ...

    def sum_before_date(
        self,
        account_id: AccountId,
        before: date,
        sub_account_code: str | None = None,
    ) -> Decimal:
        """Raw ``Σdebit − Σcredit`` of CONFIRMED lines strictly before ``before``."""
        ...


@runtime_checkable
class AccountStore(Protocol):
    """Chart-of-accounts metadata."""

    def find_by_code(self, code: str) -> Account | None: ...

    def find_by_id(self, account_id: AccountId) -> Account | None: ...

    def find_all(self) -> list[Account]: ...

    def add(self, account: Account) -> Account:
        """Store a new account and return it with its id."""
        ...

    def update(self, account: Account) -> Account:
        """Overwrite name and type of the stored account with ``account.id``."""
        ...

    def delete(self, account_id: AccountId) -> None: ...


@runtime_checkable
class AccountStructureStore(Protocol):
    def find_by_code(self, code: str) -> AccountStructure | None: ...

    def find_all(self) -> list[AccountStructure]: ...

    def find_children(self, code: str) -> list[AccountStructure]: ...

    def save(self, structure: AccountStructure) -> AccountStructure: ...

    def save_all(self, structures: tuple[AccountStructure, ...]) -> None:
        """Persist a reparented node and its descendants together."""
        ...

    def delete(self, code: str) -> None: ...


@runtime_checkable
class AutoJournalPatternStore(Protocol):
    def find_by_id(self, pattern_id: int) -> AutoJournalPattern | None: ...

    def find_by_code(self, pattern_code: str) -> AutoJournalPattern | None: ...

    def find_all(self) -> list[AutoJournalPattern]: ...

    def save(self, pattern: AutoJournalPattern) -> AutoJournalPattern: ...

    def delete(self, pattern_id: int) -> None: ...


@runtime_checkable
class AuditRecorder(Protocol):
    """
    Fire-and-forget audit notification.

    Failures here must never block the business operation; callers go
    through ``ledger_kernel.services.audit.BestEffortAudit``.
    """

    def record(
        self,
        action: str,
        entity_type: str,
        entity_id: str,
        actor_id: str | None,
        payload: dict[str, Any],
    ) -> None: ...
