"""
Command/query services of the ledger kernel.

Each service depends only on the ports; ``build_services`` wires the
SQLAlchemy reference stores to a caller-owned Session.
"""

from dataclasses import dataclass

from sqlalchemy.orm import Session

from ledger_kernel.config import LedgerConfig
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.services.account_service import AccountService
from ledger_kernel.services.account_structure_service import AccountStructureService
from ledger_kernel.services.audit import BestEffortAudit
from ledger_kernel.services.auto_journal_service import AutoJournalService
from ledger_kernel.services.journal_entry_service import JournalEntryService
from ledger_kernel.services.report_service import ReportService

__all__ = [
    "AccountService",
    "AccountStructureService",
    "AutoJournalService",
    "BestEffortAudit",
    "JournalEntryService",
    "LedgerServices",
    "ReportService",
    "build_services",
]


@dataclass(frozen=True)
class LedgerServices:
    accounts: AccountService
    journal: JournalEntryService
    structures: AccountStructureService
    auto_journal: AutoJournalService
    reports: ReportService


def build_services(
    session: Session,
    clock: Clock | None = None,
    config: LedgerConfig | None = None,
) -> LedgerServices:
    """All five services over the SQL stores, sharing one session."""
    from ledger_kernel.stores import (
        SqlAccountStore,
        SqlAccountStructureStore,
        SqlAuditRecorder,
        SqlAutoJournalPatternStore,
        SqlJournalEntryStore,
    )

    clock = clock or SystemClock()
    config = config or LedgerConfig.with_defaults()
    entries = SqlJournalEntryStore(session)
    accounts = SqlAccountStore(session)
    audit = SqlAuditRecorder(session, clock)
    return LedgerServices(
        accounts=AccountService(accounts, entries, audit),
        journal=JournalEntryService(entries, accounts, audit, clock, config),
        structures=AccountStructureService(
            SqlAccountStructureStore(session), accounts, audit, config,
        ),
        auto_journal=AutoJournalService(
            SqlAutoJournalPatternStore(session), entries, accounts, audit, clock, config,
        ),
        reports=ReportService(entries, accounts, config),
    )
