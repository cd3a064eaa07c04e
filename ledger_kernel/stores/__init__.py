"""SQLAlchemy adapters for the ledger kernel ports."""

from ledger_kernel.stores.account_store import SqlAccountStore, SqlAccountStructureStore
from ledger_kernel.stores.audit_recorder import SqlAuditRecorder
from ledger_kernel.stores.base import SqlStore
from ledger_kernel.stores.journal_store import SqlJournalEntryStore
from ledger_kernel.stores.pattern_store import SqlAutoJournalPatternStore

__all__ = [
    "SqlStore",
    "SqlAccountStore",
    "SqlAccountStructureStore",
    "SqlAuditRecorder",
    "SqlAutoJournalPatternStore",
    "SqlJournalEntryStore",
]
