"""ORM models for the reference store adapters."""

from ledger_kernel.models.account import AccountModel, AccountStructureModel
from ledger_kernel.models.audit_event import AuditEventModel
from ledger_kernel.models.auto_journal import (
    AutoJournalPatternItemModel,
    AutoJournalPatternModel,
)
from ledger_kernel.models.journal import JournalEntryModel, JournalLineModel

__all__ = [
    "AccountModel",
    "AccountStructureModel",
    "AuditEventModel",
    "AutoJournalPatternModel",
    "AutoJournalPatternItemModel",
    "JournalEntryModel",
    "JournalLineModel",
]
