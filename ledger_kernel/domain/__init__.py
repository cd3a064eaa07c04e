"""
Pure domain layer.

This module contains value objects and domain logic with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock (timestamps are passed in)
- I/O

All domain objects are immutable and deterministic.
"""

from ledger_kernel.domain.accounts import Account, AccountType, NormalBalance
from ledger_kernel.domain.auto_journal import (
    AutoJournalPattern,
    AutoJournalPatternItem,
    DebitCredit,
    generate,
)
from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.hierarchy import (
    AccountStructure,
    check_removable,
    has_circular_reference,
    register,
    reparent,
)
from ledger_kernel.domain.journal import (
    JOURNAL_TRANSITIONS,
    JournalAction,
    JournalEntry,
    JournalEntryLine,
    JournalEntryStatus,
)
from ledger_kernel.domain.journal_search import JournalEntryPage, JournalEntrySearch
from ledger_kernel.domain.result import Result
from ledger_kernel.domain.values import AccountId, JournalEntryId, Money

__all__ = [
    # Value Objects
    "Money",
    "AccountId",
    "JournalEntryId",
    "Result",
    # Accounts
    "Account",
    "AccountType",
    "NormalBalance",
    "AccountStructure",
    "register",
    "reparent",
    "check_removable",
    "has_circular_reference",
    # Journal
    "JournalEntry",
    "JournalEntryLine",
    "JournalEntryStatus",
    "JournalAction",
    "JOURNAL_TRANSITIONS",
    "JournalEntrySearch",
    "JournalEntryPage",
    # Auto-journal
    "AutoJournalPattern",
    "AutoJournalPatternItem",
    "DebitCredit",
    "generate",
    # Time
    "Clock",
    "SystemClock",
    "DeterministicClock",
]
