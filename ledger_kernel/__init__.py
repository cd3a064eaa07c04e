"""
Ledger Kernel

A general-ledger accounting core with:
- Double-entry journal entries and a balancing invariant
- Approval lifecycle under optimistic concurrency
- Hierarchical chart of accounts
- Ledger and financial statement views over confirmed entries
- Pattern-driven automatic journal generation
"""

__version__ = "0.1.0"
