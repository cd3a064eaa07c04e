"""
Ledger aggregation engine.

Stateless, deterministic functions over posted (CONFIRMED) journal lines:
- ledgers: running balances, general/subsidiary ledger, daily/monthly buckets
- statements: trial balance, balance sheet, profit-and-loss, financial analysis
- models: frozen report value objects
"""

from ledger_kernel.reporting.ledgers import (
    build_daily_balances,
    build_general_ledger,
    build_monthly_balances,
    build_subsidiary_ledger,
    compute_running_balances,
    normalize_balance,
    signed_amount,
)
from ledger_kernel.reporting.models import PostedLine
from ledger_kernel.reporting.statements import (
    build_balance_sheet,
    build_financial_analysis,
    build_profit_and_loss,
    build_trial_balance,
)

__all__ = [
    "PostedLine",
    "signed_amount",
    "normalize_balance",
    "compute_running_balances",
    "build_general_ledger",
    "build_subsidiary_ledger",
    "build_daily_balances",
    "build_monthly_balances",
    "build_trial_balance",
    "build_balance_sheet",
    "build_profit_and_loss",
    "build_financial_analysis",
]
