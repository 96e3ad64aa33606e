"""Personal finance ledger: wallets, transactions, transfers, budgets, goals."""

__version__ = "0.1.0"
