"""
Ledger Kernel

A multi-tenant double-entry bookkeeping kernel with:
- Balanced, atomic journal posting
- Reversal instead of mutation
- Multi-currency posting through dated exchange rates
- Derived balances and reports (trial balance, P&L, balance sheet)
"""

__version__ = "0.1.0"
