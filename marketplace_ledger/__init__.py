"""
Marketplace Ledger

Financial consistency engine for a freelance marketplace: clients pay
contractors for jobs out of their balances, with atomic transfers,
bounded deposits and revenue analytics. Money is always Decimal.
"""

__version__ = "1.0.0"
