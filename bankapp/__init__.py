"""
Bank Account Core

Customer accounts, deposit/withdrawal policies, transfers and an append-only
transaction ledger, using Decimal for all money arithmetic.
"""

__version__ = "1.0.0"
