"""
LedgerLens - Query Resolution and Financial Analytics Engine

Turns free-text questions about a shared pool of transactions into an
intent, an analytic category and a deterministic computation.

DESIGN PRINCIPLES:
1. Rules decide → model assists → analytics compute
2. Fail early, fail visibly
3. No silent corrections to the ledger
4. Every step must be auditable
5. Money is Decimal, never float
"""

__version__ = "1.0.0"
__author__ = "LedgerLens Team"
