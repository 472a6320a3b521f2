"""
Budget Engine - Source Package

The computational core of a household budgeting application: budget
periods, Swedish holidays, balance propagation across months, savings goal
amortization and transaction reconciliation.

DESIGN PRINCIPLES:
1. Snapshots in, snapshots out (nothing is mutated in place)
2. Fail early on malformed input, report bad references as anomalies
3. No silent corrections
4. Every ledger edit is auditable
5. Persistence and UI live elsewhere
"""

__version__ = "1.0.0"
__author__ = "Budget Engine Team"
