"""
budgetwatch - Source Package

Tracks personal spending against user-defined budgets and raises alerts
when spending reaches or exceeds a limit.

DESIGN PRINCIPLES:
1. The in-memory ledger is the single source of truth
2. Persistence is write-behind and never blocks or fails a mutation
3. Alerts are append-only facts
4. Derived views (statuses, cached queries) are recomputed, never patched
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "budgetwatch Team"
