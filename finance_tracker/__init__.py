"""
Finance Tracker - Source Package

Backend for a personal finance tracker: expenses, income, budgets and
savings goals, with recurring transactions projected on a schedule.

DESIGN PRINCIPLES:
1. Every record belongs to exactly one owner
2. Budget spent totals only move through the ledger
3. Ledger and recurring failures are logged, never silent
4. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
