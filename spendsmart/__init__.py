"""
SpendSmart - Source Package

A personal finance tracker: scan receipts with Gemini, review the
extracted line items, track budgets per category and ask an AI
advisor about your spending.

DESIGN PRINCIPLES:
1. AI extracts → Human reviews → Store persists
2. Aggregations are pure functions of the transaction list
3. Storage degrades to empty defaults, never crashes the app
4. Every state change goes through a named operation
5. Storage backend is swappable
"""

__version__ = "1.0.0"
__author__ = "SpendSmart Team"
