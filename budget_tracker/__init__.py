"""
Budget Tracker - Source Package

Personal finance tracker: users keep budgets and expenses, every record
scoped to its owner.

DESIGN PRINCIPLES:
1. A record is only ever visible to its owner
2. Storage backends are interchangeable behind one contract
3. "Not found" is an answer, not an error
4. Failed writes are unknown outcomes, never assumed failed
"""

__version__ = "1.0.0"
__author__ = "Budget Tracker Team"
