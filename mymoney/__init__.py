"""
MyMoney - Source Package

A personal finance client: record income and expenses, watch the
balance, and report on a month at a time.

DESIGN PRINCIPLES:
1. The local ledger is the source of truth; the backend is a collaborator
2. Invalid input is rejected loudly; nothing is silently corrected
3. Storage failures never take the ledger down, but are always logged
4. Every mutation is auditable
5. Storage and export are swappable
"""

__version__ = "0.1.0"
__author__ = "MyMoney Team"
