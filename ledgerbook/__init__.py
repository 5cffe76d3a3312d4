"""
Ledgerbook - Source Package

A personal-finance bookkeeping service: bank accounts, categorized
transactions and inter-account transfers with PDF receipts.

DESIGN PRINCIPLES:
1. Balances are derived, never stored
2. Fail early, fail visibly
3. Every foreign reference is ownership-checked
4. A transfer either lands both legs or none
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Ledgerbook Team"
