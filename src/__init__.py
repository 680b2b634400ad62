"""
MoneyFlow - Source Package

Imports bank-statement CSV exports into a personal budget ledger:
parse, categorize, match against what is already recorded, and let the
user settle the possible duplicates before anything is saved.

DESIGN PRINCIPLES:
1. Bad rows are skipped, never fatal
2. Rule order decides categories, and is visible in one place
3. No silent overwrites: possible duplicates wait for the user
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "MoneyFlow Team"
