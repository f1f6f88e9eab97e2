"""
FinVue - Personal Finance Tracker

Track bank accounts and income/expense transactions, see where the
money goes each month, and ask an AI advisor for a second opinion.

DESIGN PRINCIPLES:
1. Dashboard numbers are computed, never stored
2. The clock is an input, not a global
3. Storage layer is swappable (local demo files or Google Sheets)
4. The AI advisor comments on data, it never changes it
"""

__version__ = "1.0.0"
__author__ = "FinVue Team"
