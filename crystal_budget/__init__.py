"""
CrystalBudget - Budget Core Package

Computes, for one calendar month, how much each expense category may
spend, what is left in each income source and the overall balance
carried forward from earlier months.

DESIGN PRINCIPLES:
1. The core is pure: no I/O, no clock, no exceptions on bad data
2. Money is Decimal end-to-end
3. Missing or deleted references count as zero, and are reported
4. Every computation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "CrystalBudget Team"
