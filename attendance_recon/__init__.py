#Dosctring for the package
"""
Attendance Reconciliation Pipeline

This package contains the core modules for:

- Loading the attendance, payments, rules and discount sheets
- Cleaning and normalizing data
- Matching attendance to payments and pricing rules
- Maintaining the master ledger of revenue splits

Subpackages:
- core
- cleaning
- engines
- visualization
- outputs

"""

#Import modules to be exposed at the package level
from . import core, cleaning, engines, visualization, outputs
__all__ = [
    "core",
    "cleaning",
    "engines",
    "visualization",
    "outputs",
]
