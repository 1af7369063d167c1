"""
Weighted tabulation helpers for survey data.

Subpackages:
- core: weighted statistics, frequency tables and multiple-choice helpers
- ui: Streamlit viewer built on top of core
"""
from __future__ import annotations

from surveytab.core.multi import cross_multi_table, multi_collapse, multi_split, multi_table
from surveytab.core.tables import PropTab, tabs, wtd_table
from surveytab.core.weighted import wtd_mean, wtd_var

__all__ = [
    "PropTab",
    "cross_multi_table",
    "multi_collapse",
    "multi_split",
    "multi_table",
    "tabs",
    "wtd_mean",
    "wtd_table",
    "wtd_var",
]
