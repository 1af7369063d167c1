"""
Core statistics layer.

This package contains:
- weighted: weighted mean and variance
- tables: weighted one-way / two-way frequency tables and the cross-tab report
- multi: multiple-choice variables (indicator split/collapse and tables)
- data_loader: read local survey extracts into DataFrames
"""
