"""
Delta Append - conflict-checked appends to Delta Lake tables

Reads the `_delta_log` commit log into an immutable table state, stages
Parquet data files and commits them with an atomic create-if-absent write.
"""

__version__ = "0.1.0"
__author__ = "Systems Engineering Portfolio"
