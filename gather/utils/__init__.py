"""
Utilities Module
================

Pure helpers and heuristics with no I/O.
"""

from gather.utils.helpers import generate_step_id, utc_now

__all__ = ["generate_step_id", "utc_now"]
