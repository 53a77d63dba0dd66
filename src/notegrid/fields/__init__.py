"""Column handling for NoteGrid tables.

Formula columns are computed per row; date and time columns contribute
their display text to formulas that reference them.
"""

from notegrid.fields.display import format_date_for_display, format_time_for_display
from notegrid.fields.formula import FormulaColumnManager

__all__ = [
    "FormulaColumnManager",
    "format_date_for_display",
    "format_time_for_display",
]
