"""
NoteGrid - spreadsheet-style formula columns for markdown note tables.

Compiles column formulas such as ``{Price} * {Quantity}`` once and evaluates
them for every row of a table, returning display text plus diagnostics.
"""

__version__ = "0.1.0"
__license__ = "MIT"

from notegrid.fields.formula import FormulaColumnManager
from notegrid.formula import (
    FORMULA_ERROR_VALUE,
    CompiledFormula,
    EvaluationResult,
    compile_formula,
    evaluate_formula,
)

__all__ = [
    "CompiledFormula",
    "EvaluationResult",
    "FORMULA_ERROR_VALUE",
    "FormulaColumnManager",
    "__version__",
    "compile_formula",
    "evaluate_formula",
]
