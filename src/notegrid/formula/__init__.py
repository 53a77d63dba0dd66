"""Formula engine for NoteGrid.

Formula columns derive their value from other columns of the same row:

- Field references ({Field Name})
- Number literals (42, 3.5) and string literals ("text", with \\" \\\\ \\n \\t \\r escapes)
- Arithmetic (+, -, *, /) with parentheses and unary +/-
- String concatenation with + when either side is a string

compile_formula() turns formula text into an immutable CompiledFormula once;
evaluate_formula() runs it for each row and never raises.
"""

from notegrid.formula.compiler import (
    CompiledFormula,
    compile_formula,
    get_field_references,
    validate_formula,
)
from notegrid.formula.evaluator import (
    FORMULA_ERROR_VALUE,
    EvaluationResult,
    FormulaEvaluator,
    evaluate_formula,
)

__all__ = [
    "CompiledFormula",
    "EvaluationResult",
    "FORMULA_ERROR_VALUE",
    "FormulaEvaluator",
    "compile_formula",
    "evaluate_formula",
    "get_field_references",
    "validate_formula",
]
