"""
Custom exceptions for NoteGrid.

Provides a hierarchy of exceptions with structured error information.
Formula failures carry a FormulaErrorKind so callers can tell categories
apart without parsing messages.
"""

from enum import Enum
from typing import Any


class FormulaErrorKind(str, Enum):
    """Categories of formula failures."""

    # Compile-time
    EMPTY_FORMULA = "EMPTY_FORMULA"
    UNEXPECTED_CHAR = "UNEXPECTED_CHAR"
    UNMATCHED_BRACE = "UNMATCHED_BRACE"
    EMPTY_FIELD = "EMPTY_FIELD"
    UNMATCHED_PAREN = "UNMATCHED_PAREN"
    NUMERIC_OUT_OF_RANGE = "NUMERIC_OUT_OF_RANGE"
    UNARY_NOT_SUPPORTED = "UNARY_NOT_SUPPORTED"
    UNTERMINATED_STRING = "UNTERMINATED_STRING"

    # Runtime
    STACK_UNDERFLOW = "STACK_UNDERFLOW"
    DIVIDE_BY_ZERO = "DIVIDE_BY_ZERO"
    NON_FINITE_RESULT = "NON_FINITE_RESULT"
    FIELD_LOOKUP_FAILED = "FIELD_LOOKUP_FAILED"
    INVALID_FIELD_VALUE = "INVALID_FIELD_VALUE"


FORMULA_ERROR_MESSAGES: dict[FormulaErrorKind, str] = {
    FormulaErrorKind.EMPTY_FORMULA: "Formula is empty",
    FormulaErrorKind.UNEXPECTED_CHAR: "Unexpected character in formula",
    FormulaErrorKind.UNMATCHED_BRACE: "Missing closing '}' for field reference",
    FormulaErrorKind.EMPTY_FIELD: "Field reference is empty",
    FormulaErrorKind.UNMATCHED_PAREN: "Unmatched parenthesis",
    FormulaErrorKind.NUMERIC_OUT_OF_RANGE: "Number is out of range",
    FormulaErrorKind.UNARY_NOT_SUPPORTED: "Only '+' and '-' can be used as unary operators",
    FormulaErrorKind.UNTERMINATED_STRING: "String literal is missing its closing quote",
    FormulaErrorKind.STACK_UNDERFLOW: "Formula is incomplete or has too many operands",
    FormulaErrorKind.DIVIDE_BY_ZERO: "Division by zero",
    FormulaErrorKind.NON_FINITE_RESULT: "Formula result is not a finite number",
    FormulaErrorKind.FIELD_LOOKUP_FAILED: "Field value could not be read",
    FormulaErrorKind.INVALID_FIELD_VALUE: "Field value cannot be used in a formula",
}


class NoteGridException(Exception):
    """
    Base exception for all NoteGrid errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code
            details: Additional error details
        """
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for diagnostics."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


# =============================================================================
# Formula Errors
# =============================================================================


class FormulaError(NoteGridException):
    """A formula could not be compiled or evaluated."""

    def __init__(
        self,
        kind: FormulaErrorKind,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.kind = kind
        super().__init__(
            message=message or FORMULA_ERROR_MESSAGES[kind],
            code=kind.value,
            details=details,
        )


class FormulaCompilationError(FormulaError):
    """Formula source text is not a valid formula."""


class FormulaEvaluationError(FormulaError):
    """Formula failed while being evaluated against a row."""


# =============================================================================
# Column Configuration Errors
# =============================================================================


class ColumnConfigError(NoteGridException):
    """Invalid column configuration."""

    def __init__(self, column_name: str, message: str) -> None:
        super().__init__(
            message=f"Invalid configuration for column '{column_name}': {message}",
            code="INVALID_COLUMN_CONFIG",
            details={"column_name": column_name},
        )
