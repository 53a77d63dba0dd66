"""Formula evaluator for NoteGrid.

Runs compiled RPN formulas against a row of field values. Evaluation never
raises: runtime failures are returned as an error result carrying the
sentinel value.
"""

import math
import sys
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Literal

from notegrid.core.exceptions import FormulaErrorKind, FormulaEvaluationError
from notegrid.core.logging import get_logger
from notegrid.formula.coercion import (
    FieldValue,
    NumberValue,
    StackValue,
    StringValue,
    field_to_string,
    format_number,
    raw_to_string,
    to_number,
    to_string,
)
from notegrid.formula.compiler import CompiledFormula
from notegrid.formula.tokens import FieldToken, NumberToken, OperatorToken, RpnToken, StringToken

logger = get_logger(__name__)

FORMULA_ERROR_VALUE = "#ERR"

ResultKind = Literal["number", "string"]
FieldResolver = Callable[[str], Any]


@dataclass(frozen=True)
class EvaluationResult:
    """
    Outcome of evaluating a formula for one row.

    Attributes:
        value: Display text, or FORMULA_ERROR_VALUE when evaluation failed
        error: Diagnostic message, None on success
        kind: Whether the result is numeric or textual
        numeric_value: Raw number for numeric results
        error_kind: Category of the failure, None on success
    """

    value: str
    error: str | None
    kind: ResultKind
    numeric_value: float | None = None
    error_kind: FormulaErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def number(cls, value: float) -> "EvaluationResult":
        return cls(value=format_number(value), error=None, kind="number", numeric_value=value)

    @classmethod
    def text(cls, value: str) -> "EvaluationResult":
        return cls(value=value, error=None, kind="string")

    @classmethod
    def failure(
        cls, message: str, error_kind: FormulaErrorKind | None = None
    ) -> "EvaluationResult":
        return cls(
            value=FORMULA_ERROR_VALUE,
            error=message,
            kind="string",
            error_kind=error_kind,
        )


class FormulaEvaluator:
    """
    Evaluates compiled formulas against row data.

    The evaluator holds no per-row state, so one instance can be shared
    across rows and threads.
    """

    def evaluate(
        self,
        compiled: CompiledFormula,
        context: Mapping[str, Any],
        resolve_field: FieldResolver | None = None,
    ) -> EvaluationResult:
        """
        Evaluate a compiled formula.

        Args:
            compiled: Output of compile_formula
            context: Field name to raw value mapping for the row
            resolve_field: Optional lookup used instead of the context

        Returns:
            EvaluationResult; failures carry FORMULA_ERROR_VALUE
        """
        lookup = resolve_field if resolve_field is not None else context.get

        try:
            if len(compiled.rpn) == 1:
                return self._evaluate_single(compiled.rpn[0], lookup)

            result = self._run(compiled.rpn, lookup)
            if isinstance(result, NumberValue):
                if not math.isfinite(result.value):
                    raise FormulaEvaluationError(FormulaErrorKind.NON_FINITE_RESULT)
                return EvaluationResult.number(result.value)
            return EvaluationResult.text(_render(to_string, result))
        except FormulaEvaluationError as e:
            logger.debug(
                "Formula evaluation failed",
                extra={"formula": compiled.original, "error_kind": e.kind.value},
                exc_info=e.__cause__ is not None,
            )
            return EvaluationResult.failure(e.message, e.kind)

    def _evaluate_single(self, token: RpnToken, lookup: FieldResolver) -> EvaluationResult:
        """Single-token formulas need no stack."""
        if isinstance(token, FieldToken):
            return EvaluationResult.text(_render(raw_to_string, _read_field(lookup, token.name)))
        if isinstance(token, NumberToken):
            return EvaluationResult.number(token.value)
        if isinstance(token, StringToken):
            return EvaluationResult.text(token.value)
        # A lone operator cannot come out of the compiler
        raise FormulaEvaluationError(FormulaErrorKind.STACK_UNDERFLOW)

    def _run(self, rpn: tuple[RpnToken, ...], lookup: FieldResolver) -> StackValue:
        """Execute RPN tokens on a value stack."""
        stack: list[StackValue] = []

        for token in rpn:
            if isinstance(token, NumberToken):
                stack.append(NumberValue(token.value))
            elif isinstance(token, StringToken):
                stack.append(StringValue(token.value))
            elif isinstance(token, FieldToken):
                stack.append(FieldValue(_read_field(lookup, token.name)))
            elif isinstance(token, OperatorToken):
                if len(stack) < 2:
                    raise FormulaEvaluationError(FormulaErrorKind.STACK_UNDERFLOW)
                right = stack.pop()
                left = stack.pop()
                try:
                    stack.append(self._apply(token.op, left, right))
                except FormulaEvaluationError:
                    raise
                except Exception as e:
                    raise FormulaEvaluationError(
                        FormulaErrorKind.INVALID_FIELD_VALUE, details={"operator": token.op}
                    ) from e

        if len(stack) != 1:
            raise FormulaEvaluationError(FormulaErrorKind.STACK_UNDERFLOW)

        result = stack[0]
        if isinstance(result, FieldValue):
            # {field} on its own keeps the field's text
            return StringValue(_render(field_to_string, result.raw))
        return result

    def _apply(self, op: str, left: StackValue, right: StackValue) -> StackValue:
        """Dispatch a binary operator."""
        if op == "+":
            return self._add(left, right)
        if op == "-":
            return NumberValue(to_number(left) - to_number(right))
        if op == "*":
            return NumberValue(to_number(left) * to_number(right))
        if op == "/":
            return self._divide(left, right)

        raise FormulaEvaluationError(
            FormulaErrorKind.UNEXPECTED_CHAR, details={"operator": op}
        )

    # ==========================================================================
    # Operator Implementations
    # ==========================================================================

    def _add(self, left: StackValue, right: StackValue) -> StackValue:
        """Addition, or concatenation when either side is a string literal/result."""
        if isinstance(left, StringValue) or isinstance(right, StringValue):
            return StringValue(to_string(left) + to_string(right))
        return NumberValue(to_number(left) + to_number(right))

    def _divide(self, left: StackValue, right: StackValue) -> NumberValue:
        """Division."""
        divisor = to_number(right)
        if abs(divisor) < sys.float_info.epsilon:
            raise FormulaEvaluationError(FormulaErrorKind.DIVIDE_BY_ZERO)
        return NumberValue(to_number(left) / divisor)


def _read_field(lookup: FieldResolver, name: str) -> Any:
    """Look up a field value, reporting resolver failures as evaluation errors."""
    try:
        return lookup(name)
    except Exception as e:
        raise FormulaEvaluationError(
            FormulaErrorKind.FIELD_LOOKUP_FAILED, details={"field": name}
        ) from e


def _render(convert: Callable[[Any], str], value: Any) -> str:
    """Apply a text conversion to a value that may not be renderable."""
    try:
        return convert(value)
    except Exception as e:
        raise FormulaEvaluationError(FormulaErrorKind.INVALID_FIELD_VALUE) from e


_default_evaluator = FormulaEvaluator()


def evaluate_formula(
    compiled: CompiledFormula,
    context: Mapping[str, Any],
    resolve_field: FieldResolver | None = None,
) -> EvaluationResult:
    """
    Convenience function to evaluate a compiled formula.

    Args:
        compiled: Output of compile_formula
        context: Field values for the row
        resolve_field: Optional lookup taking priority over the context

    Returns:
        EvaluationResult
    """
    return _default_evaluator.evaluate(compiled, context, resolve_field)
