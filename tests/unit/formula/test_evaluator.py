"""Unit tests for FormulaEvaluator."""

import pytest

from notegrid.core.exceptions import FormulaErrorKind
from notegrid.formula.compiler import CompiledFormula, compile_formula
from notegrid.formula.evaluator import (
    FORMULA_ERROR_VALUE,
    EvaluationResult,
    FormulaEvaluator,
    evaluate_formula,
)
from notegrid.formula.tokens import NumberToken, OperatorToken


def run(formula: str, context: dict | None = None, resolve_field=None) -> EvaluationResult:
    """Compile and evaluate in one step."""
    return evaluate_formula(compile_formula(formula), context or {}, resolve_field)


class TestArithmetic:
    """Tests for numeric evaluation."""

    def test_integer_literal(self):
        """Test a lone number."""
        result = run("5")
        assert result.value == "5"
        assert result.kind == "number"
        assert result.numeric_value == 5.0
        assert result.error is None

    def test_canonical_decimal(self):
        """Test trailing zeros are dropped."""
        assert run("5.0").value == "5"
        assert run("1.50").value == "1.5"

    def test_precedence(self):
        """Test multiplication before addition."""
        assert run("2 + 3 * 4").value == "14"

    def test_parentheses(self):
        """Test grouping."""
        assert run("(2 + 3) * 4").value == "20"

    def test_left_associativity(self):
        """Test subtraction chains."""
        assert run("10 - 2 - 3").value == "5"
        assert run("100 / 10 / 5").value == "2"

    def test_unary_minus(self):
        """Test negative literals."""
        result = run("-5 + 3")
        assert result.value == "-2"
        assert result.numeric_value == -2.0

    def test_unary_minus_group(self):
        """Test negating a parenthesized group."""
        assert run("-(2 + 3)").value == "-5"

    def test_division_result_rounded(self):
        """Test non-integers render with at most six decimals."""
        assert run("1 / 3").value == "0.333333"
        assert run("2 / 3").value == "0.666667"

    def test_division(self):
        """Test exact division."""
        result = run("7 / 2")
        assert result.value == "3.5"
        assert result.numeric_value == 3.5

    def test_division_by_zero(self):
        """Test dividing by zero is an error result."""
        result = run("1 / 0")
        assert result.value == FORMULA_ERROR_VALUE
        assert result.error == "Division by zero"
        assert result.error_kind == FormulaErrorKind.DIVIDE_BY_ZERO
        assert result.kind == "string"
        assert not result.ok

    def test_division_by_empty_field(self):
        """Test a missing divisor counts as zero."""
        result = run("10 / {qty}", {"qty": ""})
        assert result.error_kind == FormulaErrorKind.DIVIDE_BY_ZERO

    def test_non_finite_result(self):
        """Test overflow is reported instead of rendering inf."""
        big = "9" * 300
        result = run(f"{big} * {big} * {big}")
        assert result.value == FORMULA_ERROR_VALUE
        assert result.error_kind == FormulaErrorKind.NON_FINITE_RESULT

    def test_deterministic(self):
        """Test repeated evaluation gives identical results."""
        compiled = compile_formula("(1 + 2) * 3 / 7")
        results = {evaluate_formula(compiled, {}) for _ in range(5)}
        assert len(results) == 1


class TestFieldReferences:
    """Tests for field lookups."""

    def test_numeric_strings(self):
        """Test fields holding numeric text are added."""
        result = run("{a} + {b}", {"a": "2", "b": "3"})
        assert result.value == "5"
        assert result.kind == "number"

    def test_numeric_values(self):
        """Test fields holding numbers."""
        assert run("{price} * {qty}", {"price": 2.5, "qty": 4}).value == "10"

    def test_whitespace_around_number(self):
        """Test field text is trimmed before parsing."""
        assert run("{a} * 2", {"a": "  21  "}).value == "42"

    def test_non_numeric_text_counts_as_zero(self):
        """Test unparsable text coerces to 0."""
        assert run("{a} + 1", {"a": "abc"}).value == "1"

    def test_missing_field_counts_as_zero(self):
        """Test absent fields coerce to 0 in arithmetic."""
        assert run("{a} + 1", {}).value == "1"

    def test_field_plus_field_is_numeric(self):
        """Test two text fields add numerically, not by concatenation."""
        result = run("{a} + {b}", {"a": "x", "b": "y"})
        assert result.value == "0"
        assert result.kind == "number"

    def test_sole_field_returns_raw_text(self):
        """Test a formula that is just a field keeps its text."""
        result = run("{name}", {"name": "Widget 5.0"})
        assert result.value == "Widget 5.0"
        assert result.kind == "string"

    def test_sole_field_missing(self):
        """Test a missing field yields empty text, not an error."""
        result = run("{missing}", {})
        assert result.value == ""
        assert result.error is None

    def test_sole_field_none(self):
        """Test a None field yields empty text."""
        assert run("{missing}", {"missing": None}).value == ""

    def test_sole_field_number(self):
        """Test a lone numeric field is rendered canonically."""
        assert run("{n}", {"n": 7}).value == "7"

    def test_sole_field_keeps_all_digits(self):
        """Test a lone fractional field is not rounded."""
        assert run("{n}", {"n": 1.23456789}).value == "1.23456789"

    def test_parenthesized_field_keeps_text(self):
        """Test a grouped lone field keeps its text."""
        result = run("({name})", {"name": "abc"})
        assert result.value == "abc"

    def test_resolver_takes_priority(self):
        """Test resolve_field overrides the context."""
        result = run("{a} * 2", {"a": "1"}, resolve_field=lambda name: "10")
        assert result.value == "20"

    def test_resolver_receives_field_names(self):
        """Test resolve_field is called with each referenced name."""
        seen: list[str] = []

        def resolve(name: str) -> str:
            seen.append(name)
            return "1"

        run("{x} + {y} + {x}", {}, resolve_field=resolve)
        assert seen == ["x", "y", "x"]

    def test_context_not_mutated(self):
        """Test evaluation leaves the row untouched."""
        context = {"a": "1", "b": "2"}
        run("{a} + {b}", context)
        assert context == {"a": "1", "b": "2"}


class TestStrings:
    """Tests for string literals and concatenation."""

    def test_string_literal(self):
        """Test a lone string literal."""
        result = run('"hello"')
        assert result.value == "hello"
        assert result.kind == "string"

    def test_concatenation_with_fields(self):
        """Test joining fields with a literal separator."""
        result = run('{first} + " " + {last}', {"first": "Jane", "last": "Doe"})
        assert result.value == "Jane Doe"
        assert result.kind == "string"

    def test_concatenation_formats_numbers(self):
        """Test numbers are rendered canonically when concatenated."""
        assert run('"Total: " + 2.50 * 2').value == "Total: 5"

    def test_concatenation_numeric_field(self):
        """Test a numeric field value is rendered canonically."""
        assert run('{n} + " items"', {"n": 3.0}).value == "3 items"

    def test_concatenation_missing_field(self):
        """Test a missing field concatenates as empty text."""
        assert run('"[" + {x} + "]"', {}).value == "[]"

    def test_string_in_arithmetic(self):
        """Test '-' and '*' coerce strings to numbers."""
        assert run('"10" - 4').value == "6"
        assert run('"3" * "4"').value == "12"

    def test_smart_quotes(self):
        """Test curly quotes delimit strings."""
        assert run("“a” + “b”").value == "ab"


class TestStackErrors:
    """Tests for malformed RPN."""

    def test_adjacent_operands(self):
        """Test two operands without an operator."""
        result = run("1 2")
        assert result.value == FORMULA_ERROR_VALUE
        assert result.error_kind == FormulaErrorKind.STACK_UNDERFLOW

    def test_trailing_operator(self):
        """Test an operator missing its right operand."""
        result = run("1 +")
        assert result.error_kind == FormulaErrorKind.STACK_UNDERFLOW

    def test_handcrafted_underflow(self):
        """Test a too-short stack is reported, not raised."""
        compiled = CompiledFormula(
            original="",
            rpn=(NumberToken(1.0), OperatorToken("+"), NumberToken(2.0)),
            dependencies=(),
        )
        result = evaluate_formula(compiled, {})
        assert result.error_kind == FormulaErrorKind.STACK_UNDERFLOW

    def test_lone_operator(self):
        """Test a single operator token."""
        compiled = CompiledFormula(original="", rpn=(OperatorToken("+"),), dependencies=())
        result = evaluate_formula(compiled, {})
        assert result.value == FORMULA_ERROR_VALUE

    def test_unknown_operator(self):
        """Test an operator outside + - * / is reported."""
        compiled = CompiledFormula(
            original="",
            rpn=(NumberToken(1.0), NumberToken(2.0), OperatorToken("%")),  # type: ignore[arg-type]
            dependencies=(),
        )
        result = evaluate_formula(compiled, {})
        assert result.error_kind == FormulaErrorKind.UNEXPECTED_CHAR


class TestFieldFailures:
    """Tests for field values that cannot be read or used."""

    @staticmethod
    def failing_resolver(name: str) -> str:
        raise KeyError(name)

    def test_resolver_error_in_expression(self):
        """Test a resolver that raises yields an error result."""
        result = run("{a} + 1", {}, resolve_field=self.failing_resolver)
        assert result.value == FORMULA_ERROR_VALUE
        assert result.error_kind == FormulaErrorKind.FIELD_LOOKUP_FAILED
        assert result.error == "Field value could not be read"

    def test_resolver_error_sole_field(self):
        """Test the single-field path also reports resolver errors."""
        result = run("{a}", {}, resolve_field=self.failing_resolver)
        assert result.error_kind == FormulaErrorKind.FIELD_LOOKUP_FAILED

    def test_huge_integer_concatenation(self):
        """Test an integer too large to render is an error result."""
        result = run('{a} + "x"', {"a": 10**5000})
        assert result.value == FORMULA_ERROR_VALUE
        assert result.error_kind == FormulaErrorKind.INVALID_FIELD_VALUE

    def test_huge_integer_sole_field(self):
        """Test a lone field holding a huge integer is an error result."""
        result = run("{a}", {"a": 10**5000})
        assert result.error_kind == FormulaErrorKind.INVALID_FIELD_VALUE

    def test_huge_integer_arithmetic(self):
        """Test huge integers coerce to 0 in arithmetic."""
        assert run("{a} * 2 + 1", {"a": 10**5000}).value == "1"

    def test_unprintable_value(self):
        """Test a value whose str() raises is an error result."""

        class Broken:
            def __str__(self) -> str:
                raise RuntimeError("no text")

        result = run("{a} - 1", {"a": Broken()})
        assert result.error_kind == FormulaErrorKind.INVALID_FIELD_VALUE


class TestFormulaEvaluator:
    """Tests for the FormulaEvaluator class."""

    def test_shared_instance(self):
        """Test one evaluator serves many rows."""
        evaluator = FormulaEvaluator()
        compiled = compile_formula("{a} * 2")
        values = [evaluator.evaluate(compiled, {"a": str(i)}).value for i in range(3)]
        assert values == ["0", "2", "4"]

    @pytest.mark.parametrize(
        "formula,expected",
        [
            ("1 + 2 * 3 - 4 / 2", "5"),
            ("(1 + 2) * (3 - 4)", "-3"),
            ("0.1 + 0.2", "0.3"),
            ("8 / 4 * 2", "4"),
        ],
    )
    def test_expressions(self, formula, expected):
        """Test assorted expressions."""
        assert FormulaEvaluator().evaluate(compile_formula(formula), {}).value == expected
