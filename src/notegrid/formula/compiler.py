"""Formula compiler for NoteGrid.

Compiles formula text into postfix (RPN) form with the shunting-yard
algorithm, collecting the field names the formula references.
"""

from dataclasses import dataclass
from typing import Union

from notegrid.core.exceptions import FormulaCompilationError, FormulaErrorKind
from notegrid.core.logging import get_logger
from notegrid.formula.tokenizer import normalize_formula, tokenize
from notegrid.formula.tokens import (
    OPERATOR_PRECEDENCE,
    FieldToken,
    LeftParenToken,
    NumberToken,
    OperatorToken,
    RightParenToken,
    RpnToken,
    StringToken,
    Token,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class CompiledFormula:
    """
    Immutable result of compiling one formula.

    Attributes:
        original: Formula text exactly as given to compile_formula
        rpn: Tokens in postfix order
        dependencies: Referenced field names, first reference first
    """

    original: str
    rpn: tuple[RpnToken, ...]
    dependencies: tuple[str, ...]

    def references(self, field_name: str) -> bool:
        """Check whether the formula reads the given field."""
        return field_name in self.dependencies


def compile_formula(raw_formula: str) -> CompiledFormula:
    """
    Compile formula text.

    Args:
        raw_formula: Formula text, optionally prefixed with '='

    Returns:
        CompiledFormula ready for evaluation

    Raises:
        FormulaCompilationError: If the formula is empty or malformed
    """
    normalized = normalize_formula(raw_formula)
    if not normalized:
        raise FormulaCompilationError(FormulaErrorKind.EMPTY_FORMULA)

    rpn, dependencies = to_reverse_polish(tokenize(normalized))
    logger.debug(
        "Compiled formula",
        extra={"formula": raw_formula, "rpn_length": len(rpn), "dependencies": dependencies},
    )
    return CompiledFormula(
        original=raw_formula,
        rpn=tuple(rpn),
        dependencies=tuple(dependencies),
    )


def to_reverse_polish(tokens: list[Token]) -> tuple[list[RpnToken], list[str]]:
    """
    Reorder infix tokens into postfix order.

    A '+' or '-' in unary position is compiled as ``0 +/- operand``;
    '*' and '/' are rejected there.

    Args:
        tokens: Tokens from tokenize()

    Returns:
        Tuple of (rpn tokens, referenced field names)

    Raises:
        FormulaCompilationError: On unmatched parentheses or unary '*' / '/'
    """
    output: list[RpnToken] = []
    stack: list[Union[OperatorToken, LeftParenToken]] = []
    # dict keeps insertion order, which a set would not
    dependencies: dict[str, None] = {}
    previous: Token | None = None

    for token in tokens:
        if isinstance(token, (NumberToken, StringToken)):
            output.append(token)

        elif isinstance(token, FieldToken):
            output.append(token)
            dependencies.setdefault(token.name, None)

        elif isinstance(token, OperatorToken):
            if _is_unary_position(previous):
                if token.op not in ("+", "-"):
                    raise FormulaCompilationError(
                        FormulaErrorKind.UNARY_NOT_SUPPORTED, details={"operator": token.op}
                    )
                output.append(NumberToken(0.0))
            precedence = OPERATOR_PRECEDENCE[token.op]
            while stack:
                top = stack[-1]
                if isinstance(top, LeftParenToken) or OPERATOR_PRECEDENCE[top.op] < precedence:
                    break
                output.append(stack.pop())
            stack.append(token)

        elif isinstance(token, LeftParenToken):
            stack.append(token)

        elif isinstance(token, RightParenToken):
            while True:
                if not stack:
                    raise FormulaCompilationError(FormulaErrorKind.UNMATCHED_PAREN)
                top = stack.pop()
                if isinstance(top, LeftParenToken):
                    break
                output.append(top)

        previous = token

    while stack:
        top = stack.pop()
        if isinstance(top, LeftParenToken):
            raise FormulaCompilationError(FormulaErrorKind.UNMATCHED_PAREN)
        output.append(top)

    return output, list(dependencies)


def _is_unary_position(previous: Token | None) -> bool:
    return previous is None or isinstance(previous, (OperatorToken, LeftParenToken))


def validate_formula(raw_formula: str) -> tuple[bool, str | None]:
    """
    Validate formula syntax.

    Args:
        raw_formula: Formula text

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        compile_formula(raw_formula)
        return True, None
    except FormulaCompilationError as e:
        return False, e.message


def get_field_references(raw_formula: str) -> list[str]:
    """
    Extract the field names referenced by a formula.

    Args:
        raw_formula: Formula text

    Returns:
        Field names in first-reference order, empty if the formula is invalid
    """
    try:
        return list(compile_formula(raw_formula).dependencies)
    except FormulaCompilationError:
        return []
