"""Formula tokenizer.

Turns normalized formula text into a flat list of tokens. Field references
are written ``{Field Name}``, string literals use double quotes, and numbers
are plain decimals without exponent or sign (signs are unary operators).
"""

import math

from notegrid.core.exceptions import FormulaCompilationError, FormulaErrorKind
from notegrid.formula.tokens import (
    LEFT_PAREN,
    OPERATORS,
    RIGHT_PAREN,
    FieldToken,
    NumberToken,
    OperatorToken,
    StringToken,
    Token,
)

_WHITESPACE = frozenset(" \t\r\n")
_DIGITS = frozenset("0123456789")
_SMART_QUOTES = str.maketrans({"\u201c": '"', "\u201d": '"'})

_ESCAPES = {
    '"': '"',
    "\\": "\\",
    "n": "\n",
    "t": "\t",
    "r": "\r",
}


def normalize_formula(raw: str) -> str:
    """
    Prepare raw formula text for tokenizing.

    Trims whitespace, drops one leading ``=`` and replaces curly double
    quotes with straight ones.

    Args:
        raw: Formula text as typed by the user

    Returns:
        Normalized formula text (may be empty)
    """
    text = raw.strip()
    if text.startswith("="):
        text = text[1:].strip()
    return text.translate(_SMART_QUOTES)


def tokenize(expression: str) -> list[Token]:
    """
    Split a normalized formula into tokens.

    Args:
        expression: Normalized formula text

    Returns:
        List of tokens in source order

    Raises:
        FormulaCompilationError: If the text contains an invalid construct
    """
    tokens: list[Token] = []
    index = 0
    length = len(expression)

    while index < length:
        char = expression[index]

        if char in _WHITESPACE:
            index += 1
            continue

        if char == "{":
            closing = expression.find("}", index + 1)
            if closing == -1:
                raise FormulaCompilationError(FormulaErrorKind.UNMATCHED_BRACE)
            field_name = expression[index + 1 : closing].strip()
            if not field_name:
                raise FormulaCompilationError(FormulaErrorKind.EMPTY_FIELD)
            tokens.append(FieldToken(field_name))
            index = closing + 1
            continue

        if char == '"':
            literal, index = _read_string_literal(expression, index + 1)
            tokens.append(StringToken(literal))
            continue

        if char in OPERATORS:
            tokens.append(OperatorToken(char))
            index += 1
            continue

        if char == "(":
            tokens.append(LEFT_PAREN)
            index += 1
            continue

        if char == ")":
            tokens.append(RIGHT_PAREN)
            index += 1
            continue

        if char in _DIGITS or char == ".":
            number, index = _read_number(expression, index)
            tokens.append(NumberToken(number))
            continue

        raise FormulaCompilationError(
            FormulaErrorKind.UNEXPECTED_CHAR,
            f"Unexpected character in formula: '{char}'",
            details={"char": char, "position": index},
        )

    return tokens


def _read_number(source: str, start: int) -> tuple[float, int]:
    """Read a decimal literal; a second '.' ends the literal."""
    index = start
    seen_dot = False
    seen_digit = False
    while index < len(source):
        char = source[index]
        if char == ".":
            if seen_dot:
                break
            seen_dot = True
        elif char in _DIGITS:
            seen_digit = True
        else:
            break
        index += 1

    if not seen_digit:
        # A lone "."
        raise FormulaCompilationError(
            FormulaErrorKind.UNEXPECTED_CHAR, details={"position": start}
        )

    value = float(source[start:index])
    if not math.isfinite(value):
        raise FormulaCompilationError(
            FormulaErrorKind.NUMERIC_OUT_OF_RANGE,
            details={"literal": source[start:index]},
        )
    return value, index


def _read_string_literal(source: str, start: int) -> tuple[str, int]:
    """Read a string body starting after the opening quote.

    Returns the unescaped text and the position after the closing quote.
    """
    index = start
    parts: list[str] = []
    while index < len(source):
        char = source[index]
        if char == '"':
            return "".join(parts), index + 1
        if char == "\\":
            if index + 1 >= len(source):
                break
            escaped = source[index + 1]
            parts.append(_ESCAPES.get(escaped, escaped))
            index += 2
            continue
        parts.append(char)
        index += 1

    raise FormulaCompilationError(FormulaErrorKind.UNTERMINATED_STRING)
