"""Token types shared by the formula tokenizer, compiler and evaluator."""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Literal, Union

Operator = Literal["+", "-", "*", "/"]

OPERATORS: frozenset[str] = frozenset({"+", "-", "*", "/"})

# Higher binds tighter; equal precedence pops first (left-associative)
OPERATOR_PRECEDENCE = MappingProxyType({"+": 1, "-": 1, "*": 2, "/": 2})


@dataclass(frozen=True)
class NumberToken:
    value: float


@dataclass(frozen=True)
class FieldToken:
    name: str


@dataclass(frozen=True)
class StringToken:
    value: str


@dataclass(frozen=True)
class OperatorToken:
    op: Operator


@dataclass(frozen=True)
class LeftParenToken:
    pass


@dataclass(frozen=True)
class RightParenToken:
    pass


Token = Union[NumberToken, FieldToken, StringToken, OperatorToken, LeftParenToken, RightParenToken]

# Parentheses never survive compilation
RpnToken = Union[NumberToken, FieldToken, StringToken, OperatorToken]

LEFT_PAREN = LeftParenToken()
RIGHT_PAREN = RightParenToken()
