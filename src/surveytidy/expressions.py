"""
Expression System for surveytidy

Row predicates (filter guards) and column computations (mutate) can be
written as Abstract Syntax Trees instead of strings or callables.

An AST gives the verbs things a string or a lambda cannot:
    - A stable, human-readable description for the domain audit log
      and the transformation record in the label store
    - The set of columns an expression reads (used by mutate(keep=...))
    - Language-independent structure that serializes cleanly

ARCHITECTURAL RULE:
    These objects are structure only.
    Evaluation lives in surveytidy.evaluation (the interpreter layer).
"""

from abc import ABC
from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union


class Expression(ABC):
    """
    Base class for all AST expressions.

    DO NOT:
        - Add evaluation logic here (belongs in evaluation.py)
        - Add pandas-specific behaviour
    """
    pass


class BinaryOperator(Enum):
    """
    Binary operators supported in expressions.

    Logical operators use three-valued (Kleene) logic when evaluated:
    a missing operand only propagates when it can change the result.
    """

    # Logical operators
    AND = "&"
    OR = "|"

    # Comparison operators
    EQUALS = "=="
    NOT_EQUALS = "!="
    GREATER_THAN = ">"
    GREATER_EQUAL = ">="
    LESS_THAN = "<"
    LESS_EQUAL = "<="

    # Arithmetic operators
    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"


@dataclass(frozen=True)
class BinaryExpression(Expression):
    """
    Represents a binary logical, comparison or arithmetic expression.

    Example:
        y1 > 0 & group == "A"

    Becomes:
        BinaryExpression(
            operator=BinaryOperator.AND,
            left=BinaryExpression(
                operator=BinaryOperator.GREATER_THAN,
                left=VariableReference("y1"),
                right=Literal(0)
            ),
            right=BinaryExpression(
                operator=BinaryOperator.EQUALS,
                left=VariableReference("group"),
                right=Literal("A")
            )
        )
    """

    operator: BinaryOperator
    left: "Expression"
    right: "Expression"


@dataclass(frozen=True)
class VariableReference(Expression):
    """
    References a column of the survey data by name.

    This object does NOT validate that the column exists.
    A missing column is reported when the expression is evaluated.
    """

    name: str


@dataclass(frozen=True)
class Literal(Expression):
    """
    Represents a literal constant value.

    A value of None stands for a missing value.
    """

    value: Union[int, float, str, bool, None]


class UnaryOperator(Enum):
    NOT = "!"
    NEGATE = "-"
    IS_MISSING = "is_missing"


@dataclass(frozen=True)
class UnaryExpression(Expression):
    """
    Represents a unary operation.

    Example:
        !(y1 > 0)

    Becomes:
        UnaryExpression(
            operator=UnaryOperator.NOT,
            operand=BinaryExpression(...)
        )
    """

    operator: UnaryOperator
    operand: Expression


@dataclass(frozen=True)
class FunctionCall(Expression):
    """
    Calls a named function on its evaluated arguments.

    The available names are registered in surveytidy.evaluation.FUNCTIONS
    (mean, sum, min, max, median, sd, abs, round, log, sqrt, n, ...).

    Example:
        mean(y1)

    Becomes:
        FunctionCall(name="mean", args=(VariableReference("y1"),))
    """

    name: str
    args: Tuple[Expression, ...] = ()
