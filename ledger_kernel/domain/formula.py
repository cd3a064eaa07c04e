"""
Restricted arithmetic for auto-journal amount formulas.

Amount formulas in a pattern must use a fixed operator set.  This module
parses them with ``ast`` and evaluates the tree itself over ``Decimal``,
rejecting anything that could execute arbitrary code.

Allowed:
  - Names: looked up in the caller's parameter mapping
  - Literals: non-negative integer or decimal numbers in plain notation
    (``12``, ``0.08``); hex, octal, binary and exponent forms are refused
  - Binary: +, -, *, /
  - Unary: - (and +)
  - Parentheses

Rejected:
  - calls, attribute access, subscripts, comparisons, strings, booleans,
    ``**``, ``%``, ``//``, lambdas, anything else
"""

from __future__ import annotations

import ast
import re
from decimal import (
    ROUND_HALF_UP,
    Decimal,
    InvalidOperation,
    Overflow,
    localcontext,
)
from typing import Mapping

from ledger_kernel.exceptions import FormulaEvaluationError

_BINARY_OPERATORS = (ast.Add, ast.Sub, ast.Mult, ast.Div)
_UNARY_OPERATORS = (ast.USub, ast.UAdd)

_PLACEHOLDER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")

# Digits with an optional fraction; no hex, octal, binary, exponent or "_"
_DECIMAL_LITERAL = re.compile(r"(\d+(\.\d*)?|\.\d+)\Z")

# Significant digits carried through evaluation and rounding
_PRECISION = 28


def parse_formula(formula: str) -> ast.Expression:
    """Parse and validate a formula; raise FormulaEvaluationError if disallowed."""
    if not formula or not formula.strip():
        raise FormulaEvaluationError(formula, "unsupported_syntax", "Formula is empty")
    try:
        tree = ast.parse(formula.strip(), mode="eval")
    except SyntaxError as e:
        raise FormulaEvaluationError(
            formula, "unsupported_syntax", f"Syntax error: {e.msg}",
        ) from e
    _validate_node(tree.body, formula)
    return tree


def _validate_node(node: ast.AST, formula: str) -> None:
    """Recursively validate an AST node."""
    if isinstance(node, ast.BinOp):
        if not isinstance(node.op, _BINARY_OPERATORS):
            raise FormulaEvaluationError(
                formula, "unsupported_syntax",
                f"Disallowed binary operator: {type(node.op).__name__}",
            )
        _validate_node(node.left, formula)
        _validate_node(node.right, formula)

    elif isinstance(node, ast.UnaryOp):
        if not isinstance(node.op, _UNARY_OPERATORS):
            raise FormulaEvaluationError(
                formula, "unsupported_syntax",
                f"Disallowed unary operator: {type(node.op).__name__}",
            )
        _validate_node(node.operand, formula)

    elif isinstance(node, ast.Name):
        pass

    elif isinstance(node, ast.Constant):
        # bool is an int subclass; True/False are not numbers here
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            raise FormulaEvaluationError(
                formula, "unsupported_syntax",
                f"Disallowed constant: {node.value!r}",
            )
        source = ast.get_source_segment(formula.strip(), node)
        if source is None or not _DECIMAL_LITERAL.match(source):
            raise FormulaEvaluationError(
                formula, "unsupported_syntax",
                f"Number literal must be plain decimal notation: {source!r}",
            )

    else:
        raise FormulaEvaluationError(
            formula, "unsupported_syntax",
            f"Disallowed expression: {type(node).__name__}",
        )


def formula_parameters(formula: str) -> frozenset[str]:
    """Names referenced by a (valid) formula."""
    tree = parse_formula(formula)
    return frozenset(
        node.id for node in ast.walk(tree) if isinstance(node, ast.Name)
    )


def _to_decimal(name: str, value: object, formula: str) -> Decimal:
    if isinstance(value, (bool, float)):
        raise FormulaEvaluationError(
            formula, "invalid_parameter",
            f"Parameter {name!r} must be a Decimal, int or str, got {type(value).__name__}",
        )
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise FormulaEvaluationError(
            formula, "invalid_parameter", f"Parameter {name!r} is not a number: {value!r}",
        ) from e
    if not number.is_finite():
        raise FormulaEvaluationError(
            formula, "invalid_parameter", f"Parameter {name!r} is not finite: {value!r}",
        )
    return number


class _Evaluator:
    def __init__(self, formula: str, parameters: Mapping[str, object]):
        self.formula = formula
        self.parameters = parameters

    def visit(self, node: ast.AST) -> Decimal:
        if isinstance(node, ast.BinOp):
            left = self.visit(node.left)
            right = self.visit(node.right)
            if isinstance(node.op, ast.Add):
                return left + right
            if isinstance(node.op, ast.Sub):
                return left - right
            if isinstance(node.op, ast.Mult):
                return left * right
            if right == 0:
                raise FormulaEvaluationError(
                    self.formula, "division_by_zero", "Division by zero",
                )
            return left / right

        if isinstance(node, ast.UnaryOp):
            operand = self.visit(node.operand)
            return -operand if isinstance(node.op, ast.USub) else operand

        if isinstance(node, ast.Name):
            if node.id not in self.parameters:
                raise FormulaEvaluationError(
                    self.formula, "unknown_parameter",
                    f"Parameter {node.id!r} not supplied",
                )
            return _to_decimal(node.id, self.parameters[node.id], self.formula)

        if isinstance(node, ast.Constant):
            # Re-read the literal text so 0.1 stays exactly 0.1
            return Decimal(ast.get_source_segment(self.formula.strip(), node))

        raise FormulaEvaluationError(self.formula, "unsupported_syntax")


def evaluate_formula(
    formula: str,
    parameters: Mapping[str, object],
    decimal_places: int = 0,
) -> Decimal:
    """
    Evaluate ``formula`` against ``parameters`` and round the result HALF_UP.

    Arithmetic runs in a private decimal context, so the caller's context
    never changes the result.

    Raises:
        FormulaEvaluationError: reason ``unsupported_syntax``,
            ``unknown_parameter``, ``invalid_parameter``, ``division_by_zero``
            or ``arithmetic_error`` (the rounded result needs more than
            ``_PRECISION`` significant digits, or overflows).
    """
    tree = parse_formula(formula)
    try:
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            ctx.traps[InvalidOperation] = True
            ctx.traps[Overflow] = True
            result = _Evaluator(formula, parameters).visit(tree.body)
            return result.quantize(Decimal(1).scaleb(-decimal_places), rounding=ROUND_HALF_UP)
    except (InvalidOperation, Overflow) as e:
        raise FormulaEvaluationError(
            formula, "arithmetic_error", f"Result of {formula!r} is out of range",
        ) from e


def render_template(template: str | None, parameters: Mapping[str, object]) -> str | None:
    """Substitute ``{name}`` placeholders; an unknown name is an error."""
    if template is None:
        return None

    def substitute(match: re.Match) -> str:
        name = match.group(1)
        if name not in parameters:
            raise FormulaEvaluationError(
                template, "unknown_parameter",
                f"Template placeholder {{{name}}} has no parameter",
            )
        return str(parameters[name])

    return _PLACEHOLDER.sub(substitute, template)
