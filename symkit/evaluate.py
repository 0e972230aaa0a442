"""
Substitution and numeric evaluation of expression trees.

    x = E.var("x")
    evaluate(x**2 + 3*x + 2, x, 2)     # => Const(12)
    evaluate(x + E.var("y"), x, 1)     # => (+ 1 y), y is still free
    try_evaluate(1 / x, x, 0)          # => None, division by zero
"""

from typing import Optional, Union

from .expr import (
    Expr, Sym, Const, UnaryOp, BinaryOp, ExprLike, NumericType,
    promote, constant, variable_name,
)
from .rewriter import simplify_once

VarType = Union[Sym, str]


def evaluate(expr: ExprLike, var: VarType, value: NumericType) -> Expr:
    """
    Substitute value for var and fold the tree bottom-up.

    Each node gets a single simplify_once() pass as the recursion unwinds,
    not a full fixed point.

    Args:
        expr: The expression to evaluate
        var: Variable to substitute (Sym or name)
        value: Numeric value to substitute

    Returns:
        A Const when the expression is fully determined, otherwise the
        residual expression (e.g. other free symbols remain)

    Raises:
        ZeroDivisionError: If a division by zero is folded
    """
    replacement = constant(value)
    return _substitute(promote(expr), variable_name(var), replacement)


def _substitute(expr: Expr, name: str, replacement: Const) -> Expr:
    if isinstance(expr, Sym):
        return replacement if expr.name == name else expr
    if isinstance(expr, Const):
        return expr
    if isinstance(expr, UnaryOp):
        arg = _substitute(expr.arg, name, replacement)
        return simplify_once(UnaryOp(expr.op, arg))
    if isinstance(expr, BinaryOp):
        left = _substitute(expr.left, name, replacement)
        right = _substitute(expr.right, name, replacement)
        return simplify_once(BinaryOp(expr.op, left, right))
    raise TypeError(f"Not an expression: {expr!r}")


def try_evaluate(expr: ExprLike, var: VarType, value: NumericType) -> Optional[NumericType]:
    """
    Evaluate to a plain number, or None when that is not possible.

    None means the evaluation failed numerically (division by zero,
    overflow, a complex power) or left a symbolic residual. Sampling
    loops branch on this instead of catching exceptions themselves.
    """
    try:
        result = evaluate(expr, var, value)
    except (ArithmeticError, ValueError):
        return None
    if isinstance(result, Const):
        return result.value
    return None


def has_variable(expr: ExprLike, var: VarType) -> bool:
    """
    Check if a variable appears anywhere in an expression.

    Examples:
        has_variable(x**2 + 3*y, "x")   # => True
        has_variable(Const(5), "x")     # => False
    """
    expr = promote(expr)
    name = variable_name(var)
    if isinstance(expr, Sym):
        return expr.name == name
    if isinstance(expr, UnaryOp):
        return has_variable(expr.arg, name)
    if isinstance(expr, BinaryOp):
        return has_variable(expr.left, name) or has_variable(expr.right, name)
    return False


def denominator(expr: ExprLike) -> Optional[Expr]:
    """
    Extract the denominator of a top-level division.

    Returns None when expr is not a division.

    Example:
        denominator((x + 1) / (x - 1))   # => (- x 1)
    """
    expr = promote(expr)
    if isinstance(expr, BinaryOp) and expr.op == "/":
        return expr.right
    return None
