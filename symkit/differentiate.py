"""
Symbolic differentiation.

derivative() builds the raw derivative by structural recursion and then
runs it through simplify():

    x = E.var("x")
    derivative(x**2 + 3*x + 2, x)      # => (+ (* 2 x) 3)
    derivative(x**3, x, order=2)       # => (* 6 x)

The power rule assumes the exponent does not depend on the variable, so
derivative(x**x, x) is wrong (x * x^(x-1)). This is not detected.
"""

from typing import Union

from .expr import Expr, Sym, Const, UnaryOp, BinaryOp, ExprLike, promote, variable_name
from .rewriter import simplify


def derivative(expr: ExprLike, var: Union[Sym, str], order: int = 1) -> Expr:
    """
    Differentiate expr with respect to var and simplify the result.

    Args:
        expr: Expression to differentiate (raw numbers are promoted)
        var: Variable of differentiation (Sym or name)
        order: How many times to differentiate (default: 1)

    Returns:
        The simplified derivative

    Raises:
        ValueError: On an unknown operator tag or an order below 1
    """
    if order < 1:
        raise ValueError(f"Derivative order must be at least 1, got {order}")
    expr = promote(expr)
    name = variable_name(var)
    for _ in range(order):
        expr = simplify(_differentiate(expr, name))
    return expr


def _differentiate(expr: Expr, name: str) -> Expr:
    if isinstance(expr, Const):
        return Const(0)
    if isinstance(expr, Sym):
        return Const(1) if expr.name == name else Const(0)
    if isinstance(expr, BinaryOp):
        return _differentiate_binary(expr, name)
    if isinstance(expr, UnaryOp):
        return _differentiate_unary(expr, name)
    raise TypeError(f"Not an expression: {expr!r}")


def _differentiate_binary(expr: BinaryOp, name: str) -> Expr:
    op, f, g = expr.op, expr.left, expr.right

    if op == "+":
        return _differentiate(f, name) + _differentiate(g, name)
    elif op == "-":
        return _differentiate(f, name) - _differentiate(g, name)
    elif op == "*":
        # f'g + fg'
        return _differentiate(f, name) * g + f * _differentiate(g, name)
    elif op == "/":
        # (f'g - fg') / g^2
        return (_differentiate(f, name) * g - f * _differentiate(g, name)) / g ** 2
    elif op == "^":
        # n * f^(n-1) * f', n taken as constant
        return g * f ** (g - 1) * _differentiate(f, name)
    raise ValueError(f"Unknown binary operator: {op}")


def _differentiate_unary(expr: UnaryOp, name: str) -> Expr:
    op, f = expr.op, expr.arg

    if op == "-":
        return -_differentiate(f, name)
    elif op == "sqrt":
        # f' / (2 * sqrt(f))
        return _differentiate(f, name) / (Const(2) * UnaryOp("sqrt", f))
    elif op == "abs":
        # f' * f / |f|
        return _differentiate(f, name) * f / UnaryOp("abs", f)
    raise ValueError(f"Unknown unary operator: {op}")
