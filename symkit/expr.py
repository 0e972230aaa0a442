"""
Expression trees for SymKit.

Every expression is built from four node types:

    Sym("x")                      - a named symbol
    Const(2)                      - a numeric constant
    UnaryOp("-", x)               - negation, sqrt, abs
    BinaryOp("+", x, Const(1))    - +, -, *, /, ^

Nodes are immutable and compare structurally: two trees are equal when
they have the same node types, the same operator tags and equal leaves.
Because of that they can be used as dictionary keys, and == cannot be
used to build an equation.

Construction:
    x, y = E.vars("x", "y")
    expr = x**2 + 3*x + 2            # raw numbers become Const nodes
    expr = E.op("+", x, E.op("*", 2, y))
    expr = E("(+ x (* 2 y))")       # s-expression syntax
"""

import math
from typing import Tuple, Union

# Type aliases
NumericType = Union[int, float]
ExprLike = Union["Expr", int, float, str]

UNARY_OPS = ("-", "sqrt", "abs")
BINARY_OPS = ("+", "-", "*", "/", "^")


# ============================================================
# Expression Nodes
# ============================================================

class Expr:
    """
    Base class of all expression nodes.

    Provides the arithmetic operators, so trees can be written with
    ordinary Python syntax:

        x + 1      -> BinaryOp("+", x, Const(1))
        2 * x      -> BinaryOp("*", Const(2), x)
        x ** 2     -> BinaryOp("^", x, Const(2))
        -x         -> UnaryOp("-", x)
        abs(x)     -> UnaryOp("abs", x)
    """

    __slots__ = ()

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} nodes are immutable")

    def __delattr__(self, name):
        raise AttributeError(f"{type(self).__name__} nodes are immutable")

    def __add__(self, other):
        return binary("+", self, other)

    def __radd__(self, other):
        return binary("+", other, self)

    def __sub__(self, other):
        return binary("-", self, other)

    def __rsub__(self, other):
        return binary("-", other, self)

    def __mul__(self, other):
        return binary("*", self, other)

    def __rmul__(self, other):
        return binary("*", other, self)

    def __truediv__(self, other):
        return binary("/", self, other)

    def __rtruediv__(self, other):
        return binary("/", other, self)

    def __pow__(self, other):
        return binary("^", self, other)

    def __rpow__(self, other):
        return binary("^", other, self)

    def __neg__(self):
        return UnaryOp("-", self)

    def __abs__(self):
        return UnaryOp("abs", self)

    def __repr__(self) -> str:
        return format_sexpr(self)


class Sym(Expr):
    """A named symbol. Two symbols are equal iff their names match."""

    __slots__ = ("name",)

    def __init__(self, name: str):
        object.__setattr__(self, "name", name)

    def __eq__(self, other):
        if not isinstance(other, Expr):
            return NotImplemented
        return isinstance(other, Sym) and self.name == other.name

    def __hash__(self):
        return hash(("sym", self.name))


class Const(Expr):
    """
    A numeric constant.

    Constants compare by numeric value, so Const(2) == Const(2.0).
    NaN constants compare equal to each other, which keeps structural
    equality reflexive for trees that contain them.
    """

    __slots__ = ("value",)

    def __init__(self, value: NumericType):
        object.__setattr__(self, "value", value)

    def is_nan(self) -> bool:
        return isinstance(self.value, float) and math.isnan(self.value)

    def __eq__(self, other):
        if not isinstance(other, Expr):
            return NotImplemented
        if not isinstance(other, Const):
            return False
        if self.is_nan() or other.is_nan():
            return self.is_nan() and other.is_nan()
        return self.value == other.value

    def __hash__(self):
        if self.is_nan():
            return hash(("const", "nan"))
        return hash(("const", self.value))


class UnaryOp(Expr):
    """A unary operation: op is one of "-", "sqrt", "abs"."""

    __slots__ = ("op", "arg")

    def __init__(self, op: str, arg: Expr):
        object.__setattr__(self, "op", op)
        object.__setattr__(self, "arg", arg)

    def __eq__(self, other):
        if not isinstance(other, Expr):
            return NotImplemented
        return (isinstance(other, UnaryOp)
                and self.op == other.op
                and self.arg == other.arg)

    def __hash__(self):
        return hash(("unary", self.op, self.arg))


class BinaryOp(Expr):
    """A binary operation: op is one of "+", "-", "*", "/", "^"."""

    __slots__ = ("op", "left", "right")

    def __init__(self, op: str, left: Expr, right: Expr):
        object.__setattr__(self, "op", op)
        object.__setattr__(self, "left", left)
        object.__setattr__(self, "right", right)

    def __eq__(self, other):
        if not isinstance(other, Expr):
            return NotImplemented
        return (isinstance(other, BinaryOp)
                and self.op == other.op
                and self.left == other.left
                and self.right == other.right)

    def __hash__(self):
        return hash(("binary", self.op, self.left, self.right))


# ============================================================
# Smart Constructors
# ============================================================

def promote(value: ExprLike) -> Expr:
    """
    Turn a raw operand into an expression node.

    Numbers become Const nodes and strings become Sym nodes; expressions
    are returned unchanged.

    Raises:
        TypeError: If value is not a number, string or expression
    """
    if isinstance(value, Expr):
        return value
    if isinstance(value, str):
        return symbol(value)
    return constant(value)


def symbol(name: str) -> Sym:
    """Create a symbol."""
    if not isinstance(name, str):
        raise TypeError(f"Symbol name must be a string, got {name!r}")
    if not name:
        raise ValueError("Symbol name must not be empty")
    return Sym(name)


def constant(value: NumericType) -> Const:
    """Create a constant. Booleans are rejected."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Cannot use {value!r} as a numeric constant")
    return Const(value)


def unary(op: str, operand: ExprLike) -> UnaryOp:
    """Build a UnaryOp after checking the operator tag."""
    if op not in UNARY_OPS:
        raise ValueError(f"Unknown unary operator: {op}")
    return UnaryOp(op, promote(operand))


def binary(op: str, left: ExprLike, right: ExprLike) -> BinaryOp:
    """Build a BinaryOp after checking the operator tag."""
    if op not in BINARY_OPS:
        raise ValueError(f"Unknown binary operator: {op}")
    return BinaryOp(op, promote(left), promote(right))


def sqrt(operand: ExprLike) -> UnaryOp:
    """Symbolic square root: sqrt(x) -> UnaryOp("sqrt", x)."""
    return unary("sqrt", operand)


def variable_name(var: Union[Sym, str]) -> str:
    """Name of a variable given either as a Sym or as a plain string."""
    if isinstance(var, Sym):
        return var.name
    if isinstance(var, str):
        return var
    raise TypeError(f"Expected a symbol or a symbol name, got {var!r}")


# ============================================================
# Expression Builder
# ============================================================

class _ExprBuilder:
    """
    Expression builder for SymKit.

    Examples:
        from symkit import E

        # Parse s-expression string
        expr = E("(+ x (* 2 y))")

        # Build programmatically with E.op()
        expr = E.op("+", "x", E.op("*", 2, "y"))

        # Create symbols
        x, y = E.vars("x", "y")
        expr = E.op("+", x, E.op("*", 2, y))
    """

    def __call__(self, s: str) -> Expr:
        """
        Parse an s-expression string.

        Examples:
            E("(+ x 1)")        -> BinaryOp("+", Sym("x"), Const(1))
            E("(sqrt (^ x 2))") -> UnaryOp("sqrt", BinaryOp("^", ...))
        """
        return parse_sexpr(s)

    def op(self, name: str, *args) -> Expr:
        """
        Build a node from an operator and one or two operands.

        "-" with one operand is negation, with two it is subtraction.

        Examples:
            E.op("+", "x", 1)   -> (+ x 1)
            E.op("-", "x")      -> (- x)
            E.op("sqrt", "x")   -> (sqrt x)
        """
        if len(args) == 1:
            return unary(name, args[0])
        if len(args) == 2:
            return binary(name, args[0], args[1])
        raise ValueError(
            f"Operator '{name}' takes one or two operands, got {len(args)}")

    def var(self, name: str) -> Sym:
        """
        Create a symbol.

        Example:
            E.var("x") -> Sym("x")
        """
        return symbol(name)

    def vars(self, *names: str) -> Tuple[Sym, ...]:
        """
        Create multiple symbols for unpacking.

        Example:
            x, y, z = E.vars("x", "y", "z")
        """
        return tuple(symbol(name) for name in names)

    def const(self, value: NumericType) -> Const:
        """
        Create a constant.

        Example:
            E.const(5) -> Const(5)
        """
        return constant(value)

    def __repr__(self) -> str:
        return "E (expression builder)"


# Singleton instance
E = _ExprBuilder()


# ============================================================
# S-expression Reading and Writing
# ============================================================

def parse_sexpr(s: str) -> Expr:
    """
    Parse an s-expression string into an expression tree.

    Examples:
        "(+ x 1)"           -> BinaryOp("+", Sym("x"), Const(1))
        "(- x)"             -> UnaryOp("-", Sym("x"))
        "(/ 1 (- x 2))"     -> BinaryOp("/", Const(1), BinaryOp("-", ...))

    Raises:
        ValueError: On malformed text, unknown operators or wrong arity
    """
    return _build(_read(s.strip()))


def _read(s: str):
    """Split an s-expression into nested lists of atom strings."""
    if not s:
        raise ValueError("Empty expression")

    if not s.startswith('('):
        if any(c in s for c in '() \t\n'):
            raise ValueError(f"Malformed atom: {s!r}")
        return s

    depth = 0
    parts = []
    current = ''
    i = 1  # Skip opening paren
    closed = False

    while i < len(s):
        c = s[i]
        if c == '(':
            depth += 1
            current += c
        elif c == ')':
            if depth == 0:
                if current.strip():
                    parts.append(_read(current.strip()))
                closed = True
                break
            depth -= 1
            current += c
        elif c in ' \t\n' and depth == 0:
            if current.strip():
                parts.append(_read(current.strip()))
            current = ''
        else:
            current += c
        i += 1

    if not closed:
        raise ValueError(f"Unbalanced parentheses in {s!r}")
    trailing = s[i + 1:].strip()
    if trailing:
        raise ValueError(f"Unexpected text after expression: {trailing!r}")
    return parts


def _build(tree) -> Expr:
    if isinstance(tree, str):
        return _atom(tree)
    if not tree:
        raise ValueError("Empty list in expression")
    op = tree[0]
    if not isinstance(op, str):
        raise ValueError("Operator position must hold a name")
    return E.op(op, *[_build(arg) for arg in tree[1:]])


def _atom(token: str) -> Expr:
    # Try number first
    try:
        return Const(int(token))
    except ValueError:
        pass
    # Names such as inf and nan stay symbols
    if token.lstrip("+-")[:1].isalpha():
        return Sym(token)
    try:
        return Const(float(token))
    except ValueError:
        return Sym(token)


def format_sexpr(expr: Expr) -> str:
    """
    Format an expression as an s-expression string.

    Examples:
        x + 1         -> "(+ x 1)"
        -x            -> "(- x)"
        sqrt(x ** 2)  -> "(sqrt (^ x 2))"
    """
    if isinstance(expr, Sym):
        return expr.name
    if isinstance(expr, Const):
        return str(expr.value)
    if isinstance(expr, UnaryOp):
        return f"({expr.op} {format_sexpr(expr.arg)})"
    if isinstance(expr, BinaryOp):
        return f"({expr.op} {format_sexpr(expr.left)} {format_sexpr(expr.right)})"
    return str(expr)
