"""
SymKit - symbolic algebra over small expression trees

Simplification, differentiation, evaluation and numeric limit analysis
for single-variable expressions built from +, -, *, /, ^, negation,
sqrt and abs.

Quick Start:
    from symkit import E, simplify, derivative, evaluate

    x, y = E.vars("x", "y")

    simplify(x + x)                        # => (* 2 x)
    simplify(x**2 + 2*x*y + y**2)          # => (^ (+ x y) 2)
    derivative(x**2 + 3*x + 2, x)          # => (+ (* 2 x) 3)
    evaluate(x**2 + 3*x + 2, x, 2)         # => 12

Limits and Singularities:
    from symkit import limit, check_division_limits, describe_division_behavior

    limit(1 / x, x, 0)                     # => (LimitValue(-inf), LimitValue(+inf))
    check_division_limits((x**2 - 1) / (x - 1), x).singularities
    describe_division_behavior(1 / x, x)
    # => "At x=0: Discontinuous - Left limit: -∞, Right limit: +∞"

S-expression Syntax:
    E("(+ x (* 2 y))")                     # parse
    format_sexpr(x + 1)                    # => "(+ x 1)"
"""

__version__ = "0.1.0"

# Expression model
from .expr import (
    Expr,
    Sym,
    Const,
    UnaryOp,
    BinaryOp,
    NumericType,
    ExprLike,
    E,
    symbol,
    constant,
    unary,
    binary,
    promote,
    sqrt,
    parse_sexpr,
    format_sexpr,
)

# Simplifier
from .rewriter import (
    simplify,
    simplify_once,
    RewriteStep,
    RewriteTrace,
    FoldHandler,
    FoldFuncsType,
    ARITHMETIC_PRELUDE,
    UNARY_PRELUDE,
)

# Calculus
from .differentiate import derivative
from .evaluate import evaluate, try_evaluate, has_variable, denominator
from .limits import (
    limit,
    find_singularities,
    check_division_limits,
    describe_division_behavior,
    LimitValue,
    POSITIVE_INFINITY,
    NEGATIVE_INFINITY,
    UNDEFINED,
    NOT_A_NUMBER,
    SingularityRecord,
    DivisionAnalysis,
)

# Public API
__all__ = [
    # Version
    "__version__",
    # Expression nodes
    "Expr",
    "Sym",
    "Const",
    "UnaryOp",
    "BinaryOp",
    # Types
    "NumericType",
    "ExprLike",
    "FoldHandler",
    "FoldFuncsType",
    # Construction
    "E",
    "symbol",
    "constant",
    "unary",
    "binary",
    "promote",
    "sqrt",
    "parse_sexpr",
    "format_sexpr",
    # Simplification
    "simplify",
    "simplify_once",
    "RewriteStep",
    "RewriteTrace",
    "ARITHMETIC_PRELUDE",
    "UNARY_PRELUDE",
    # Calculus
    "derivative",
    "evaluate",
    "try_evaluate",
    "has_variable",
    "denominator",
    # Limits
    "limit",
    "find_singularities",
    "check_division_limits",
    "describe_division_behavior",
    "LimitValue",
    "POSITIVE_INFINITY",
    "NEGATIVE_INFINITY",
    "UNDEFINED",
    "NOT_A_NUMBER",
    "SingularityRecord",
    "DivisionAnalysis",
]
