"""
Fixed-point simplifier for SymKit expression trees.

simplify_once() performs one bottom-up rewrite round; simplify() repeats
it until the tree stops changing (or a round limit is reached).

Rules, in priority order within a round (first match wins per node):

    unary          -(-x) => x, -(c) => -c, sqrt(c) => c', sqrt(x^2) => |x|,
                   |c| => c', |-x| => |x|
    distribute     a*(b+c) => a*b + a*c, (a+b)*c => a*c + b*c
                   (checked on the operands as written, before they are
                   simplified)
    fold-constants c1 op c2 => c
    coefficients   (k1*x)*k2 => (k1*k2)*x, k1*(k2*x) => (k1*k2)*x
    identities     x+0, x*1, x-0, x/1, x^1 => x; x*0 => 0; x^0 => 1
    sums           a^2 + 2*a*b + b^2 => (a+b)^2, then like terms:
                   2*x + 3*x + y => 5*x + y

Tracing:
    result, trace = simplify(expr, trace=True)
    print(trace.format("rules"))
"""

import logging
import math
import operator
from itertools import permutations
from typing import Callable, Dict, List, Optional, Tuple

from .expr import (
    Expr, Sym, Const, UnaryOp, BinaryOp, ExprLike, NumericType,
    promote, format_sexpr,
)

logger = logging.getLogger(__name__)

MAX_ROUNDS = 100

# Fold handler: receives the constant operand values, returns the folded value
FoldHandler = Callable[..., NumericType]
FoldFuncsType = Dict[str, FoldHandler]


# ============================================================
# Checked Fold Operations
# ============================================================

def checked_div(a: NumericType, b: NumericType) -> NumericType:
    """Division that refuses an exact zero divisor."""
    if b == 0:
        raise ZeroDivisionError("Division by zero")
    return a / b


def checked_pow(a: NumericType, b: NumericType) -> NumericType:
    """Real-valued power; negative bases with fractional exponents fail."""
    result = a ** b
    if isinstance(result, complex):
        raise ValueError(f"Complex result for {a} ^ {b}")
    return result


# ============================================================
# Standard Preludes for Constant Folding
# ============================================================

ARITHMETIC_PRELUDE: FoldFuncsType = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": checked_div,
    "^": checked_pow,
}

UNARY_PRELUDE: FoldFuncsType = {
    "-": operator.neg,
    "sqrt": math.sqrt,
    "abs": abs,
}


# ============================================================
# Tree Shape Helpers
# ============================================================

def is_op(expr: Expr, op: str) -> bool:
    """Check if expr is a BinaryOp with the given operator."""
    return isinstance(expr, BinaryOp) and expr.op == op


def is_const(expr: Expr, value: NumericType) -> bool:
    """Check if expr is a constant equal to value."""
    return isinstance(expr, Const) and expr.value == value


def flatten_addition(expr: Expr) -> List[Expr]:
    """Flatten a chain of additions into a list of terms, left to right."""
    if is_op(expr, "+"):
        return flatten_addition(expr.left) + flatten_addition(expr.right)
    return [expr]


def flatten_multiplication(expr: Expr) -> List[Expr]:
    """Flatten a chain of multiplications into a list of factors."""
    if is_op(expr, "*"):
        return flatten_multiplication(expr.left) + flatten_multiplication(expr.right)
    return [expr]


def coefficient_and_base(term: Expr) -> Tuple[NumericType, Expr]:
    """
    Split a term into its numeric coefficient and base.

    Examples:
        3 * x   -> (3, x)
        x       -> (1, x)
        x * 3   -> (1, x * 3)
    """
    if is_op(term, "*") and isinstance(term.left, Const):
        return term.left.value, term.right
    return 1, term


def squared_base(expr: Expr) -> Optional[Expr]:
    """Return a for a literal a^2, else None."""
    if is_op(expr, "^") and is_const(expr.right, 2):
        return expr.left
    return None


def double_product_factors(expr: Expr, a: Expr, b: Expr) -> Optional[Tuple[Expr, Expr]]:
    """
    Match expr against 2*a*b in any factor order.

    Returns the two non-2 factors in the order they appear in the
    product, or None when expr is not a double product of a and b.
    """
    if not is_op(expr, "*"):
        return None

    has_two = False
    remaining = []
    for factor in flatten_multiplication(expr):
        if is_const(factor, 2) and not has_two:
            has_two = True
        else:
            remaining.append(factor)

    if has_two and len(remaining) == 2:
        p, q = remaining
        if (p == a and q == b) or (p == b and q == a):
            return p, q
    return None


def recognize_perfect_square(expr: Expr) -> Optional[Expr]:
    """
    Recognize a^2 + 2*a*b + b^2 (terms in any order) and return (a+b)^2.

    The sum inside the square lists a and b in the order they appear in
    the 2*a*b term, so x^2 + 2*x*y + y^2 and y^2 + 2*x*y + x^2 both give
    (x + y)^2.
    """
    if not is_op(expr, "+"):
        return None

    terms = flatten_addition(expr)
    if len(terms) != 3:
        return None

    for i, j, k in permutations(range(3)):
        a = squared_base(terms[i])
        b = squared_base(terms[k])
        if a is None or b is None:
            continue
        factors = double_product_factors(terms[j], a, b)
        if factors is not None:
            p, q = factors
            return BinaryOp("^", BinaryOp("+", p, q), Const(2))
    return None


def combine_like_terms(expr: Expr, fired: Optional[List[str]] = None) -> Expr:
    """
    Sum coefficients of structurally equal terms: a*x + b*x => (a+b)*x.

    Terms are grouped by their base subtree (hash/equality of the tree),
    groups keep the order in which they first appear, zero groups are
    dropped and the survivors are folded back into a left-nested sum.
    """
    if not is_op(expr, "+"):
        return expr

    square = recognize_perfect_square(expr)
    if square is not None:
        _fire(fired, "perfect-square")
        return square

    groups: Dict[Expr, NumericType] = {}
    for term in flatten_addition(expr):
        coeff, base = coefficient_and_base(term)
        groups[base] = groups.get(base, 0) + coeff

    combined = []
    for base, coeff in groups.items():
        if coeff == 0:
            continue
        elif coeff == 1:
            combined.append(base)
        else:
            combined.append(BinaryOp("*", Const(coeff), base))

    if not combined:
        result = Const(0)
    else:
        result = combined[0]
        for term in combined[1:]:
            result = BinaryOp("+", result, term)

    if result == expr:
        return expr
    _fire(fired, "combine-like-terms")
    return result


# ============================================================
# One Rewrite Round
# ============================================================

def _fire(fired: Optional[List[str]], name: str) -> None:
    if fired is not None:
        fired.append(name)


def simplify_once(expr: Expr, fired: Optional[List[str]] = None) -> Expr:
    """
    Apply one bottom-up round of rewrite rules.

    Args:
        expr: Expression to rewrite
        fired: Optional list that receives the name of every rule applied

    Returns:
        The rewritten expression (the same object when nothing applied)

    Raises:
        ZeroDivisionError: When folding a division by the constant 0
    """
    if isinstance(expr, (Sym, Const)):
        return expr
    if isinstance(expr, UnaryOp):
        return _simplify_unary(expr, fired)
    if isinstance(expr, BinaryOp):
        return _simplify_binary(expr, fired)
    raise TypeError(f"Not an expression: {expr!r}")


def _simplify_unary(expr: UnaryOp, fired: Optional[List[str]]) -> Expr:
    op = expr.op
    arg = simplify_once(expr.arg, fired)

    if op == "-":
        if isinstance(arg, UnaryOp) and arg.op == "-":
            _fire(fired, "double-negation")
            return arg.arg
        if isinstance(arg, Const):
            _fire(fired, "fold-negate")
            return Const(UNARY_PRELUDE["-"](arg.value))

    elif op == "sqrt":
        if isinstance(arg, Const) and arg.value >= 0:
            _fire(fired, "fold-sqrt")
            return Const(UNARY_PRELUDE["sqrt"](arg.value))
        base = squared_base(arg)
        if base is not None:
            _fire(fired, "sqrt-square")
            return UnaryOp("abs", base)

    elif op == "abs":
        if isinstance(arg, Const):
            _fire(fired, "fold-abs")
            return Const(UNARY_PRELUDE["abs"](arg.value))
        if isinstance(arg, UnaryOp) and arg.op == "-":
            _fire(fired, "abs-negation")
            return UnaryOp("abs", arg.arg)

    if arg is expr.arg:
        return expr
    return UnaryOp(op, arg)


def _simplify_binary(expr: BinaryOp, fired: Optional[List[str]]) -> Expr:
    op = expr.op

    # Distribution looks at the operands as written: simplifying them
    # first can fold away the sum it needs to see.
    if op == "*" and is_op(expr.right, "+"):
        _fire(fired, "distribute-left")
        a, sum_ = expr.left, expr.right
        return simplify_once(BinaryOp("+", BinaryOp("*", a, sum_.left),
                                      BinaryOp("*", a, sum_.right)), fired)
    if op == "*" and is_op(expr.left, "+"):
        _fire(fired, "distribute-right")
        sum_, c = expr.left, expr.right
        return simplify_once(BinaryOp("+", BinaryOp("*", sum_.left, c),
                                      BinaryOp("*", sum_.right, c)), fired)

    left = simplify_once(expr.left, fired)
    right = simplify_once(expr.right, fired)

    if isinstance(left, Const) and isinstance(right, Const) and op in ARITHMETIC_PRELUDE:
        _fire(fired, "fold-constants")
        return Const(ARITHMETIC_PRELUDE[op](left.value, right.value))

    if op == "*":
        # (k1 * x) * k2 => (k1 * k2) * x
        if is_op(left, "*") and isinstance(left.left, Const) and isinstance(right, Const):
            _fire(fired, "collect-coefficient")
            coeff = Const(left.left.value * right.value)
            return simplify_once(BinaryOp("*", coeff, left.right), fired)
        # k1 * (k2 * x) => (k1 * k2) * x
        if isinstance(left, Const) and is_op(right, "*") and isinstance(right.left, Const):
            _fire(fired, "collect-coefficient")
            coeff = Const(left.value * right.left.value)
            return simplify_once(BinaryOp("*", coeff, right.right), fired)

    identity = _apply_identity(op, left, right)
    if identity is not None:
        name, reduced = identity
        _fire(fired, name)
        return reduced

    if left is expr.left and right is expr.right:
        result = expr
    else:
        result = BinaryOp(op, left, right)

    if op == "+":
        return combine_like_terms(result, fired)
    return result


def _apply_identity(op: str, left: Expr, right: Expr) -> Optional[Tuple[str, Expr]]:
    """Return (rule name, reduced expression) for an identity law, or None."""
    if op == "+":
        if is_const(left, 0):
            return "add-zero", right
        if is_const(right, 0):
            return "add-zero", left
    elif op == "*":
        if is_const(left, 0) or is_const(right, 0):
            return "mul-zero", Const(0)
        if is_const(left, 1):
            return "mul-one", right
        if is_const(right, 1):
            return "mul-one", left
    elif op == "-":
        if is_const(right, 0):
            return "sub-zero", left
    elif op == "/":
        if is_const(right, 1):
            return "div-one", left
    elif op == "^":
        if is_const(right, 0):
            return "pow-zero", Const(1)
        if is_const(right, 1):
            return "pow-one", left
    return None


# ============================================================
# Rewrite Traces
# ============================================================

class RewriteStep:
    """One simplification round: the rules that fired and its effect."""

    def __init__(self, round_index: int, rules: List[str],
                 before: Expr, after: Expr):
        self.round_index = round_index
        self.rules = rules
        self.before = before
        self.after = after

    def __repr__(self) -> str:
        rules = ", ".join(self.rules) or "no rules"
        return (f"round {self.round_index} [{rules}]: "
                f"{format_sexpr(self.before)} → {format_sexpr(self.after)}")

    def to_dict(self) -> Dict:
        """Convert step to dictionary for serialization."""
        return {
            "round": self.round_index,
            "rules": list(self.rules),
            "before": format_sexpr(self.before),
            "after": format_sexpr(self.after),
        }


class RewriteTrace:
    """
    A trace of the rounds simplify() performed.

    Provides multiple formatting options:
        - Default repr: verbose multi-line format
        - format("compact"): single line showing the rule chain
        - format("rules"): just the rule names applied
        - format("chain"): the expression after every round
        - to_dict(): JSON-serializable dictionary
    """

    def __init__(self):
        self.steps: List[RewriteStep] = []
        self.initial: Optional[Expr] = None
        self.final: Optional[Expr] = None

    def add_step(self, step: RewriteStep):
        self.steps.append(step)

    def format(self, style: str = "verbose") -> str:
        """
        Format the trace in different styles.

        Args:
            style: One of "verbose", "compact", "rules", "chain"

        Returns:
            Formatted string representation of the trace.
        """
        if style == "compact":
            return (f"{format_sexpr(self.initial)} --[{', '.join(self.rules_applied())}]--> "
                    f"{format_sexpr(self.final)}")

        elif style == "rules":
            rules = self.rules_applied()
            return " -> ".join(rules) if rules else "(no rules applied)"

        elif style == "chain":
            parts = [format_sexpr(self.initial)]
            for step in self.steps:
                parts.append(f"  --({', '.join(step.rules)})-->")
                parts.append(format_sexpr(step.after))
            return "\n".join(parts)

        elif style == "verbose":
            return repr(self)

        raise ValueError(f"Unknown trace style: {style}. "
                         f"Valid options: verbose, compact, rules, chain")

    def __repr__(self) -> str:
        lines = [f"Initial: {format_sexpr(self.initial)}"]
        for step in self.steps:
            lines.append(f"  {step}")
        lines.append(f"Final: {format_sexpr(self.final)}")
        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self):
        """Iterate over rewrite steps."""
        return iter(self.steps)

    def __bool__(self) -> bool:
        """True if any rewriting was done."""
        return len(self.steps) > 0

    def to_dict(self) -> Dict:
        """Convert trace to dictionary for JSON serialization."""
        return {
            "initial": format_sexpr(self.initial),
            "final": format_sexpr(self.final),
            "steps": [step.to_dict() for step in self.steps],
            "round_count": len(self.steps),
        }

    def rule_counts(self) -> Dict[str, int]:
        """Count how many times each rule was applied."""
        counts: Dict[str, int] = {}
        for name in self.rules_applied():
            counts[name] = counts.get(name, 0) + 1
        return counts

    def rules_applied(self) -> List[str]:
        """Get list of rule names in order of application."""
        return [name for step in self.steps for name in step.rules]

    def summary(self) -> str:
        """Get a brief summary of the rewriting."""
        if not self.steps:
            return "No rewriting performed"
        counts = self.rule_counts()
        most_used = max(counts.items(), key=lambda x: x[1])
        return (f"{len(self.steps)} rounds using {len(counts)} unique rules. "
                f"Most used: {most_used[0]} ({most_used[1]}x)")


# ============================================================
# Fixed-point Simplification
# ============================================================

def simplify(expr: ExprLike, max_rounds: int = MAX_ROUNDS, trace: bool = False):
    """
    Simplify an expression to a fixed point of simplify_once().

    Args:
        expr: Expression to simplify (raw numbers are promoted)
        max_rounds: Maximum number of rewrite rounds (default: 100).
            When exhausted, the last state is returned.
        trace: If True, return (result, trace) tuple

    Returns:
        Simplified expression, or (expression, RewriteTrace) if trace=True

    Raises:
        ZeroDivisionError: When a division by the constant 0 is folded

    Examples:
        simplify(x + 0)                      # => x
        simplify(x + x)                      # => (* 2 x)
        simplify(x**2 + 2*x*y + y**2)        # => (^ (+ x y) 2)
    """
    expr = promote(expr)
    trace_obj = RewriteTrace() if trace else None
    if trace_obj is not None:
        trace_obj.initial = expr

    for round_index in range(1, max_rounds + 1):
        fired: Optional[List[str]] = [] if trace else None
        result = simplify_once(expr, fired)
        if result is expr or result == expr:
            break
        if trace_obj is not None:
            trace_obj.add_step(RewriteStep(round_index, fired, expr, result))
        expr = result
    else:
        logger.warning("simplify stopped after %d rounds without reaching a fixed point: %s",
                       max_rounds, format_sexpr(expr))

    if trace_obj is not None:
        trace_obj.final = expr
        return expr, trace_obj
    return expr
