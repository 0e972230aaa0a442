"""
Numeric limits and division-by-zero analysis.

Limits are estimated by sampling the expression on a geometric sequence
of points approaching the target (point + step / 2**i) and classifying
the last two samples. This is a heuristic, not a proof of convergence.

    x = E.var("x")
    limit(1 / x, x, 0, "left")            # => LimitValue(-inf)
    limit(1 / x, x, 0)                    # => (LimitValue(-inf), LimitValue(+inf))
    check_division_limits(1 / (x**2 - 1), x).singularities
    describe_division_behavior(1 / x, x)
    # => "At x=0: Discontinuous - Left limit: -∞, Right limit: +∞"

Candidate singularities are only looked for at the integers -10..10; a
zero of a denominator anywhere else is never reported.
"""

import logging
import math
from typing import Dict, List, Optional, Tuple, Union

from .expr import Expr, Sym, Const, UnaryOp, BinaryOp, ExprLike, NumericType, promote, format_sexpr, variable_name
from .evaluate import try_evaluate

logger = logging.getLogger(__name__)

MAX_SAMPLES = 50
DIVERGENCE_THRESHOLD = 1e10
ZERO_TOLERANCE = 1e-10
PROBE_POINTS = range(-10, 11)
DEFAULT_EPSILON = 1e-6

DIRECTIONS = ("left", "right", "both")

VarType = Union[Sym, str]


# ============================================================
# Limit Values
# ============================================================

class LimitValue:
    """
    Outcome of a one-sided limit.

    kind is one of "+inf", "-inf", "undefined", "nan" or "finite"; finite
    limits carry their value as a Const. Use the module constants
    POSITIVE_INFINITY, NEGATIVE_INFINITY, UNDEFINED and NOT_A_NUMBER, and
    LimitValue.finite(value) for finite results.
    """

    __slots__ = ("kind", "value")

    KINDS = ("+inf", "-inf", "undefined", "nan", "finite")

    def __init__(self, kind: str, value: Optional[Const] = None):
        if kind not in self.KINDS:
            raise ValueError(f"Unknown limit kind: {kind}")
        if (kind == "finite") != (value is not None):
            raise ValueError("Only finite limits carry a value")
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "value", value)

    def __setattr__(self, name, value):
        raise AttributeError("LimitValue is immutable")

    def __delattr__(self, name):
        raise AttributeError("LimitValue is immutable")

    @classmethod
    def finite(cls, value: Union[Const, NumericType]) -> "LimitValue":
        """Build a finite limit from a Const or a plain number."""
        value = promote(value)
        if not isinstance(value, Const):
            raise TypeError(f"Finite limit needs a constant, got {value!r}")
        return cls("finite", value)

    @property
    def is_finite(self) -> bool:
        return self.kind == "finite"

    @property
    def is_infinite(self) -> bool:
        return self.kind in ("+inf", "-inf")

    def format(self) -> str:
        """Human-readable form: +∞, -∞, undefined, NaN or the value to 4 digits."""
        if self.kind == "+inf":
            return "+∞"
        if self.kind == "-inf":
            return "-∞"
        if self.kind == "undefined":
            return "undefined"
        if self.kind == "nan":
            return "NaN"
        return str(round(self.value.value, 4))

    def to_dict(self) -> Dict:
        return {
            "kind": self.kind,
            "value": self.value.value if self.value is not None else None,
        }

    def __eq__(self, other):
        if not isinstance(other, LimitValue):
            return NotImplemented
        return self.kind == other.kind and self.value == other.value

    def __hash__(self):
        return hash((self.kind, self.value))

    def __repr__(self) -> str:
        if self.kind == "finite":
            return f"LimitValue(finite {format_sexpr(self.value)})"
        return f"LimitValue({self.kind})"


POSITIVE_INFINITY = LimitValue("+inf")
NEGATIVE_INFINITY = LimitValue("-inf")
UNDEFINED = LimitValue("undefined")
NOT_A_NUMBER = LimitValue("nan")


# ============================================================
# Directional Limits
# ============================================================

def limit(
    expr: ExprLike,
    var: VarType,
    point: NumericType,
    direction: str = "both",
    epsilon: float = DEFAULT_EPSILON,
) -> Union[LimitValue, Tuple[LimitValue, LimitValue]]:
    """
    Estimate the limit of expr as var approaches point.

    Args:
        expr: The expression to evaluate
        var: The variable approaching the point (Sym or name)
        point: The point being approached
        direction: "left", "right", or "both" (default)
        epsilon: Initial distance from the point

    Returns:
        A LimitValue, or a (left, right) tuple for direction="both".
        UNDEFINED when any sample cannot be evaluated to a number.

    Raises:
        ValueError: On an unknown direction
    """
    if direction == "both":
        return (limit(expr, var, point, "left", epsilon),
                limit(expr, var, point, "right", epsilon))
    if direction not in DIRECTIONS:
        raise ValueError(f"Unknown direction: {direction}. "
                         f"Valid options: left, right, both")

    expr = promote(expr)
    step = -epsilon if direction == "left" else epsilon

    samples: List[NumericType] = []
    for i in range(1, MAX_SAMPLES + 1):
        test_point = point + step / 2 ** i
        # Float resolution near the point is used up: every later sample
        # lands on the point itself. Far from zero this happens at once,
        # and the point is sampled until there are two values to classify.
        if test_point == point and len(samples) >= 2:
            break
        value = try_evaluate(expr, var, test_point)
        if value is None:
            return UNDEFINED
        samples.append(value)

    return _classify(samples[-2], samples[-1], step)


def _classify(prev: NumericType, last: NumericType, step: float) -> LimitValue:
    if last > DIVERGENCE_THRESHOLD and prev > DIVERGENCE_THRESHOLD:
        return POSITIVE_INFINITY
    if last < -DIVERGENCE_THRESHOLD and prev < -DIVERGENCE_THRESHOLD:
        return NEGATIVE_INFINITY
    if math.isinf(last) or math.isnan(last):
        if last > 0 or (math.isinf(last) and step > 0):
            return POSITIVE_INFINITY
        return NEGATIVE_INFINITY
    return LimitValue.finite(Const(last))


# ============================================================
# Singularity Analysis
# ============================================================

def find_singularities(expr: ExprLike) -> List[Expr]:
    """
    Collect the denominator of every division in expr, in pre-order.

    Every denominator is returned whether or not it can vanish, and a
    nested division contributes its denominator once per occurrence.

    Example:
        find_singularities((x + 1) / (x**2 - 1))   # => [(- (^ x 2) 1)]
    """
    denominators: List[Expr] = []

    def find_divs(e: Expr):
        if isinstance(e, BinaryOp):
            if e.op == "/":
                denominators.append(e.right)
            find_divs(e.left)
            find_divs(e.right)
        elif isinstance(e, UnaryOp):
            find_divs(e.arg)

    find_divs(promote(expr))
    return denominators


class SingularityRecord:
    """A zero of a denominator and the one-sided limits of the expression there."""

    def __init__(self, point: NumericType, denominator: Expr,
                 left_limit: LimitValue, right_limit: LimitValue):
        self.point = point
        self.denominator = denominator
        self.left_limit = left_limit
        self.right_limit = right_limit
        self.continuous = left_limit == right_limit

    def __repr__(self) -> str:
        return (f"SingularityRecord(point={self.point}, "
                f"denominator={format_sexpr(self.denominator)}, "
                f"left={self.left_limit.format()}, right={self.right_limit.format()}, "
                f"continuous={self.continuous})")

    def to_dict(self) -> Dict:
        """Convert record to dictionary for JSON serialization."""
        return {
            "point": self.point,
            "denominator": format_sexpr(self.denominator),
            "left_limit": self.left_limit.to_dict(),
            "right_limit": self.right_limit.to_dict(),
            "continuous": self.continuous,
        }


class DivisionAnalysis:
    """
    Result of check_division_limits().

    Truthy when at least one singularity was found.
    """

    def __init__(self, singularities: Optional[List[SingularityRecord]] = None):
        self.singularities: List[SingularityRecord] = singularities or []

    @property
    def has_singularity(self) -> bool:
        return len(self.singularities) > 0

    @property
    def points(self) -> List[NumericType]:
        """Probe points at which singularities were recorded, in order."""
        return [record.point for record in self.singularities]

    def add(self, record: SingularityRecord):
        self.singularities.append(record)

    def __bool__(self) -> bool:
        return self.has_singularity

    def __len__(self) -> int:
        return len(self.singularities)

    def __iter__(self):
        """Iterate over singularity records."""
        return iter(self.singularities)

    def __repr__(self) -> str:
        return f"DivisionAnalysis({len(self.singularities)} singularities)"

    def to_dict(self) -> Dict:
        """Convert analysis to dictionary for JSON serialization."""
        return {
            "has_singularity": self.has_singularity,
            "singularities": [record.to_dict() for record in self.singularities],
        }


def check_division_limits(
    expr: ExprLike,
    var: VarType,
    epsilon: float = DEFAULT_EPSILON,
) -> DivisionAnalysis:
    """
    Look for zeros of every denominator and take one-sided limits there.

    Each denominator from find_singularities() is evaluated at the integers
    -10..10. Where its value is within 1e-10 of zero, the left and right
    limits of the whole expression are computed and recorded. Probe
    points that cannot be evaluated are skipped.

    Example:
        analysis = check_division_limits(1 / (x**2 - 1), x)
        analysis.points    # => [-1, 1]
    """
    expr = promote(expr)
    analysis = DivisionAnalysis()

    for denom in find_singularities(expr):
        for probe in PROBE_POINTS:
            value = try_evaluate(denom, var, probe)
            if value is None:
                logger.debug("Skipping probe %s=%s: %s does not evaluate to a number",
                             variable_name(var), probe, format_sexpr(denom))
                continue
            if abs(value) < ZERO_TOLERANCE:
                left = limit(expr, var, probe, "left", epsilon)
                right = limit(expr, var, probe, "right", epsilon)
                record = SingularityRecord(probe, denom, left, right)
                logger.debug("Singularity: %r", record)
                analysis.add(record)

    return analysis


def describe_division_behavior(
    expr: ExprLike,
    var: VarType,
    epsilon: float = DEFAULT_EPSILON,
) -> str:
    """
    Describe the behaviour of expr at each singularity, one line each.

    Example:
        describe_division_behavior(1 / x, x)
        # => "At x=0: Discontinuous - Left limit: -∞, Right limit: +∞"
    """
    analysis = check_division_limits(expr, var, epsilon)
    if not analysis.has_singularity:
        return "No division by zero detected"

    name = variable_name(var)
    descriptions = []
    for record in analysis:
        left = record.left_limit.format()
        right = record.right_limit.format()
        desc = f"At {name}={record.point}: "
        if record.continuous:
            desc += f"Continuous (left = right = {left})"
        else:
            desc += f"Discontinuous - Left limit: {left}, Right limit: {right}"
        descriptions.append(desc)

    return "\n".join(descriptions)
